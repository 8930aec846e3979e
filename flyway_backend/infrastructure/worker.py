"""Process management for the external enrichment worker.

The worker is started as ``<command...> <transcript>``.  Its standard output
is exposed as an async iterator of newline-delimited chunks, its standard
error is forwarded to the log, and its exit status is returned as a
:class:`WorkerExit` once the process terminates.  :class:`WorkerProcess` is an
async context manager that kills the process if the caller leaves the block
while it is still running, so abandoned or cancelled runs do not leak
processes.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import subprocess
from collections import deque
from dataclasses import dataclass
from typing import AsyncIterator, Sequence

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORD_BYTES = 1024 * 1024


class SpawnError(RuntimeError):
    """Raised when the worker executable cannot be started."""


class WorkerExitError(RuntimeError):
    """Raised when the worker terminates with a nonzero exit code."""

    def __init__(self, returncode: int, stderr_tail: Sequence[str] = ()) -> None:
        self.returncode = returncode
        self.stderr_tail = tuple(stderr_tail)
        message = f"worker exited with code {returncode}"
        if self.stderr_tail:
            message = f"{message}: {self.stderr_tail[-1]}"
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class WorkerExit:
    """Structured result of a finished worker process."""

    returncode: int
    stderr_tail: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def raise_for_status(self) -> None:
        if not self.ok:
            raise WorkerExitError(self.returncode, self.stderr_tail)


@dataclass(frozen=True, slots=True)
class OversizedChunk:
    """Placeholder yielded instead of a stdout chunk that exceeded the read limit."""

    limit: int


class WorkerProcess:
    """Handle on one running worker process."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        *,
        max_record_bytes: int = DEFAULT_MAX_RECORD_BYTES,
        kill_timeout: float = 5.0,
        stderr_tail: int = 20,
    ) -> None:
        self._process = process
        self._max_record_bytes = max_record_bytes
        self._kill_timeout = kill_timeout
        self._stderr_lines: deque[str] = deque(maxlen=stderr_tail)
        self._stderr_task = asyncio.create_task(self._pump_stderr())

    @property
    def pid(self) -> int | None:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def stderr_tail(self) -> tuple[str, ...]:
        return tuple(self._stderr_lines)

    async def __aenter__(self) -> "WorkerProcess":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.kill()

    async def _pump_stderr(self) -> None:
        stream = self._process.stderr
        if stream is None:
            return
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                logger.warning("Worker %s wrote a stderr line longer than the read limit", self.pid)
                continue
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                self._stderr_lines.append(text)
                logger.warning("Worker %s stderr: %s", self.pid, text)

    async def chunks(self) -> AsyncIterator[bytes | OversizedChunk]:
        """Yield stdout chunks in the order the worker flushed them.

        A line longer than the read limit is dropped up to its newline and
        reported as a single :class:`OversizedChunk`.
        """

        stream = self._process.stdout
        if stream is None:
            return
        while True:
            try:
                line = await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                if exc.partial:
                    yield exc.partial
                return
            except asyncio.LimitOverrunError as exc:
                await self._skip_line(stream, exc.consumed)
                yield OversizedChunk(self._max_record_bytes)
                continue
            yield line

    @staticmethod
    async def _skip_line(stream: asyncio.StreamReader, consumed: int) -> None:
        while True:
            await stream.readexactly(consumed)
            try:
                await stream.readuntil(b"\n")
                return
            except asyncio.LimitOverrunError as exc:
                consumed = exc.consumed
            except asyncio.IncompleteReadError:
                return

    async def wait(self) -> WorkerExit:
        returncode = await self._process.wait()
        await self._stderr_task
        return WorkerExit(returncode=returncode, stderr_tail=self.stderr_tail)

    async def kill(self) -> None:
        """Terminate the process if it is still alive, escalating to SIGKILL."""

        if self._process.returncode is None:
            logger.warning("Terminating worker %s", self.pid)
            with contextlib.suppress(ProcessLookupError):
                self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=self._kill_timeout)
            except asyncio.TimeoutError:
                logger.warning("Worker %s ignored terminate, killing", self.pid)
                with contextlib.suppress(ProcessLookupError):
                    self._process.kill()
                await self._process.wait()
        if not self._stderr_task.done():
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task


class WorkerProcessAdapter:
    """Starts worker processes for a fixed command prefix."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        max_record_bytes: int = DEFAULT_MAX_RECORD_BYTES,
        kill_timeout: float = 5.0,
        stderr_tail: int = 20,
    ) -> None:
        if not command:
            raise ValueError("worker command must not be empty")
        self._command = tuple(command)
        self._max_record_bytes = max_record_bytes
        self._kill_timeout = kill_timeout
        self._stderr_tail = stderr_tail

    async def spawn(self, input_text: str) -> WorkerProcess:
        argv = [*self._command, input_text]
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                limit=self._max_record_bytes,
            )
        except (OSError, ValueError) as exc:
            raise SpawnError(f"unable to start worker {self._command[0]!r}: {exc}") from exc

        logger.info("Worker started pid=%s command=%s", process.pid, self._command[0])
        return WorkerProcess(
            process,
            max_record_bytes=self._max_record_bytes,
            kill_timeout=self._kill_timeout,
            stderr_tail=self._stderr_tail,
        )


__all__ = [
    "OversizedChunk",
    "SpawnError",
    "WorkerExit",
    "WorkerExitError",
    "WorkerProcess",
    "WorkerProcessAdapter",
]
