import asyncio
import os
import sys
import textwrap
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from flyway_backend.infrastructure import (
    OversizedChunk,
    SpawnError,
    WorkerExitError,
    WorkerProcessAdapter,
)


def _write_worker(tmp_path: Path, body: str) -> list[str]:
    script = tmp_path / "worker.py"
    script.write_text("import json, sys, time\n" + textwrap.dedent(body), encoding="utf-8")
    return [sys.executable, str(script)]


async def _collect(process) -> list:
    return [chunk async for chunk in process.chunks()]


def test_spawn_passes_transcript_as_single_argument(tmp_path):
    command = _write_worker(
        tmp_path,
        """
        print(json.dumps({"argv": sys.argv[1:]}), flush=True)
        """,
    )
    adapter = WorkerProcessAdapter(command)

    async def scenario():
        async with await adapter.spawn("flight delayed; rm -rf /") as process:
            chunks = await _collect(process)
            outcome = await process.wait()
        return chunks, outcome

    chunks, outcome = asyncio.run(scenario())
    assert chunks == [b'{"argv": ["flight delayed; rm -rf /"]}\n']
    assert outcome.ok
    assert outcome.returncode == 0


def test_chunks_follow_flush_order_and_keep_unterminated_tail(tmp_path):
    command = _write_worker(
        tmp_path,
        """
        sys.stdout.write('{"n": 1}\\n'); sys.stdout.flush()
        time.sleep(0.05)
        sys.stdout.write('{"n": 2}\\n'); sys.stdout.flush()
        sys.stdout.write('{"n": 3}')
        """,
    )
    adapter = WorkerProcessAdapter(command)

    async def scenario():
        async with await adapter.spawn("x") as process:
            chunks = await _collect(process)
            await process.wait()
        return chunks

    assert asyncio.run(scenario()) == [b'{"n": 1}\n', b'{"n": 2}\n', b'{"n": 3}']


def test_stderr_is_captured_not_parsed(tmp_path, caplog):
    command = _write_worker(
        tmp_path,
        """
        print("loading model", file=sys.stderr, flush=True)
        print("quota exceeded", file=sys.stderr, flush=True)
        sys.exit(1)
        """,
    )
    adapter = WorkerProcessAdapter(command)

    async def scenario():
        async with await adapter.spawn("x") as process:
            chunks = await _collect(process)
            outcome = await process.wait()
        return chunks, outcome

    with caplog.at_level("WARNING"):
        chunks, outcome = asyncio.run(scenario())

    assert chunks == []
    assert outcome.returncode == 1
    assert outcome.stderr_tail == ("loading model", "quota exceeded")
    assert "quota exceeded" in caplog.text
    with pytest.raises(WorkerExitError, match="code 1: quota exceeded"):
        outcome.raise_for_status()


def test_oversized_line_yields_exactly_one_marker(tmp_path):
    command = _write_worker(
        tmp_path,
        """
        print(json.dumps({"n": 1}), flush=True)
        print("x" * 300_000, flush=True)
        print(json.dumps({"n": 2}), flush=True)
        """,
    )
    adapter = WorkerProcessAdapter(command, max_record_bytes=1024)

    async def scenario():
        async with await adapter.spawn("x") as process:
            chunks = await _collect(process)
            await process.wait()
        return chunks

    assert asyncio.run(scenario()) == [b'{"n": 1}\n', OversizedChunk(limit=1024), b'{"n": 2}\n']


def test_oversized_unterminated_tail_yields_one_marker(tmp_path):
    command = _write_worker(
        tmp_path,
        """
        print(json.dumps({"n": 1}), flush=True)
        sys.stdout.write("y" * 200_000)
        """,
    )
    adapter = WorkerProcessAdapter(command, max_record_bytes=1024)

    async def scenario():
        async with await adapter.spawn("x") as process:
            chunks = await _collect(process)
            await process.wait()
        return chunks

    assert asyncio.run(scenario()) == [b'{"n": 1}\n', OversizedChunk(limit=1024)]


def test_missing_executable_raises_spawn_error(tmp_path):
    adapter = WorkerProcessAdapter([str(tmp_path / "does-not-exist")])

    with pytest.raises(SpawnError):
        asyncio.run(adapter.spawn("flight delayed"))


def test_leaving_context_kills_running_worker(tmp_path):
    command = _write_worker(
        tmp_path,
        """
        print(json.dumps({"started": True}), flush=True)
        time.sleep(60)
        """,
    )
    adapter = WorkerProcessAdapter(command, kill_timeout=2.0)

    async def scenario():
        async with await adapter.spawn("x") as process:
            pid = process.pid
            first = await process.chunks().__anext__()
        return pid, first, process.returncode

    pid, first, returncode = asyncio.run(scenario())
    assert first == b'{"started": true}\n'
    assert returncode is not None
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


def test_empty_command_is_rejected():
    with pytest.raises(ValueError):
        WorkerProcessAdapter([])
