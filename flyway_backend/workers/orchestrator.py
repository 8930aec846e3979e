from __future__ import annotations

import asyncio
import logging

from flyway_backend.application import TranscriptService, get_transcript_service
from flyway_backend.core.config import Settings, load_settings
from flyway_backend.core.state import LatestResultCache
from flyway_backend.domain import WorkerInvocation
from flyway_backend.infrastructure import (
    InMemoryInvocationRepository,
    SpawnError,
    StoreError,
    WorkerExitError,
    WorkerProcessAdapter,
)
from flyway_backend.workers.parser import StreamParser

logger = logging.getLogger(__name__)


class EnrichmentOrchestrator:
    """Runs the enrichment worker whenever a transcript is persisted.

    Each run is an independent task: a newer submission never cancels an
    older run, and records reach the cache in arrival order, so a slow run can
    overwrite the result of a faster, more recent one.
    """

    def __init__(
        self,
        adapter: WorkerProcessAdapter,
        *,
        transcripts: TranscriptService | None = None,
        cache: LatestResultCache | None = None,
        invocations: InMemoryInvocationRepository | None = None,
        max_concurrency: int = 4,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._adapter = adapter
        self._transcripts = transcripts
        self._cache = cache
        self._invocations = invocations or InMemoryInvocationRepository()
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnrichmentOrchestrator":
        adapter = WorkerProcessAdapter(
            settings.worker_command,
            max_record_bytes=settings.max_record_bytes,
            kill_timeout=settings.kill_timeout,
        )
        return cls(
            adapter,
            invocations=InMemoryInvocationRepository(limit=settings.history_limit),
            max_concurrency=settings.max_concurrency,
        )

    @property
    def transcripts(self) -> TranscriptService:
        return self._transcripts or get_transcript_service()

    @property
    def cache(self) -> LatestResultCache:
        return self._cache or LatestResultCache.instance()

    @property
    def invocations(self) -> InMemoryInvocationRepository:
        return self._invocations

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def on_transcript_persisted(self) -> WorkerInvocation | None:
        """Start a worker run for the most recent transcript.

        Returns as soon as the run is scheduled; the run itself continues in
        the background.
        """

        try:
            transcript = await self.transcripts.latest()
        except StoreError as exc:
            logger.error("Unable to read latest transcript: %s", exc)
            return None
        if transcript is None:
            logger.info("No transcripts found, skipping enrichment")
            return None

        invocation = self._invocations.create(transcript)
        logger.info("Triggered %s for transcript from %s", invocation.invocation_id, transcript.created_at.isoformat())
        task = asyncio.create_task(self._run(invocation), name=invocation.invocation_id)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return invocation

    async def _run(self, invocation: WorkerInvocation) -> None:
        try:
            async with self._semaphore:
                await self._execute(invocation)
        except asyncio.CancelledError:
            if not invocation.state.terminal:
                invocation.mark_failed("cancelled")
            raise

    async def _execute(self, invocation: WorkerInvocation) -> None:
        run_id = invocation.invocation_id
        try:
            process = await self._adapter.spawn(invocation.input_transcript.text)
        except SpawnError as exc:
            logger.error("%s failed to start: %s", run_id, exc)
            invocation.mark_failed(f"SpawnError: {exc}")
            return

        invocation.mark_running(process.pid)
        parser = StreamParser(self.cache.set, label=f"{run_id} (pid {process.pid})")
        async with process:
            try:
                await parser.consume(process.chunks())
                outcome = await process.wait()
            except Exception as exc:
                logger.exception("%s could not be waited on", run_id)
                invocation.mark_failed(f"wait failed: {exc}")
                return
            finally:
                invocation.records_parsed = parser.parsed
                invocation.malformed_chunks = parser.malformed

        try:
            outcome.raise_for_status()
        except WorkerExitError as exc:
            logger.error("%s failed: %s", run_id, exc)
            invocation.mark_failed(f"WorkerExitError: {exc}", exit_code=exc.returncode)
            return

        invocation.mark_completed(outcome.returncode)
        logger.info(
            "%s finished with code %s (%d records, %d malformed)",
            run_id,
            outcome.returncode,
            parser.parsed,
            parser.malformed,
        )

    async def drain(self) -> None:
        """Wait until every scheduled run has finished."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight runs; their worker processes are killed."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info("Cancelling %d in-flight enrichment run(s)", len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)


_orchestrator: EnrichmentOrchestrator | None = None


def configure_orchestrator(orchestrator: EnrichmentOrchestrator | None) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> EnrichmentOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = EnrichmentOrchestrator.from_settings(load_settings())
    return _orchestrator
