"""Chunked backfill engine and the process-wide run coordinator.

A backfill walks a historical window oldest-first in magnitude-sized
chunks. Each chunk goes through SyncService (fetch, upsert, sync-status)
and a failed chunk is recorded and skipped, never fatal to the run.
Chunks already written persist when a run is cancelled, so a later run
over the same window simply refreshes them.
"""

import asyncio
import contextvars
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

from seismistats.core.backfill.chunking import (
    LOWEST_SUPPORTED_MAGNITUDE,
    Chunk,
    effective_chunk_days,
    get_max_chunk_days,
    plan_chunks,
)
from seismistats.core.backfill.progress import (
    BackfillState,
    CancellationToken,
    CurrentChunk,
    SeedingProgress,
)
from seismistats.core.dates import day_key, ensure_utc, utc_now
from seismistats.core.logging import get_logger
from seismistats.core.sync.service import SyncService

logger = get_logger(__name__)

DEFAULT_LOOKBACK = timedelta(days=365)


class BackfillError(Exception):
    """Base class for backfill errors."""


class BackfillValidationError(BackfillError, ValueError):
    """Options rejected before any work starts."""


class BackfillAlreadyRunningError(BackfillError):
    """A second run was requested while one is active."""

    def __init__(self, run_id: str):
        super().__init__("Seeding already in progress")
        self.run_id = run_id


@dataclass
class BackfillOptions:
    start: datetime | None = None
    end: datetime | None = None
    min_magnitude: float = 2.5
    chunk_days: int = 30
    delay_ms: int = 2000


class BackfillRun:
    """Handle for one backfill run: its plan, progress and cancellation token."""

    def __init__(
        self,
        options: BackfillOptions,
        start: datetime,
        end: datetime,
        chunk_days: int,
        chunks: list[Chunk],
        started_at: datetime,
    ):
        self.id = uuid4().hex[:12]
        self.options = options
        self.start = start
        self.end = end
        self.chunk_days = chunk_days
        self.chunks = chunks
        self.token = CancellationToken()
        self.task: asyncio.Task | None = None
        self.progress = SeedingProgress(
            state=BackfillState.RUNNING,
            is_seeding=True,
            total_chunks=len(chunks),
            start_time=started_at,
        )

    @property
    def is_active(self) -> bool:
        return self.progress.is_seeding

    def cancel(self) -> bool:
        """Request cancellation; the chunk in flight still completes."""
        if not self.is_active:
            return False
        self.token.cancel()
        return True

    async def wait(self) -> SeedingProgress:
        if self.task is not None:
            await asyncio.shield(self.task)
        return self.progress.snapshot()


class BackfillEngine:
    """Plans and executes backfill runs against a SyncService."""

    def __init__(
        self,
        sync_service: SyncService,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sync_service = sync_service
        self.clock = clock

    def plan(self, options: BackfillOptions) -> BackfillRun:
        """Resolve the window and chunk list.

        Raises:
            BackfillValidationError: on bad magnitude, chunk size, delay or dates
        """
        if options.min_magnitude < LOWEST_SUPPORTED_MAGNITUDE:
            raise BackfillValidationError(
                f"min_magnitude must be at least {LOWEST_SUPPORTED_MAGNITUDE}"
            )
        if options.chunk_days < 1:
            raise BackfillValidationError("chunk_days must be at least 1")
        if options.delay_ms < 0:
            raise BackfillValidationError("delay_ms must not be negative")

        now = self.clock()
        end = ensure_utc(options.end) if options.end is not None else now
        end = min(end, now)
        start = ensure_utc(options.start) if options.start is not None else now - DEFAULT_LOOKBACK

        if start >= end:
            raise BackfillValidationError("Start date must be before end date")

        chunk_days = effective_chunk_days(options.chunk_days, options.min_magnitude)
        logger.info(
            "backfill_chunk_size_resolved",
            min_magnitude=options.min_magnitude,
            requested_days=options.chunk_days,
            max_safe_days=get_max_chunk_days(options.min_magnitude),
            effective_days=chunk_days,
        )

        return BackfillRun(
            options=options,
            start=start,
            end=end,
            chunk_days=chunk_days,
            chunks=plan_chunks(start, end, chunk_days),
            started_at=now,
        )

    async def run(self, run: BackfillRun) -> SeedingProgress:
        """Process every chunk of run sequentially.

        Returns a snapshot of the final progress. Never raises for chunk
        failures; an unexpected error marks the run failed.
        """
        progress = run.progress
        options = run.options
        total = len(run.chunks)

        logger.info(
            "backfill_started",
            run_id=run.id,
            chunks=total,
            min_magnitude=options.min_magnitude,
            chunk_days=run.chunk_days,
            start=run.start.isoformat(),
            end=run.end.isoformat(),
            delay_ms=options.delay_ms,
        )

        try:
            for i, chunk in enumerate(run.chunks):
                if run.token.cancelled:
                    progress.cancelled = True
                    progress.state = BackfillState.CANCELLED
                    logger.info("backfill_cancelled", run_id=run.id, completed_chunks=i)
                    break

                progress.current_chunk = CurrentChunk(
                    start_date=day_key(chunk.start),
                    end_date=day_key(chunk.end),
                    index=i + 1,
                )

                try:
                    outcome = await self.sync_service.sync_window(
                        chunk.start, chunk.end, options.min_magnitude
                    )
                except Exception as e:
                    message = str(e) or type(e).__name__
                    progress.error = f"Chunk {i + 1} failed: {message}"
                    progress.completed_chunks = i + 1
                    logger.warning(
                        "backfill_chunk_failed",
                        run_id=run.id,
                        index=i + 1,
                        total=total,
                        error=message,
                    )
                else:
                    progress.completed_chunks = i + 1
                    progress.total_events_fetched += outcome.events_synced
                    progress.error = None
                    logger.info(
                        "backfill_chunk_completed",
                        run_id=run.id,
                        index=i + 1,
                        total=total,
                        events=outcome.events_synced,
                        total_events=progress.total_events_fetched,
                    )

                if i < total - 1 and not run.token.cancelled:
                    await run.token.wait(options.delay_ms / 1000)
            else:
                progress.state = BackfillState.COMPLETED
                logger.info(
                    "backfill_completed",
                    run_id=run.id,
                    chunks=total,
                    total_events=progress.total_events_fetched,
                )
        except asyncio.CancelledError:
            progress.cancelled = True
            progress.state = BackfillState.CANCELLED
            logger.warning("backfill_task_cancelled", run_id=run.id)
            raise
        except Exception as e:
            progress.state = BackfillState.FAILED
            progress.error = str(e) or type(e).__name__
            logger.exception("backfill_failed", run_id=run.id, error=progress.error)
        finally:
            progress.is_seeding = False
            progress.current_chunk = None
            progress.finished_time = self.clock()

        return progress.snapshot()


class BackfillCoordinator:
    """
    Owns the single reference to the current run.

    start() checks and claims the slot synchronously, before the event
    loop can switch to another request, so two runs can never interleave.
    """

    def __init__(self) -> None:
        self._current: BackfillRun | None = None

    @property
    def current(self) -> BackfillRun | None:
        return self._current

    def is_running(self) -> bool:
        return self._current is not None and self._current.is_active

    def start(self, engine: BackfillEngine, options: BackfillOptions) -> BackfillRun:
        """Plan a run and schedule it on the running event loop.

        Raises:
            BackfillAlreadyRunningError: if a run is active
            BackfillValidationError: if options are invalid
        """
        if self._current is not None and self._current.is_active:
            raise BackfillAlreadyRunningError(self._current.id)

        run = engine.plan(options)
        self._current = run
        # Fresh context: the run outlives the request that started it and
        # must not log under its correlation id
        run.task = asyncio.get_running_loop().create_task(
            engine.run(run),
            name=f"backfill-{run.id}",
            context=contextvars.Context(),
        )
        return run

    def progress(self) -> SeedingProgress:
        if self._current is None:
            return SeedingProgress()
        return self._current.progress.snapshot()

    def cancel(self) -> bool:
        if self._current is None:
            return False
        requested = self._current.cancel()
        if requested:
            logger.info("backfill_cancel_requested", run_id=self._current.id)
        return requested

    async def stop(self) -> None:
        """Cancel the active run and wait for its in-flight chunk."""
        run = self._current
        if run is None or run.task is None or run.task.done():
            return
        run.cancel()
        try:
            await asyncio.shield(run.task)
        except asyncio.CancelledError:
            run.task.cancel()
            raise


# Global singleton
_coordinator: BackfillCoordinator | None = None


def get_backfill_coordinator() -> BackfillCoordinator:
    """Get the process-wide backfill coordinator."""
    global _coordinator
    if _coordinator is None:
        _coordinator = BackfillCoordinator()
    return _coordinator
