"""Backfill progress snapshot and cancellation token."""

import asyncio
from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class BackfillState(str, Enum):
    """Backfill run lifecycle."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CurrentChunk(BaseModel):
    start_date: str
    end_date: str
    index: int  # 1-based


class SeedingProgress(BaseModel):
    """Mutable progress of one backfill run; callers receive copies."""

    state: BackfillState = BackfillState.IDLE
    is_seeding: bool = False
    total_chunks: int = 0
    completed_chunks: int = 0
    total_events_fetched: int = 0
    start_time: datetime | None = None
    finished_time: datetime | None = None
    current_chunk: CurrentChunk | None = None
    cancelled: bool = False
    error: str | None = None

    def snapshot(self) -> "SeedingProgress":
        return self.model_copy(deep=True)


class CancellationToken:
    """Cooperative cancellation signal polled at chunk boundaries.

    wait() lets the inter-chunk delay end early once cancellation is
    requested.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds; True if cancelled meanwhile."""
        if timeout <= 0:
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
