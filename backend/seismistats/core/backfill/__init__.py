"""Chunked historical backfill."""

from seismistats.core.backfill.chunking import (
    MAGNITUDE_CHUNK_DAYS,
    Chunk,
    get_max_chunk_days,
    plan_chunks,
)
from seismistats.core.backfill.engine import (
    BackfillAlreadyRunningError,
    BackfillCoordinator,
    BackfillEngine,
    BackfillError,
    BackfillOptions,
    BackfillRun,
    BackfillValidationError,
    get_backfill_coordinator,
)
from seismistats.core.backfill.progress import (
    BackfillState,
    CancellationToken,
    SeedingProgress,
)

__all__ = [
    "MAGNITUDE_CHUNK_DAYS",
    "Chunk",
    "get_max_chunk_days",
    "plan_chunks",
    "BackfillAlreadyRunningError",
    "BackfillCoordinator",
    "BackfillEngine",
    "BackfillError",
    "BackfillOptions",
    "BackfillRun",
    "BackfillValidationError",
    "get_backfill_coordinator",
    "BackfillState",
    "CancellationToken",
    "SeedingProgress",
]
