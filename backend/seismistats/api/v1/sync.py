"""Sync, backfill and coverage API endpoints."""

from datetime import date, datetime, timedelta

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator

from seismistats.api.dependencies import Coordinator, Engine, Gaps, Store, Verifier
from seismistats.config import settings
from seismistats.core.auth import AdminAccess
from seismistats.core.backfill import (
    BackfillAlreadyRunningError,
    BackfillOptions,
    BackfillValidationError,
    SeedingProgress,
)
from seismistats.core.backfill.chunking import LOWEST_SUPPORTED_MAGNITUDE
from seismistats.core.coverage.verifier import GapReport, VerificationResult
from seismistats.core.dates import end_of_day_utc, start_of_day_utc, utc_now
from seismistats.core.earthquakes.schemas import SourceCount, SyncStatusEntry
from seismistats.core.logging import get_logger
from seismistats.core.shutdown import get_shutdown_coordinator

logger = get_logger(__name__)

router = APIRouter()


class LastSync(BaseModel):
    time: datetime
    status: str
    events_synced: int
    error: str | None = None


class SyncStatusResponse(BaseModel):
    total_events: int
    oldest_event: datetime | None
    newest_event: datetime | None
    last_sync: LastSync | None
    sources: list[SourceCount]
    sync_enabled: bool
    seeding: bool


class SyncHistoryResponse(BaseModel):
    items: list[SyncStatusEntry]


class TriggerRequest(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    min_magnitude: float = Field(-2.0, ge=LOWEST_SUPPORTED_MAGNITUDE, le=10)

    @model_validator(mode="after")
    def check_order(self) -> "TriggerRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class TriggerResponse(BaseModel):
    job_id: str
    start: datetime
    end: datetime
    min_magnitude: float


class MagnitudeCount(BaseModel):
    range: str
    count: int


class CoverageResponse(BaseModel):
    total_events: int
    oldest_event: datetime | None
    newest_event: datetime | None
    counts_by_magnitude: list[MagnitudeCount]
    sources: list[SourceCount]


class SeedRequest(BaseModel):
    """Backfill options; omitted fields fall back to the seeding settings."""

    start_date: date | None = None
    end_date: date | None = None
    min_magnitude: float = Field(
        default_factory=lambda: settings.seed_min_magnitude,
        ge=LOWEST_SUPPORTED_MAGNITUDE,
        le=10,
    )
    chunk_days: int = Field(default_factory=lambda: settings.seed_chunk_days, ge=1)
    delay_ms: int = Field(default_factory=lambda: settings.seed_delay_ms, ge=0)


class SeedResponse(BaseModel):
    run_id: str
    total_chunks: int
    chunk_days: int
    start: datetime
    end: datetime
    progress: SeedingProgress


class CancelResponse(BaseModel):
    cancelled: bool
    progress: SeedingProgress


def _resolve_window(start_date: date, end_date: date) -> tuple[datetime, datetime]:
    if start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="start_date must not be after end_date",
        )
    return start_of_day_utc(start_date), end_of_day_utc(end_date)


@router.get("/status", response_model=SyncStatusResponse)
async def get_sync_status(store: Store, coordinator: Coordinator) -> SyncStatusResponse:
    """Stored totals, the most recent sync attempt and per-source counts."""
    extent = await store.extent_in_range()
    latest = await store.latest_sync_status()
    sources = await store.counts_by_source()

    last_sync = None
    if latest is not None:
        last_sync = LastSync(
            time=latest.last_sync_time,
            status=latest.status,
            events_synced=latest.events_synced,
            error=latest.error_message,
        )

    return SyncStatusResponse(
        total_events=extent.total,
        oldest_event=extent.oldest,
        newest_event=extent.newest,
        last_sync=last_sync,
        sources=sources,
        sync_enabled=settings.usgs_sync_enabled,
        seeding=coordinator.is_running(),
    )


@router.get("/history", response_model=SyncHistoryResponse)
async def get_sync_history(
    store: Store,
    limit: int = Query(20, ge=1, le=100),
) -> SyncHistoryResponse:
    return SyncHistoryResponse(items=await store.sync_history(limit=limit))


@router.post(
    "/trigger",
    response_model=TriggerResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[AdminAccess],
)
async def trigger_sync(request: TriggerRequest) -> TriggerResponse:
    """Queue a one-off sync on the Celery worker.

    Without dates the trailing sync window ending now is used.
    """
    from seismistats.core.queue import celery_app

    now = utc_now()
    end = end_of_day_utc(request.end_date) if request.end_date else now
    end = min(end, now)
    if request.start_date:
        start = start_of_day_utc(request.start_date)
    else:
        start = end - timedelta(minutes=settings.usgs_sync_window_minutes)

    result = celery_app.send_task(
        "seismistats.sync.sync_range",
        kwargs={
            "start": start.isoformat(),
            "end": end.isoformat(),
            "min_magnitude": request.min_magnitude,
        },
    )
    logger.info(
        "sync_triggered",
        task_id=result.id,
        start=start.isoformat(),
        end=end.isoformat(),
        min_magnitude=request.min_magnitude,
    )
    return TriggerResponse(
        job_id=result.id,
        start=start,
        end=end,
        min_magnitude=request.min_magnitude,
    )


@router.get("/coverage", response_model=CoverageResponse)
async def get_coverage(store: Store) -> CoverageResponse:
    extent = await store.extent_in_range()
    buckets = await store.counts_by_magnitude_floor()
    sources = await store.counts_by_source()
    return CoverageResponse(
        total_events=extent.total,
        oldest_event=extent.oldest,
        newest_event=extent.newest,
        counts_by_magnitude=[
            MagnitudeCount(range=bucket.label, count=bucket.count) for bucket in buckets
        ],
        sources=sources,
    )


@router.post(
    "/seed",
    response_model=SeedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[AdminAccess],
)
async def start_seed(
    request: SeedRequest,
    engine: Engine,
    coordinator: Coordinator,
) -> SeedResponse:
    """Start a historical backfill in the background."""
    if get_shutdown_coordinator().is_shutdown_requested():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server is shutting down",
        )

    options = BackfillOptions(
        start=start_of_day_utc(request.start_date) if request.start_date else None,
        # Date-only end is exclusive: the window stops at midnight of end_date
        end=start_of_day_utc(request.end_date) if request.end_date else None,
        min_magnitude=request.min_magnitude,
        chunk_days=request.chunk_days,
        delay_ms=request.delay_ms,
    )

    try:
        run = coordinator.start(engine, options)
    except BackfillAlreadyRunningError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except BackfillValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        )

    logger.info(
        "seed_started",
        run_id=run.id,
        chunks=len(run.chunks),
        chunk_days=run.chunk_days,
    )
    return SeedResponse(
        run_id=run.id,
        total_chunks=len(run.chunks),
        chunk_days=run.chunk_days,
        start=run.start,
        end=run.end,
        progress=run.progress.snapshot(),
    )


@router.get("/seed/progress", response_model=SeedingProgress)
async def get_seed_progress(coordinator: Coordinator) -> SeedingProgress:
    return coordinator.progress()


@router.post("/seed/cancel", response_model=CancelResponse, dependencies=[AdminAccess])
async def cancel_seed(coordinator: Coordinator) -> CancelResponse:
    """Request cancellation; the chunk in flight is allowed to finish."""
    cancelled = coordinator.cancel()
    return CancelResponse(cancelled=cancelled, progress=coordinator.progress())


@router.get("/verify", response_model=VerificationResult)
async def verify_coverage(
    verifier: Verifier,
    start_date: date,
    end_date: date,
    min_magnitude: float = Query(2.5, ge=LOWEST_SUPPORTED_MAGNITUDE, le=10),
) -> VerificationResult:
    """Compare the stored count for a window with the upstream count."""
    start, end = _resolve_window(start_date, end_date)
    return await verifier.verify(start, end, min_magnitude)


@router.get("/gaps", response_model=GapReport)
async def find_gaps(
    gap_finder: Gaps,
    start_date: date,
    end_date: date,
    min_magnitude: float = Query(2.5, ge=LOWEST_SUPPORTED_MAGNITUDE, le=10),
    chunk_days: int = Query(30, ge=1, le=365),
) -> GapReport:
    """List sub-windows missing more than a handful of events."""
    start, end = _resolve_window(start_date, end_date)
    return await gap_finder.find_gaps(start, end, min_magnitude, chunk_days=chunk_days)
