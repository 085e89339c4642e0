"""Celery tasks for the periodic and manually triggered sync."""

from datetime import datetime, timedelta

from celery import shared_task

from seismistats.config import settings
from seismistats.core.dates import ensure_utc, utc_now
from seismistats.core.database.session import build_engine, build_session_factory
from seismistats.core.earthquakes.store import RecordStore
from seismistats.core.queue.base_task import SyncTask
from seismistats.core.sync.service import SyncService
from seismistats.core.upstream.client import UpstreamClient


async def _run_sync(
    start: datetime,
    end: datetime,
    min_magnitude: float,
    max_magnitude: float | None = None,
) -> dict:
    # Pooled connections are bound to the loop that created them
    engine = build_engine(use_null_pool=True)
    try:
        async with UpstreamClient(
            settings.usgs_base_url,
            timeout=settings.usgs_request_timeout_seconds,
        ) as upstream:
            service = SyncService(upstream, RecordStore(build_session_factory(engine)))
            outcome = await service.sync_window(start, end, min_magnitude, max_magnitude)
    finally:
        await engine.dispose()

    return {
        "status": "success",
        "events_synced": outcome.events_synced,
        "start": start.isoformat(),
        "end": end.isoformat(),
    }


@shared_task(bind=True, base=SyncTask, name="seismistats.sync.sync_recent")
def sync_recent(self) -> dict:
    """Sync the trailing window configured by usgs_sync_window_minutes."""
    end = utc_now()
    start = end - timedelta(minutes=settings.usgs_sync_window_minutes)
    return self.run_async(
        lambda: _run_sync(start, end, settings.usgs_sync_min_magnitude)
    )


@shared_task(bind=True, base=SyncTask, name="seismistats.sync.sync_range")
def sync_range(
    self,
    start: str,
    end: str,
    min_magnitude: float = -2.0,
    max_magnitude: float | None = None,
) -> dict:
    """Sync an explicit window; start and end are ISO-8601 strings."""
    start_dt = ensure_utc(datetime.fromisoformat(start))
    end_dt = ensure_utc(datetime.fromisoformat(end))
    return self.run_async(
        lambda: _run_sync(start_dt, end_dt, min_magnitude, max_magnitude)
    )
