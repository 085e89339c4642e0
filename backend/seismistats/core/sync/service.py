"""Shared fetch, upsert and audit path.

The scheduled sync, manual triggers and every backfill chunk go through
SyncService.sync_window, so each attempt leaves exactly one sync-status
entry behind.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from seismistats.core.dates import utc_now
from seismistats.core.earthquakes.models import DEFAULT_SOURCE, SyncResult
from seismistats.core.earthquakes.schemas import EventRecord, SyncStatusEntry, parse_features
from seismistats.core.logging import get_logger

logger = get_logger(__name__)


class WindowFetcher(Protocol):
    async def fetch_window(
        self,
        start: datetime,
        end: datetime,
        min_magnitude: float,
        max_magnitude: float | None = None,
    ) -> list[dict]: ...


class EventSink(Protocol):
    async def upsert(self, records: list[EventRecord]) -> int: ...

    async def append_sync_status(self, entry: SyncStatusEntry) -> None: ...


@dataclass
class SyncOutcome:
    events_synced: int
    last_event_time: datetime | None


class SyncService:
    """Fetches one window upstream and stores it."""

    def __init__(self, upstream: WindowFetcher, store: EventSink, source: str = DEFAULT_SOURCE):
        self.upstream = upstream
        self.store = store
        self.source = source

    async def sync_window(
        self,
        start: datetime,
        end: datetime,
        min_magnitude: float = -2.0,
        max_magnitude: float | None = None,
    ) -> SyncOutcome:
        """Fetch [start, end], upsert the events and record a sync-status entry.

        Raises:
            Whatever the fetch or upsert raised, after an error entry was written
        """
        synced = 0
        try:
            features = await self.upstream.fetch_window(
                start, end, min_magnitude, max_magnitude
            )
            records = parse_features(features, source=self.source)
            synced = await self.store.upsert(records)
        except Exception as e:
            logger.warning(
                "sync_window_failed",
                start=start.isoformat(),
                end=end.isoformat(),
                error=str(e),
            )
            await self.store.append_sync_status(
                SyncStatusEntry(
                    source=self.source,
                    last_sync_time=utc_now(),
                    events_synced=synced,
                    status=SyncResult.ERROR.value,
                    error_message=str(e) or type(e).__name__,
                )
            )
            raise

        last_event_time = max((r.time for r in records), default=None)
        await self.store.append_sync_status(
            SyncStatusEntry(
                source=self.source,
                last_sync_time=utc_now(),
                last_event_time=last_event_time,
                events_synced=synced,
                status=SyncResult.SUCCESS.value,
            )
        )

        logger.info(
            "sync_window_completed",
            start=start.isoformat(),
            end=end.isoformat(),
            events=synced,
        )
        return SyncOutcome(events_synced=synced, last_event_time=last_event_time)
