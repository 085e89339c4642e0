"""Durable event store backed by PostgreSQL."""

from datetime import datetime
from typing import Iterable

from sqlalchemy import desc, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from seismistats.core.earthquakes.models import Earthquake, SyncStatus
from seismistats.core.earthquakes.schemas import (
    EventRecord,
    MagnitudeBucket,
    SourceCount,
    StoreExtent,
    SyncStatusEntry,
)
from seismistats.core.logging import get_logger

logger = get_logger(__name__)

UPSERT_BATCH_SIZE = 500

# Fields refreshed when upstream re-reports an event
MUTABLE_FIELDS = (
    "magnitude",
    "magnitude_type",
    "place",
    "status",
    "felt_reports",
    "cdi",
    "mmi",
    "alert",
)


def _dedupe(records: Iterable[EventRecord]) -> list[EventRecord]:
    """Keep the last record per identity so one INSERT never hits a key twice."""
    by_key: dict[tuple[str, str], EventRecord] = {}
    for record in records:
        by_key[(record.source, record.external_id)] = record
    return list(by_key.values())


class RecordStore:
    """
    Idempotent event storage and sync-status audit log.

    Range bounds are inclusive on both ends. Callers holding date-only
    values convert them with start_of_day_utc / end_of_day_utc first.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def upsert(self, records: Iterable[EventRecord]) -> int:
        """Insert new events and refresh mutable fields of known ones.

        Returns:
            Number of records inserted or updated
        """
        unique = _dedupe(records)
        if not unique:
            return 0

        written = 0
        async with self.session_factory() as session:
            for offset in range(0, len(unique), UPSERT_BATCH_SIZE):
                batch = unique[offset:offset + UPSERT_BATCH_SIZE]
                stmt = insert(Earthquake).values([r.to_row() for r in batch])
                stmt = stmt.on_conflict_do_update(
                    index_elements=["source", "source_event_id"],
                    set_={
                        **{field: stmt.excluded[field] for field in MUTABLE_FIELDS},
                        "updated_at": func.now(),
                    },
                )
                await session.execute(stmt)
                written += len(batch)
                logger.debug("upsert_batch_written", written=written, total=len(unique))
            await session.commit()

        return written

    async def append_sync_status(self, entry: SyncStatusEntry) -> None:
        async with self.session_factory() as session:
            session.add(
                SyncStatus(
                    source=entry.source,
                    last_sync_time=entry.last_sync_time,
                    last_event_time=entry.last_event_time,
                    events_synced=entry.events_synced,
                    status=entry.status,
                    error_message=entry.error_message,
                )
            )
            await session.commit()

    async def count_in_range(
        self, start: datetime, end: datetime, min_magnitude: float
    ) -> int:
        stmt = select(func.count()).select_from(Earthquake).where(
            Earthquake.time >= start,
            Earthquake.time <= end,
            Earthquake.magnitude >= min_magnitude,
        )
        async with self.session_factory() as session:
            return (await session.execute(stmt)).scalar_one()

    async def extent_in_range(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> StoreExtent:
        """Oldest and newest event time plus total, optionally within a range."""
        stmt = select(
            func.count(),
            func.min(Earthquake.time),
            func.max(Earthquake.time),
        ).select_from(Earthquake)
        if start is not None:
            stmt = stmt.where(Earthquake.time >= start)
        if end is not None:
            stmt = stmt.where(Earthquake.time <= end)

        async with self.session_factory() as session:
            total, oldest, newest = (await session.execute(stmt)).one()
        return StoreExtent(total=total, oldest=oldest, newest=newest)

    async def counts_by_magnitude_floor(self) -> list[MagnitudeBucket]:
        floor = func.floor(Earthquake.magnitude).label("floor")
        stmt = (
            select(floor, func.count().label("count"))
            .group_by(floor)
            .order_by(floor)
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [MagnitudeBucket(floor=int(row.floor), count=row.count) for row in rows]

    async def counts_by_source(self) -> list[SourceCount]:
        stmt = (
            select(Earthquake.source, func.count().label("count"))
            .group_by(Earthquake.source)
            .order_by(Earthquake.source)
        )
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [SourceCount(source=row.source, count=row.count) for row in rows]

    async def sync_history(self, limit: int = 20) -> list[SyncStatusEntry]:
        stmt = select(SyncStatus).order_by(desc(SyncStatus.created_at), desc(SyncStatus.id)).limit(limit)
        async with self.session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [
            SyncStatusEntry(
                source=row.source,
                last_sync_time=row.last_sync_time,
                last_event_time=row.last_event_time,
                events_synced=row.events_synced,
                status=row.status,
                error_message=row.error_message,
                created_at=row.created_at,
            )
            for row in rows
        ]

    async def latest_sync_status(self) -> SyncStatusEntry | None:
        history = await self.sync_history(limit=1)
        return history[0] if history else None
