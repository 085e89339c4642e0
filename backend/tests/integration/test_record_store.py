"""Integration tests for RecordStore against PostgreSQL.

Needs the test database on port 5433; skipped when it is unreachable.
"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import select

from seismistats.config import get_settings
from seismistats.core.database import Base, build_engine, build_session_factory
from seismistats.core.earthquakes.models import Earthquake
from seismistats.core.earthquakes.schemas import EventRecord, SyncStatusEntry
from seismistats.core.earthquakes.store import RecordStore
from tests.conftest import make_record, utc


@pytest_asyncio.fixture
async def store():
    """Fresh tables for each test; NullPool avoids event loop conflicts with asyncpg."""
    engine = build_engine(get_settings().database_url, use_null_pool=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        await engine.dispose()
        pytest.skip(f"PostgreSQL test database unavailable: {e}")

    yield RecordStore(build_session_factory(engine))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.mark.integration
@pytest.mark.asyncio
class TestUpsert:
    async def test_insert_then_update_keeps_one_row(self, store: RecordStore):
        first = EventRecord(
            external_id="us1",
            time=utc(2024, 1, 6, 3),
            latitude=61.2,
            longitude=-149.9,
            depth_km=33.0,
            magnitude=4.1,
            magnitude_type="ml",
            place="50 km N of Anchorage, Alaska",
            status="automatic",
            felt_reports=None,
            cdi=None,
            mmi=None,
            alert=None,
        )
        revised = first.model_copy(
            update={
                "latitude": 10.0,
                "magnitude": 4.4,
                "magnitude_type": "mww",
                "place": "48 km N of Anchorage, Alaska",
                "status": "reviewed",
                "felt_reports": 37,
                "cdi": 4.1,
                "mmi": 3.8,
                "alert": "green",
            }
        )

        await store.upsert([first])
        async with store.session_factory() as session:
            original = (await session.execute(select(Earthquake))).scalar_one()
            created_at, first_updated_at = original.created_at, original.updated_at

        await asyncio.sleep(0.01)
        await store.upsert([revised])

        async with store.session_factory() as session:
            rows = (await session.execute(select(Earthquake))).scalars().all()

        assert len(rows) == 1
        row = rows[0]
        assert row.source == "USGS"
        assert row.source_event_id == "us1"
        assert row.magnitude == 4.4
        assert row.magnitude_type == "mww"
        assert row.place == "48 km N of Anchorage, Alaska"
        assert row.status == "reviewed"
        assert row.felt_reports == 37
        assert row.cdi == 4.1
        assert row.mmi == 3.8
        assert row.alert == "green"
        # Identity and location fields keep the first write
        assert row.time == utc(2024, 1, 6, 3)
        assert row.latitude == 61.2
        assert row.created_at == created_at
        assert row.updated_at > first_updated_at

    async def test_duplicates_within_batch(self, store: RecordStore):
        written = await store.upsert(
            [
                make_record("us1", utc(2024, 1, 6), magnitude=4.1),
                make_record("us1", utc(2024, 1, 6), magnitude=4.3),
                make_record("us2", utc(2024, 1, 7)),
            ]
        )

        assert written == 2
        assert (await store.extent_in_range()).total == 2

    async def test_empty(self, store: RecordStore):
        assert await store.upsert([]) == 0


@pytest.mark.integration
@pytest.mark.asyncio
class TestQueries:
    async def test_count_in_range_is_inclusive(self, store: RecordStore):
        await store.upsert(
            [
                make_record("a", utc(2024, 1, 1), magnitude=2.5),
                make_record("b", utc(2024, 1, 15), magnitude=1.0),
                make_record("c", utc(2024, 1, 31), magnitude=3.0),
                make_record("d", utc(2024, 2, 1), magnitude=3.0),
            ]
        )

        assert await store.count_in_range(utc(2024, 1, 1), utc(2024, 1, 31), 2.5) == 2
        assert await store.count_in_range(utc(2024, 1, 1), utc(2024, 1, 31), -2.0) == 3

    async def test_extent_and_buckets(self, store: RecordStore):
        await store.upsert(
            [
                make_record("a", utc(2024, 1, 1), magnitude=2.1),
                make_record("b", utc(2024, 3, 1), magnitude=2.9),
                make_record("c", utc(2024, 2, 1), magnitude=6.2),
            ]
        )

        extent = await store.extent_in_range()
        buckets = await store.counts_by_magnitude_floor()
        sources = await store.counts_by_source()

        assert extent.total == 3
        assert extent.oldest == utc(2024, 1, 1)
        assert extent.newest == utc(2024, 3, 1)
        assert [(b.floor, b.count) for b in buckets] == [(2, 2), (6, 1)]
        assert [(s.source, s.count) for s in sources] == [("USGS", 3)]

    async def test_sync_history_newest_first(self, store: RecordStore):
        for i in range(3):
            await store.append_sync_status(
                SyncStatusEntry(
                    last_sync_time=utc(2024, 1, i + 1),
                    events_synced=i,
                    status="success",
                )
            )

        history = await store.sync_history(limit=2)
        latest = await store.latest_sync_status()

        assert [entry.events_synced for entry in history] == [2, 1]
        assert latest.events_synced == 2
