"""Unit tests for the cache-first event loader."""

from datetime import date

import pytest

from seismistats.client.cache import CacheQuery, MemoryCacheBackend, TieredCache
from seismistats.client.loader import CachedEventLoader, group_day_runs
from seismistats.core.upstream.client import UpstreamError
from seismistats.core.upstream.regions import US_REGION_BOUNDS, RegionScope
from tests.conftest import FakeUpstream, make_feature, utc

NOW = utc(2024, 6, 1, 12)


def build_loader(upstream: FakeUpstream) -> CachedEventLoader:
    cache = TieredCache(MemoryCacheBackend(), clock=lambda: NOW)
    return CachedEventLoader(
        cache,
        upstream,
        retry_base_delay=0,
        region_delay=0,
        range_delay=0,
    )


class TestGroupDayRuns:
    def test_groups_consecutive_days(self):
        runs = group_day_runs(["2024-01-04", "2024-01-01", "2024-01-02"], max_run_days=30)

        assert [(r.start.isoformat(), r.end.isoformat()) for r in runs] == [
            ("2024-01-01", "2024-01-02"),
            ("2024-01-04", "2024-01-04"),
        ]

    def test_splits_long_runs(self):
        days = [f"2024-01-0{d}" for d in range(1, 6)]
        runs = group_day_runs(days, max_run_days=2)

        assert [r.days for r in runs] == [2, 2, 1]

    def test_empty(self):
        assert group_day_runs([], max_run_days=7) == []


@pytest.mark.asyncio
class TestCachedEventLoader:
    async def test_second_load_served_from_cache(self):
        upstream = FakeUpstream(
            features=[
                make_feature("us1", utc(2024, 5, 20, 3), magnitude=3.0),
                make_feature("us2", utc(2024, 5, 21, 9), magnitude=5.5),
            ]
        )
        loader = build_loader(upstream)
        query = CacheQuery(
            start=date(2024, 5, 20),
            end=date(2024, 5, 22),
            min_magnitude=2.5,
            max_magnitude=10,
        )

        first = await loader.load(query)
        second = await loader.load(query)

        assert len(upstream.window_calls) == 1
        assert first.fetched_days == ["2024-05-20", "2024-05-21", "2024-05-22"]
        assert [r.external_id for r in first.records] == ["us2", "us1"]
        assert second.from_cache_only
        assert [r.external_id for r in second.records] == ["us2", "us1"]

    async def test_runs_sized_by_magnitude(self):
        upstream = FakeUpstream()
        loader = build_loader(upstream)

        await loader.load(
            CacheQuery(
                start=date(2024, 5, 1),
                end=date(2024, 5, 10),
                min_magnitude=0.5,
                max_magnitude=10,
            )
        )

        # magnitude 0.5 allows 3-day requests: 10 days -> 4 requests
        assert len(upstream.window_calls) == 4

    async def test_us_scope_fetches_each_region_and_dedupes(self):
        upstream = FakeUpstream(features=[make_feature("us1", utc(2024, 5, 20, 3))])
        loader = build_loader(upstream)

        result = await loader.load(
            CacheQuery(
                start=date(2024, 5, 20),
                end=date(2024, 5, 20),
                min_magnitude=2.5,
                max_magnitude=10,
                region=RegionScope.US,
            )
        )

        assert len(upstream.window_calls) == len(US_REGION_BOUNDS)
        assert {call["bounds"] for call in upstream.window_calls} == set(US_REGION_BOUNDS.values())
        assert [r.external_id for r in result.records] == ["us1"]

    async def test_retries_transient_failures(self):
        upstream = FakeUpstream(
            features=[make_feature("us1", utc(2024, 5, 20, 3))],
            failures={1: UpstreamError("USGS API error: 429", 429)},
        )
        loader = build_loader(upstream)

        result = await loader.load(
            CacheQuery(start=date(2024, 5, 20), end=date(2024, 5, 20), min_magnitude=2.5, max_magnitude=10)
        )

        assert len(upstream.window_calls) == 2
        assert len(result.records) == 1

    async def test_does_not_retry_client_errors(self):
        upstream = FakeUpstream(failures={1: UpstreamError("USGS API error: 400", 400)})
        loader = build_loader(upstream)

        with pytest.raises(UpstreamError):
            await loader.load(
                CacheQuery(start=date(2024, 5, 20), end=date(2024, 5, 20), min_magnitude=2.5, max_magnitude=10)
            )

        assert len(upstream.window_calls) == 1
