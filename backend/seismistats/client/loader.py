"""Cache-first event loading for the visualization client.

The loader asks the tiered cache first and only goes upstream for the days
the cache reports as stale, grouping consecutive stale days into a single
request sized by the same magnitude table the backfill uses.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from seismistats.client.cache.models import CacheQuery
from seismistats.client.cache.tiered import ProgressCallback, TieredCache
from seismistats.core.backfill.chunking import get_max_chunk_days
from seismistats.core.dates import end_of_day_utc, parse_day_key, start_of_day_utc
from seismistats.core.earthquakes.schemas import EventRecord, parse_features
from seismistats.core.logging import get_logger
from seismistats.core.upstream.client import UpstreamClient, UpstreamError
from seismistats.core.upstream.regions import US_REGION_BOUNDS, RegionScope

logger = get_logger(__name__)

REGION_DELAY_SECONDS = 0.1
RANGE_DELAY_SECONDS = 0.05
MAX_RETRIES = 3
RETRY_BASE_DELAY_SECONDS = 1.0


@dataclass(frozen=True)
class DayRun:
    """Consecutive stale days fetched with one request per region."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass
class LoadResult:
    records: list[EventRecord] = field(default_factory=list)
    cached_days: list[str] = field(default_factory=list)
    fetched_days: list[str] = field(default_factory=list)

    @property
    def from_cache_only(self) -> bool:
        return not self.fetched_days


def group_day_runs(days: list[str], max_run_days: int) -> list[DayRun]:
    """Group sorted YYYY-MM-DD keys into runs of consecutive days."""
    runs: list[DayRun] = []
    run_start: date | None = None
    run_end: date | None = None

    for current in sorted(parse_day_key(day) for day in days):
        if (
            run_start is not None
            and run_end is not None
            and current - run_end == timedelta(days=1)
            and (current - run_start).days < max_run_days
        ):
            run_end = current
            continue
        if run_start is not None and run_end is not None:
            runs.append(DayRun(run_start, run_end))
        run_start = run_end = current

    if run_start is not None and run_end is not None:
        runs.append(DayRun(run_start, run_end))
    return runs


def _dedupe_newest_first(records: list[EventRecord]) -> list[EventRecord]:
    unique: dict[str, EventRecord] = {}
    for record in records:
        unique.setdefault(record.external_id, record)
    return sorted(unique.values(), key=lambda r: r.time, reverse=True)


class CachedEventLoader:
    """Serves event windows from the cache, fetching only stale days."""

    def __init__(
        self,
        cache: TieredCache,
        upstream: UpstreamClient,
        retry_base_delay: float = RETRY_BASE_DELAY_SECONDS,
        region_delay: float = REGION_DELAY_SECONDS,
        range_delay: float = RANGE_DELAY_SECONDS,
    ):
        self.cache = cache
        self.upstream = upstream
        self.retry_base_delay = retry_base_delay
        self.region_delay = region_delay
        self.range_delay = range_delay

    async def load(
        self,
        query: CacheQuery,
        on_progress: ProgressCallback | None = None,
    ) -> LoadResult:
        cached = await self.cache.query(query)
        result = LoadResult(
            records=_dedupe_newest_first(cached.records),
            cached_days=cached.cached_days,
        )
        if cached.is_complete:
            return result

        runs = group_day_runs(cached.stale_days, get_max_chunk_days(query.min_magnitude))
        logger.info(
            "cache_loader_fetching",
            region=query.region.value,
            stale_days=len(cached.stale_days),
            runs=len(runs),
        )

        fresh: list[EventRecord] = []
        for index, run in enumerate(runs):
            features = await self._fetch_run(run, query)
            records = parse_features(features)
            run_query = CacheQuery(
                start=run.start,
                end=run.end,
                min_magnitude=query.min_magnitude,
                max_magnitude=query.max_magnitude,
                region=query.region,
            )
            await self.cache.store(records, run_query, on_progress=on_progress)
            fresh.extend(
                r for r in records
                if query.min_magnitude <= r.magnitude <= query.max_magnitude
            )

            if index < len(runs) - 1 and self.range_delay > 0:
                await asyncio.sleep(self.range_delay)

        result.fetched_days = list(cached.stale_days)
        result.records = _dedupe_newest_first(result.records + fresh)
        return result

    async def _fetch_run(self, run: DayRun, query: CacheQuery) -> list[dict[str, Any]]:
        start = start_of_day_utc(run.start)
        end = end_of_day_utc(run.end)

        if query.region == RegionScope.WORLDWIDE:
            return await self._with_retry(
                lambda: self.upstream.fetch_window(
                    start, end, query.min_magnitude, query.max_magnitude
                )
            )

        features: list[dict[str, Any]] = []
        seen: set[str] = set()
        regions = list(US_REGION_BOUNDS.items())
        for index, (name, bounds) in enumerate(regions):
            region_features = await self._with_retry(
                lambda bounds=bounds: self.upstream.fetch_window(
                    start, end, query.min_magnitude, query.max_magnitude, bounds=bounds
                )
            )
            for feature in region_features:
                feature_id = feature.get("id")
                if feature_id in seen:
                    continue
                seen.add(feature_id)
                features.append(feature)
            logger.debug("cache_loader_region_fetched", region=name, events=len(region_features))

            if index < len(regions) - 1 and self.region_delay > 0:
                await asyncio.sleep(self.region_delay)

        features.sort(key=lambda f: (f.get("properties") or {}).get("time") or 0, reverse=True)
        return features

    async def _with_retry(self, call):
        """Retry rate-limited, server-side and transport failures with backoff."""
        attempt = 0
        while True:
            try:
                return await call()
            except UpstreamError as e:
                if not e.is_retryable or attempt >= MAX_RETRIES:
                    raise
                attempt += 1
                delay = self.retry_base_delay * (2 ** attempt)
                logger.warning(
                    "cache_loader_retrying",
                    attempt=attempt,
                    delay_seconds=delay,
                    error=e.message,
                )
                await asyncio.sleep(delay)
