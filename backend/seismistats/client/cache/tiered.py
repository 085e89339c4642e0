"""Per-day event cache with historical and recent freshness tiers.

Days older than HISTORICAL_THRESHOLD_DAYS are treated as settled: once
fetched they are never refetched and never evicted. Recent days go stale
RECENT_DATA_MAX_AGE_HOURS after they were fetched.

A request for a magnitude range is satisfied by metadata for the exact
range or by any broader range fetched for the same day and region; the
returned records are filtered down to the requested range either way.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Iterable

from seismistats.client.cache.backends import CacheBackend, RedisCacheBackend
from seismistats.client.cache.models import (
    CacheEntry,
    CacheInfo,
    CacheProgress,
    CacheQuery,
    CacheResult,
    CacheStats,
    DailyMeta,
    IntegrityReport,
    cache_key,
    meta_key,
)
from seismistats.config import Settings, get_settings
from seismistats.core.dates import day_key, iter_days, parse_day_key, utc_now
from seismistats.core.earthquakes.schemas import EventRecord
from seismistats.core.logging import get_logger

logger = get_logger(__name__)

HISTORICAL_THRESHOLD_DAYS = 28
RECENT_DATA_MAX_AGE_HOURS = 24
BYTES_PER_EVENT_ESTIMATE = 500
MISMATCH_NOISE_FLOOR = 10
MISMATCH_REPORT_THRESHOLD = 5

CLEAR_RECOMMENDATION = "The cache may have stale or corrupted data. Clear the cache to refresh."
RESET_RECOMMENDATION = "Reset the cache to fix cache issues."

ProgressCallback = Callable[[CacheProgress], None]


class TieredCache:
    """Client-side cache consulted before any upstream request."""

    def __init__(
        self,
        backend: CacheBackend,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backend = backend
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TieredCache":
        """Redis-backed cache at cache_redis_url under cache_key_prefix."""
        settings = settings or get_settings()
        return cls(
            RedisCacheBackend.from_url(
                settings.cache_redis_url, prefix=settings.cache_key_prefix
            )
        )

    def is_historical(self, day: date | str) -> bool:
        if isinstance(day, str):
            day = parse_day_key(day)
        threshold = self.clock().date() - timedelta(days=HISTORICAL_THRESHOLD_DAYS)
        return day < threshold

    def is_stale(self, meta: DailyMeta) -> bool:
        if self.is_historical(meta.day):
            return False
        return self.clock() - meta.fetched_at > timedelta(hours=RECENT_DATA_MAX_AGE_HOURS)

    async def find_meta(self, day: str, query: CacheQuery) -> DailyMeta | None:
        """Exact metadata for the query, else the freshest covering entry."""
        region = query.region.value
        exact = await self.backend.get_meta(day, meta_key(day, region, query.magnitudes))
        if exact is not None:
            return exact

        covering = [
            meta
            for meta in await self.backend.metas_for_day(day)
            if meta.region == region and meta.magnitudes.covers(query.magnitudes)
        ]
        if not covering:
            return None
        return max(covering, key=lambda meta: meta.fetched_at)

    async def query(self, query: CacheQuery) -> CacheResult:
        result = CacheResult()
        region = query.region.value
        magnitudes = query.magnitudes

        for current in iter_days(query.start, query.end):
            day = day_key(current)
            meta = await self.find_meta(day, query)

            if meta is None or self.is_stale(meta):
                result.stale_days.append(day)
                continue

            result.cached_days.append(day)
            for entry in await self.backend.entries_for_day(day):
                if entry.region == region and magnitudes.contains(entry.record.magnitude):
                    result.records.append(entry.record)

        logger.debug(
            "cache_queried",
            region=region,
            cached_days=len(result.cached_days),
            stale_days=len(result.stale_days),
            records=len(result.records),
        )
        return result

    async def store(
        self,
        records: Iterable[EventRecord],
        query: CacheQuery,
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """Cache records fetched for query, grouped by UTC day.

        Every day of the query window gets metadata, including days that
        returned no events; otherwise an empty day would never count as
        cached. Returns the number of records written.
        """
        region = query.region.value
        by_day: dict[str, list[EventRecord]] = defaultdict(list)
        for record in records:
            by_day[day_key(record.time)].append(record)
        for current in iter_days(query.start, query.end):
            by_day.setdefault(day_key(current), [])

        days = sorted(by_day)
        started_at = self.clock()
        written = 0

        for step, day in enumerate(days, start=1):
            if on_progress is not None:
                on_progress(
                    CacheProgress(
                        operation="storing",
                        current_step=step,
                        total_steps=len(days),
                        message=f"Caching {day}...",
                        started_at=started_at,
                        current_date=day,
                    )
                )

            now = self.clock()
            day_records = by_day[day]
            entries = [
                CacheEntry(
                    record=record,
                    cache_date=day,
                    cached_at=now,
                    region=region,
                    cache_key=cache_key(day, region),
                )
                for record in day_records
            ]
            meta = DailyMeta(
                day=day,
                region=region,
                min_magnitude=query.min_magnitude,
                max_magnitude=query.max_magnitude,
                fetched_at=now,
                event_count=len(day_records),
            )
            await self.backend.write_day(day, entries, meta)
            written += len(entries)

        await self.refresh_info()
        logger.info("cache_stored", region=region, days=len(days), records=written)
        return written

    async def get_info(self) -> CacheInfo:
        info = await self.backend.get_info()
        return info if info is not None else CacheInfo()

    async def refresh_info(self) -> CacheInfo:
        days = await self.backend.entry_days()
        info = CacheInfo(
            total_events=await self.backend.count_entries(),
            oldest_date=days[0] if days else None,
            newest_date=days[-1] if days else None,
            last_updated=self.clock(),
        )
        await self.backend.put_info(info)
        return info

    async def clear(self) -> None:
        await self.backend.clear()
        logger.info("cache_cleared")

    async def clear_stale(self) -> int:
        """Evict stale recent metadata and records no metadata vouches for any more.

        Historical days are never evicted. Returns the number of records removed.
        """
        cleared = 0
        touched: set[tuple[str, str]] = set()

        for meta in await self.backend.all_metas():
            if self.is_historical(meta.day) or not self.is_stale(meta):
                continue
            await self.backend.delete_meta(meta.day, meta.key)
            touched.add((meta.day, meta.region))

        for day, region in sorted(touched):
            remaining = [
                meta for meta in await self.backend.metas_for_day(day) if meta.region == region
            ]
            if not remaining:
                cleared += await self.backend.delete_entries(day, region)

        await self.refresh_info()
        logger.info("cache_stale_cleared", days=len(touched), records=cleared)
        return cleared

    async def get_stats(self) -> CacheStats:
        entries_per_day: dict[str, int] = defaultdict(int)
        for entry in await self.backend.all_entries():
            entries_per_day[entry.cache_date] += 1

        metas_per_day: dict[str, list[DailyMeta]] = defaultdict(list)
        for meta in await self.backend.all_metas():
            metas_per_day[meta.day].append(meta)

        historical_events = 0
        recent_events = 0
        for day, count in entries_per_day.items():
            if self.is_historical(day):
                historical_events += count
            else:
                recent_events += count

        stale_days = sum(
            1
            for day, metas in metas_per_day.items()
            if all(self.is_stale(meta) for meta in metas)
        )
        total_events = historical_events + recent_events

        return CacheStats(
            total_events=total_events,
            historical_events=historical_events,
            recent_events=recent_events,
            total_days=len(metas_per_day),
            stale_days=stale_days,
            size_estimate_kb=round(total_events * BYTES_PER_EVENT_ESTIMATE / 1024),
        )

    async def check_integrity(self) -> IntegrityReport:
        """Look for untagged records, orphaned days and count mismatches."""
        issues: list[str] = []

        try:
            entries = await self.backend.all_entries()
            metas = await self.backend.all_metas()

            untagged = [e for e in entries if not e.region or not e.cache_key]
            if untagged:
                issues.append(f"{len(untagged)} records missing region/cache metadata")

            actual: dict[str, int] = defaultdict(int)
            for entry in entries:
                if entry.cache_key:
                    actual[entry.cache_key] += 1

            if entries and not metas:
                issues.append("Records exist but daily metadata is missing")
            else:
                described = {cache_key(meta.day, meta.region) for meta in metas}
                orphaned = [key for key in actual if key not in described]
                if orphaned:
                    issues.append(f"{len(orphaned)} days have records but no metadata")

            mismatches = 0
            for meta in metas:
                count = actual.get(cache_key(meta.day, meta.region), 0)
                if (meta.event_count == 0 and count > MISMATCH_NOISE_FLOOR) or (
                    meta.event_count > 0 and count == 0
                ):
                    mismatches += 1
            if mismatches > MISMATCH_REPORT_THRESHOLD:
                issues.append(f"{mismatches} days have significant count mismatches")
        except Exception as e:
            logger.error("cache_integrity_check_failed", error=str(e))
            return IntegrityReport(
                is_healthy=False,
                issues=[f"Failed to check cache integrity: {e}"],
                recommendation=RESET_RECOMMENDATION,
            )

        if issues:
            logger.warning("cache_integrity_issues", issues=issues)
            return IntegrityReport(
                is_healthy=False, issues=issues, recommendation=CLEAR_RECOMMENDATION
            )
        return IntegrityReport(is_healthy=True)
