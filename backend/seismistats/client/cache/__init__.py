"""Tiered client-side event cache."""

from seismistats.client.cache.backends import (
    CacheBackend,
    MemoryCacheBackend,
    RedisCacheBackend,
)
from seismistats.client.cache.models import (
    SCHEMA_VERSION,
    CacheEntry,
    CacheInfo,
    CacheProgress,
    CacheQuery,
    CacheResult,
    CacheStats,
    DailyMeta,
    IntegrityReport,
)
from seismistats.client.cache.ranges import MagnitudeRange
from seismistats.client.cache.tiered import (
    HISTORICAL_THRESHOLD_DAYS,
    RECENT_DATA_MAX_AGE_HOURS,
    TieredCache,
)

__all__ = [
    "CacheBackend",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "SCHEMA_VERSION",
    "CacheEntry",
    "CacheInfo",
    "CacheProgress",
    "CacheQuery",
    "CacheResult",
    "CacheStats",
    "DailyMeta",
    "IntegrityReport",
    "MagnitudeRange",
    "HISTORICAL_THRESHOLD_DAYS",
    "RECENT_DATA_MAX_AGE_HOURS",
    "TieredCache",
]
