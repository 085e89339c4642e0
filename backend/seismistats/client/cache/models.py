"""Cache bookkeeping types."""

from dataclasses import dataclass, field
from datetime import date, datetime

from pydantic import BaseModel

from seismistats.client.cache.ranges import MagnitudeRange, format_magnitude
from seismistats.core.earthquakes.schemas import EventRecord
from seismistats.core.upstream.regions import RegionScope

SCHEMA_VERSION = 2


def cache_key(day: str, region: str) -> str:
    return f"{day}|{region}"


def meta_key(day: str, region: str, magnitudes: MagnitudeRange) -> str:
    return (
        f"{day}|{region}|{format_magnitude(magnitudes.min_magnitude)}"
        f"|{format_magnitude(magnitudes.max_magnitude)}"
    )


class CacheEntry(BaseModel):
    """One cached event plus bookkeeping.

    region and cache_key are None only for entries written before regions
    were tracked (schema version 1).
    """

    record: EventRecord
    cache_date: str
    cached_at: datetime
    region: str | None = None
    cache_key: str | None = None

    @property
    def entry_id(self) -> str:
        return f"{self.region or ''}|{self.record.external_id}"


class DailyMeta(BaseModel):
    """What was fetched for one (day, region, magnitude range)."""

    day: str
    region: str
    min_magnitude: float
    max_magnitude: float
    fetched_at: datetime
    event_count: int

    @property
    def magnitudes(self) -> MagnitudeRange:
        return MagnitudeRange(self.min_magnitude, self.max_magnitude)

    @property
    def key(self) -> str:
        return meta_key(self.day, self.region, self.magnitudes)


class CacheInfo(BaseModel):
    total_events: int = 0
    oldest_date: str | None = None
    newest_date: str | None = None
    last_updated: datetime | None = None
    version: int = SCHEMA_VERSION


@dataclass(frozen=True)
class CacheQuery:
    start: date
    end: date
    min_magnitude: float
    max_magnitude: float
    region: RegionScope = RegionScope.WORLDWIDE

    @property
    def magnitudes(self) -> MagnitudeRange:
        return MagnitudeRange(self.min_magnitude, self.max_magnitude)


@dataclass
class CacheResult:
    records: list[EventRecord] = field(default_factory=list)
    stale_days: list[str] = field(default_factory=list)
    cached_days: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.stale_days


@dataclass
class CacheStats:
    total_events: int
    historical_events: int
    recent_events: int
    total_days: int
    stale_days: int
    size_estimate_kb: int


@dataclass
class IntegrityReport:
    is_healthy: bool
    issues: list[str] = field(default_factory=list)
    recommendation: str | None = None


@dataclass
class CacheProgress:
    """Reported once per day while store() writes."""

    operation: str
    current_step: int
    total_steps: int
    message: str
    started_at: datetime
    current_date: str | None = None
