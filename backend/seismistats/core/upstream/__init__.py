"""Upstream seismological feed access."""

from seismistats.core.upstream.client import (
    MAX_EVENTS_PER_QUERY,
    UpstreamClient,
    UpstreamError,
)
from seismistats.core.upstream.regions import (
    US_REGION_BOUNDS,
    GeoBounds,
    RegionScope,
)

__all__ = [
    "MAX_EVENTS_PER_QUERY",
    "UpstreamClient",
    "UpstreamError",
    "US_REGION_BOUNDS",
    "GeoBounds",
    "RegionScope",
]
