"""Coverage verification against the upstream count endpoint.

Upstream keeps revising its catalogue (events added, deleted, relocated),
so local and upstream counts are compared within a tolerance band rather
than for equality.
"""

import asyncio
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

from pydantic import BaseModel

from seismistats.core.dates import day_key
from seismistats.core.logging import get_logger

logger = get_logger(__name__)

MIN_TOLERANCE = 10
TOLERANCE_RATIO = 0.01
GAP_NOISE_FLOOR = 10
DEFAULT_GAP_CHUNK_DAYS = 30
GAP_CHECK_DELAY_SECONDS = 0.2


class CoverageStatus(str, Enum):
    COMPLETE = "complete"
    MISSING = "missing"
    EXTRA = "extra"
    ERROR = "error"


class LocalCounter(Protocol):
    async def count_in_range(self, start: datetime, end: datetime, min_magnitude: float) -> int: ...


class UpstreamCounter(Protocol):
    async def fetch_count(self, start: datetime, end: datetime, min_magnitude: float) -> int: ...


class VerificationResult(BaseModel):
    start_date: datetime
    end_date: datetime
    min_magnitude: float
    db_count: int
    upstream_count: int
    difference: int
    percent_coverage: float
    status: CoverageStatus
    error: str | None = None


class CoverageGap(BaseModel):
    start_date: str
    end_date: str
    missing: int


class GapReport(BaseModel):
    gaps: list[CoverageGap]
    total_missing: int


def classify(db_count: int, upstream_count: int) -> CoverageStatus:
    difference = db_count - upstream_count
    if abs(difference) <= max(MIN_TOLERANCE, upstream_count * TOLERANCE_RATIO):
        return CoverageStatus.COMPLETE
    if difference < 0:
        return CoverageStatus.MISSING
    return CoverageStatus.EXTRA


def percent_coverage(db_count: int, upstream_count: int) -> float:
    if upstream_count <= 0:
        return 100.0
    return round(db_count / upstream_count * 100, 1)


class CoverageVerifier:
    """Diffs local record counts against upstream for one window."""

    def __init__(self, store: LocalCounter, upstream: UpstreamCounter):
        self.store = store
        self.upstream = upstream

    async def verify(
        self, start: datetime, end: datetime, min_magnitude: float
    ) -> VerificationResult:
        db_count = await self.store.count_in_range(start, end, min_magnitude)

        try:
            upstream_count = await self.upstream.fetch_count(start, end, min_magnitude)
        except Exception as e:
            logger.warning(
                "coverage_upstream_count_failed",
                start=start.isoformat(),
                end=end.isoformat(),
                error=str(e),
            )
            return VerificationResult(
                start_date=start,
                end_date=end,
                min_magnitude=min_magnitude,
                db_count=db_count,
                upstream_count=0,
                difference=0,
                percent_coverage=0,
                status=CoverageStatus.ERROR,
                error=str(e) or type(e).__name__,
            )

        status = classify(db_count, upstream_count)
        logger.debug(
            "coverage_verified",
            start=start.isoformat(),
            end=end.isoformat(),
            db_count=db_count,
            upstream_count=upstream_count,
            status=status.value,
        )
        return VerificationResult(
            start_date=start,
            end_date=end,
            min_magnitude=min_magnitude,
            db_count=db_count,
            upstream_count=upstream_count,
            difference=db_count - upstream_count,
            percent_coverage=percent_coverage(db_count, upstream_count),
            status=status,
        )


class GapFinder:
    """Walks a window in fixed slices and reports the ones missing events."""

    def __init__(
        self,
        verifier: CoverageVerifier,
        delay_seconds: float = GAP_CHECK_DELAY_SECONDS,
    ):
        self.verifier = verifier
        self.delay_seconds = delay_seconds

    async def find_gaps(
        self,
        start: datetime,
        end: datetime,
        min_magnitude: float,
        chunk_days: int = DEFAULT_GAP_CHUNK_DAYS,
    ) -> GapReport:
        if chunk_days < 1:
            raise ValueError("chunk_days must be at least 1")

        gaps: list[CoverageGap] = []
        total_missing = 0
        step = timedelta(days=chunk_days)
        window_start = start

        while window_start < end:
            window_end = min(window_start + step, end)
            result = await self.verifier.verify(window_start, window_end, min_magnitude)

            if result.status == CoverageStatus.MISSING and result.difference < -GAP_NOISE_FLOOR:
                missing = abs(result.difference)
                gaps.append(
                    CoverageGap(
                        start_date=day_key(window_start),
                        end_date=day_key(window_end),
                        missing=missing,
                    )
                )
                total_missing += missing

            window_start = window_end
            if window_start < end and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

        logger.info(
            "coverage_gaps_found",
            start=start.isoformat(),
            end=end.isoformat(),
            gaps=len(gaps),
            total_missing=total_missing,
        )
        return GapReport(gaps=gaps, total_missing=total_missing)
