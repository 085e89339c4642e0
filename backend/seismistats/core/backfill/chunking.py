"""Magnitude-aware chunk planning.

Smaller magnitudes produce far more events per day, so the time span one
upstream request may cover shrinks as the minimum magnitude drops. The
limits below keep the expected event count of a chunk well under the
upstream per-request cap.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

# (minimum magnitude threshold, maximum chunk days), descending thresholds
MAGNITUDE_CHUNK_DAYS: tuple[tuple[float, int], ...] = (
    (6.0, 3650),  # ~100/year globally
    (5.0, 365),   # ~1,500/year
    (4.0, 180),   # ~15,000/year
    (3.0, 60),
    (2.5, 30),
    (2.0, 14),
    (1.0, 7),
    (0.0, 3),
    (-2.0, 1),    # micro events
)

DEFAULT_MAX_CHUNK_DAYS = 1
LOWEST_SUPPORTED_MAGNITUDE = MAGNITUDE_CHUNK_DAYS[-1][0]


@dataclass(frozen=True)
class Chunk:
    """Half-open window [start, end) fetched as one unit."""

    start: datetime
    end: datetime


def get_max_chunk_days(min_magnitude: float) -> int:
    """Largest safe chunk span for a minimum magnitude; first matching threshold wins."""
    for threshold, max_days in MAGNITUDE_CHUNK_DAYS:
        if min_magnitude >= threshold:
            return max_days
    return DEFAULT_MAX_CHUNK_DAYS


def effective_chunk_days(requested_days: int, min_magnitude: float) -> int:
    return min(requested_days, get_max_chunk_days(min_magnitude))


def plan_chunks(start: datetime, end: datetime, chunk_days: int) -> list[Chunk]:
    """Partition [start, end) into chunks, oldest first.

    Chunks are laid out backward from end so the most recent chunk is
    always full width; only the oldest one may be shorter, and its start
    equals start exactly.
    """
    if chunk_days <= 0:
        raise ValueError("chunk_days must be positive")

    step = timedelta(days=chunk_days)
    chunks: list[Chunk] = []
    chunk_end = end
    while chunk_end > start:
        chunk_start = max(chunk_end - step, start)
        chunks.append(Chunk(start=chunk_start, end=chunk_end))
        chunk_end = chunk_start

    chunks.reverse()
    return chunks
