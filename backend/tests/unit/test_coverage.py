"""Unit tests for coverage verification and gap finding."""

import pytest

from seismistats.core.coverage.verifier import (
    CoverageStatus,
    CoverageVerifier,
    GapFinder,
    classify,
    percent_coverage,
)
from tests.conftest import FakeUpstream, InMemoryRecordStore, utc


class TestClassify:
    """Tests for the tolerance band."""

    @pytest.mark.parametrize(
        "db_count, upstream_count, expected",
        [
            (100, 100, CoverageStatus.COMPLETE),
            (95, 100, CoverageStatus.COMPLETE),  # within the 10-event floor
            (50, 200, CoverageStatus.MISSING),
            (250, 200, CoverageStatus.EXTRA),
            (9_900, 10_000, CoverageStatus.COMPLETE),  # within 1%
            (9_899, 10_000, CoverageStatus.MISSING),
            (0, 0, CoverageStatus.COMPLETE),
        ],
    )
    def test_status(self, db_count, upstream_count, expected):
        assert classify(db_count, upstream_count) == expected

    def test_percent_coverage(self):
        assert percent_coverage(50, 200) == 25.0
        assert percent_coverage(1, 3) == 33.3
        assert percent_coverage(250, 200) == 125.0
        assert percent_coverage(5, 0) == 100.0


@pytest.mark.asyncio
class TestVerifier:
    """Tests for CoverageVerifier.verify."""

    async def test_complete(self):
        store = InMemoryRecordStore()
        store.count_override = 100
        verifier = CoverageVerifier(store, FakeUpstream(count=100))

        result = await verifier.verify(utc(2024, 1, 1), utc(2024, 1, 31), 2.5)

        assert result.status == CoverageStatus.COMPLETE
        assert result.difference == 0
        assert result.percent_coverage == 100.0
        assert result.error is None

    async def test_missing(self):
        store = InMemoryRecordStore()
        store.count_override = 50
        result = await CoverageVerifier(store, FakeUpstream(count=200)).verify(
            utc(2024, 1, 1), utc(2024, 1, 31), 2.5
        )

        assert result.status == CoverageStatus.MISSING
        assert result.difference == -150
        assert result.percent_coverage == 25.0

    async def test_extra(self):
        store = InMemoryRecordStore()
        store.count_override = 250
        result = await CoverageVerifier(store, FakeUpstream(count=200)).verify(
            utc(2024, 1, 1), utc(2024, 1, 31), 2.5
        )

        assert result.status == CoverageStatus.EXTRA
        assert result.difference == 50

    async def test_upstream_failure_is_error_result(self):
        store = InMemoryRecordStore()
        store.count_override = 42
        result = await CoverageVerifier(store, FakeUpstream(count=None)).verify(
            utc(2024, 1, 1), utc(2024, 1, 31), 2.5
        )

        assert result.status == CoverageStatus.ERROR
        assert result.db_count == 42
        assert result.upstream_count == 0
        assert "503" in result.error


class SequencedCounter:
    """Upstream counter answering from a list, one value per call."""

    def __init__(self, counts: list[int]):
        self.counts = list(counts)
        self.calls = []

    async def fetch_count(self, start, end, min_magnitude):
        self.calls.append((start, end))
        return self.counts.pop(0)


@pytest.mark.asyncio
class TestGapFinder:
    """Tests for GapFinder.find_gaps."""

    async def test_reports_only_significant_missing_windows(self):
        store = InMemoryRecordStore()
        store.count_override = 100
        # complete, missing 150, within tolerance, extra
        upstream = SequencedCounter([100, 250, 108, 50])
        finder = GapFinder(CoverageVerifier(store, upstream), delay_seconds=0)

        report = await finder.find_gaps(utc(2024, 1, 1), utc(2024, 4, 30), 2.5, chunk_days=30)

        assert len(upstream.calls) == 4
        assert len(report.gaps) == 1
        gap = report.gaps[0]
        assert gap.start_date == "2024-01-31"
        assert gap.end_date == "2024-03-01"
        assert gap.missing == 150
        assert report.total_missing == 150

    async def test_windows_tile_the_range(self):
        store = InMemoryRecordStore()
        upstream = SequencedCounter([0, 0, 0])
        finder = GapFinder(CoverageVerifier(store, upstream), delay_seconds=0)

        await finder.find_gaps(utc(2024, 1, 1), utc(2024, 1, 25), 2.5, chunk_days=10)

        assert upstream.calls == [
            (utc(2024, 1, 1), utc(2024, 1, 11)),
            (utc(2024, 1, 11), utc(2024, 1, 21)),
            (utc(2024, 1, 21), utc(2024, 1, 25)),
        ]

    async def test_error_windows_are_not_gaps(self):
        store = InMemoryRecordStore()
        finder = GapFinder(CoverageVerifier(store, FakeUpstream(count=None)), delay_seconds=0)

        report = await finder.find_gaps(utc(2024, 1, 1), utc(2024, 3, 1), 2.5)

        assert report.gaps == []
        assert report.total_missing == 0

    async def test_rejects_bad_chunk_size(self):
        finder = GapFinder(CoverageVerifier(InMemoryRecordStore(), FakeUpstream()))
        with pytest.raises(ValueError):
            await finder.find_gaps(utc(2024, 1, 1), utc(2024, 3, 1), 2.5, chunk_days=0)
