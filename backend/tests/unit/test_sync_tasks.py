"""Unit tests for the Celery sync tasks and schedule."""

from unittest.mock import AsyncMock, patch

from seismistats.core.dates import utc_now
from tests.conftest import utc


class TestCeleryConfig:
    def test_sync_tasks_routed_to_sync_queue(self):
        from seismistats.core.queue import celery_app

        assert celery_app.conf.task_routes["seismistats.sync.*"] == {"queue": "sync"}
        assert celery_app.conf.task_serializer == "json"

    def test_beat_schedule_uses_interval(self):
        from seismistats.config import settings
        from seismistats.core.queue import celery_app

        if not settings.usgs_sync_enabled:
            assert "sync-recent-events" not in (celery_app.conf.beat_schedule or {})
            return

        entry = celery_app.conf.beat_schedule["sync-recent-events"]
        assert entry["task"] == "seismistats.sync.sync_recent"
        assert entry["schedule"] == settings.usgs_sync_interval_minutes * 60.0


class TestSyncTasks:
    def test_sync_range_parses_iso_window(self):
        from seismistats.core.sync import tasks

        run_sync = AsyncMock(return_value={"status": "success", "events_synced": 3})
        with patch.object(tasks, "_run_sync", run_sync):
            result = tasks.sync_range(
                "2024-01-01T00:00:00+00:00",
                "2024-01-02T00:00:00",
                min_magnitude=2.5,
            )

        assert result["events_synced"] == 3
        run_sync.assert_awaited_once_with(
            utc(2024, 1, 1), utc(2024, 1, 2), 2.5, None
        )

    def test_sync_recent_uses_trailing_window(self):
        from seismistats.config import settings
        from seismistats.core.sync import tasks

        run_sync = AsyncMock(return_value={"status": "success", "events_synced": 0})
        before = utc_now()
        with patch.object(tasks, "_run_sync", run_sync):
            tasks.sync_recent()

        start, end, min_magnitude = run_sync.await_args.args
        assert end >= before
        assert (end - start).total_seconds() == settings.usgs_sync_window_minutes * 60
        assert min_magnitude == settings.usgs_sync_min_magnitude
