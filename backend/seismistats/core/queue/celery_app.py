"""Celery application configuration."""

from celery import Celery

from seismistats.config import settings
from seismistats.core.logging import setup_logging

celery_app = Celery(
    "seismistats",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task tracking
    task_track_started=True,
    task_time_limit=1800,
    task_soft_time_limit=1700,

    # Result settings
    result_expires=86400,  # 24 hours

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Graceful shutdown
    worker_shutdown_timeout=settings.shutdown_timeout_seconds,
    worker_cancel_long_running_tasks_on_connection_loss=True,

    task_routes={
        "seismistats.sync.*": {"queue": "sync"},
    },
    task_default_queue="default",
)

if settings.usgs_sync_enabled:
    celery_app.conf.beat_schedule = {
        "sync-recent-events": {
            "task": "seismistats.sync.sync_recent",
            "schedule": settings.usgs_sync_interval_minutes * 60.0,
        },
    }

celery_app.autodiscover_tasks(["seismistats.core.sync"])

setup_logging(
    log_level=settings.log_level,
    log_format=settings.log_format,
    is_development=settings.is_development,
    logs_dir=settings.logs_dir,
    log_to_file=settings.log_to_file,
    log_file_max_bytes=settings.log_file_max_bytes,
    log_file_backup_count=settings.log_file_backup_count,
    for_celery=True,
)
