"""Queue and task management module."""

from seismistats.core.queue.celery_app import celery_app

__all__ = ["celery_app"]
