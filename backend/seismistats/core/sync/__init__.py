"""Incremental sync: the shared fetch and store path plus its Celery tasks."""

from seismistats.core.sync.service import SyncOutcome, SyncService

__all__ = ["SyncOutcome", "SyncService"]
