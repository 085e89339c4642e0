"""Logging filters for sync routing.

Ingestion activity (scheduled sync, backfill runs, coverage audits) is
written to sync.log; everything else goes to backend.log.
"""

import logging

SYNC_LOGGER_PREFIXES = (
    "seismistats.core.sync",
    "seismistats.core.backfill",
    "seismistats.core.coverage",
)


def is_sync_record(record: logging.LogRecord) -> bool:
    """Return True if the record belongs to ingestion activity."""
    return record.name.startswith(SYNC_LOGGER_PREFIXES) or getattr(
        record, "is_sync", False
    )


class SyncLogFilter(logging.Filter):
    """Filter to capture only sync-related logs.

    Sync records are identified by:
    - Logger name under the sync, backfill or coverage packages
    - Record having is_sync=True attribute
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return is_sync_record(record)


class NonSyncLogFilter(logging.Filter):
    """Keep sync records out of backend.log."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not is_sync_record(record)
