"""Earthquake records: ORM models, schemas and the durable store."""

from seismistats.core.earthquakes.models import Earthquake, SyncResult, SyncStatus
from seismistats.core.earthquakes.schemas import (
    EventRecord,
    SyncStatusEntry,
    parse_feature,
    parse_features,
)
from seismistats.core.earthquakes.store import RecordStore

__all__ = [
    "Earthquake",
    "SyncResult",
    "SyncStatus",
    "EventRecord",
    "SyncStatusEntry",
    "parse_feature",
    "parse_features",
    "RecordStore",
]
