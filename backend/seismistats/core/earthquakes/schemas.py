"""Event record schema and GeoJSON feature parsing."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from seismistats.core.dates import from_epoch_ms
from seismistats.core.earthquakes.models import DEFAULT_SOURCE
from seismistats.core.logging import get_logger

logger = get_logger(__name__)

ALERT_LEVELS = {"green", "yellow", "orange", "red"}


class EventRecord(BaseModel):
    """One seismic event observation, normalized from an upstream feature."""

    model_config = ConfigDict(frozen=True)

    source: str = DEFAULT_SOURCE
    external_id: str
    time: datetime
    latitude: float
    longitude: float
    depth_km: float | None = None
    magnitude: float
    magnitude_type: str | None = None
    place: str | None = None
    status: str | None = None
    tsunami: bool = False
    felt_reports: int | None = None
    cdi: float | None = None
    mmi: float | None = None
    alert: str | None = None
    is_canonical: bool = True
    canonical_event_id: int | None = None

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the earthquakes table."""
        return {
            "time": self.time,
            "source": self.source,
            "source_event_id": self.external_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "depth_km": self.depth_km,
            "magnitude": self.magnitude,
            "magnitude_type": self.magnitude_type,
            "place": self.place,
            "status": self.status,
            "tsunami_warning": self.tsunami,
            "felt_reports": self.felt_reports,
            "cdi": self.cdi,
            "mmi": self.mmi,
            "alert": self.alert,
            "is_canonical": self.is_canonical,
            "canonical_event_id": self.canonical_event_id,
        }


class SyncStatusEntry(BaseModel):
    """Audit record for one fetch-and-store attempt."""

    source: str = DEFAULT_SOURCE
    last_sync_time: datetime
    last_event_time: datetime | None = None
    events_synced: int = 0
    status: str
    error_message: str | None = None
    created_at: datetime | None = None


class MagnitudeBucket(BaseModel):
    floor: int
    count: int

    @property
    def label(self) -> str:
        return f"M{self.floor} to M{self.floor + 1}"


class StoreExtent(BaseModel):
    total: int = 0
    oldest: datetime | None = None
    newest: datetime | None = None


class SourceCount(BaseModel):
    source: str
    count: int = Field(ge=0)


def parse_feature(feature: dict[str, Any], source: str = DEFAULT_SOURCE) -> EventRecord | None:
    """Convert a GeoJSON feature to an EventRecord.

    Returns None for features without an id, magnitude, time or coordinates;
    those cannot be stored because the columns are required.
    """
    props = feature.get("properties") or {}
    coordinates = (feature.get("geometry") or {}).get("coordinates") or []

    magnitude = props.get("mag")
    event_time = props.get("time")
    has_coordinates = (
        len(coordinates) >= 2
        and coordinates[0] is not None
        and coordinates[1] is not None
    )
    if (
        not feature.get("id")
        or magnitude is None
        or event_time is None
        or not has_coordinates
    ):
        logger.debug(
            "feature_skipped",
            external_id=feature.get("id"),
            has_magnitude=magnitude is not None,
            has_time=event_time is not None,
            has_coordinates=has_coordinates,
        )
        return None

    alert = props.get("alert")
    if alert is not None and alert not in ALERT_LEVELS:
        alert = None

    return EventRecord(
        source=source,
        external_id=str(feature["id"]),
        time=from_epoch_ms(event_time),
        longitude=coordinates[0],
        latitude=coordinates[1],
        depth_km=coordinates[2] if len(coordinates) > 2 else None,
        magnitude=magnitude,
        magnitude_type=props.get("magType"),
        place=props.get("place"),
        status=props.get("status"),
        tsunami=props.get("tsunami") == 1,
        felt_reports=props.get("felt"),
        cdi=props.get("cdi"),
        mmi=props.get("mmi"),
        alert=alert,
    )


def parse_features(features: list[dict[str, Any]], source: str = DEFAULT_SOURCE) -> list[EventRecord]:
    records = []
    skipped = 0
    for feature in features:
        try:
            record = parse_feature(feature, source=source)
        except ValidationError as e:
            logger.warning(
                "feature_invalid",
                external_id=feature.get("id"),
                errors=e.error_count(),
            )
            record = None
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.info("features_skipped", skipped=skipped, parsed=len(records))
    return records
