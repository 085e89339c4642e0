"""Earthquake and sync-status models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from seismistats.core.database.base import Base, TimestampMixin

DEFAULT_SOURCE = "USGS"


class SyncResult(str, Enum):
    """Outcome of one fetch-and-store attempt."""

    SUCCESS = "success"
    ERROR = "error"


class Earthquake(Base, TimestampMixin):
    """One seismic event as reported by an upstream source."""

    __tablename__ = "earthquakes"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Identity: (source, source_event_id) is the upsert key
    source: Mapped[str] = mapped_column(Text, nullable=False, default=DEFAULT_SOURCE)
    source_event_id: Mapped[str] = mapped_column(Text, nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    depth_km: Mapped[float | None] = mapped_column(Float)

    magnitude: Mapped[float] = mapped_column(Float, nullable=False)
    magnitude_type: Mapped[str | None] = mapped_column(String(16))

    place: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str | None] = mapped_column(String(32))
    tsunami_warning: Mapped[bool] = mapped_column(Boolean, default=False)
    felt_reports: Mapped[int | None] = mapped_column(Integer)
    cdi: Mapped[float | None] = mapped_column(Float)
    mmi: Mapped[float | None] = mapped_column(Float)
    alert: Mapped[str | None] = mapped_column(String(16))

    # Reserved for multi-source deduplication
    canonical_event_id: Mapped[int | None] = mapped_column(BigInteger)
    is_canonical: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index(
            "idx_earthquakes_source_unique",
            "source",
            "source_event_id",
            unique=True,
        ),
        Index("idx_earthquakes_magnitude", "magnitude"),
    )

    def __repr__(self) -> str:
        return f"<Earthquake {self.source}:{self.source_event_id} M{self.magnitude}>"


Index(
    "idx_earthquakes_time_mag",
    Earthquake.time.desc(),
    Earthquake.magnitude.desc(),
)


class SyncStatus(Base):
    """Append-only audit entry for one fetch-and-store attempt."""

    __tablename__ = "sync_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    last_sync_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_event_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    events_synced: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(16), default=SyncResult.SUCCESS.value)
    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("idx_sync_status_created", "created_at"),)

    def __repr__(self) -> str:
        return f"<SyncStatus {self.source} {self.status} events={self.events_synced}>"
