"""SQLAlchemy async database models for PetrolScan.

One row per (station, coordinates, fuel type, fuel quality) holding the latest
observed price, plus a per-station crawl run log.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

from petrolscan.models import FuelQuality, FuelType, StoredRecord


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class FuelPriceRecordModel(Base):
    """Latest known price of one fuel at one outlet.

    The identity columns never change after insert; location label, fuel
    name and price are overwritten in place when a newer observation differs.
    """

    __tablename__ = "fuel_price_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Identity
    station_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    station_loc_lat: Mapped[float] = mapped_column(Float, nullable=False)
    station_loc_lon: Mapped[float] = mapped_column(Float, nullable=False)
    fuel_type: Mapped[str] = mapped_column(Text, nullable=False)
    fuel_quality: Mapped[str | None] = mapped_column(Text)

    # Mutable
    station_loc_name: Mapped[str] = mapped_column(Text, nullable=False)
    fuel_name: Mapped[str] = mapped_column(Text, nullable=False)
    fuel_price: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "station_name",
            "station_loc_lat",
            "station_loc_lon",
            "fuel_type",
            "fuel_quality",
            name="uq_fuel_price_identity",
        ),
        CheckConstraint("fuel_price >= 0", name="check_fuel_price_non_negative"),
        Index("idx_fuel_price_type_quality", "fuel_type", "fuel_quality"),
    )

    def to_record(self) -> StoredRecord:
        """Detach the row into a plain StoredRecord snapshot."""
        return StoredRecord(
            id=self.id,
            station_name=self.station_name,
            location_name=self.station_loc_name,
            lat=self.station_loc_lat,
            lon=self.station_loc_lon,
            fuel_type=FuelType(self.fuel_type),
            fuel_quality=FuelQuality(self.fuel_quality or FuelQuality.UNSPECIFIED.value),
            fuel_name=self.fuel_name,
            price=self.fuel_price,
            timestamp=self.timestamp,
        )


class CrawlRunLogModel(Base):
    """Per-station outcome of one crawl run.

    Isolates failures to individual stations for monitoring.
    """

    __tablename__ = "crawl_run_log"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    run_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    run_timestamp: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, index=True
    )
    source_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    station: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    records_inserted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_unchanged: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    records_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    message: Mapped[str | None] = mapped_column(Text)
    error_details: Mapped[dict | None] = mapped_column(JSON)
    duration_seconds: Mapped[float | None] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('SUCCESS', 'FAILED', 'PARTIAL_SUCCESS', 'CANCELLED')",
            name="check_crawl_status_valid",
        ),
        CheckConstraint("records_inserted >= 0", name="check_run_inserted_non_negative"),
        CheckConstraint("records_updated >= 0", name="check_run_updated_non_negative"),
        CheckConstraint("records_failed >= 0", name="check_run_failed_non_negative"),
    )
