"""PetrolScan Pydantic models for type-safe data validation.

Observations come from crawlers; classified observations carry the canonical
fuel taxonomy and expose the identity key used by the store.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

# Coordinates used when geocoding an outlet label failed
SENTINEL_COORDINATE = 0.0


class Station(str, Enum):
    """Known fuel retail brands the crawler understands."""

    GLOBUS = "globus"
    ORLEN = "orlen"
    SHELL = "shell"
    EUROOIL = "eurooil"
    ONO = "ono"
    MOL = "mol"
    OMV = "omv"
    PRIM = "prim"
    MAKRO = "makro"


class FuelType(str, Enum):
    """Canonical fuel types."""

    PETROL = "PETROL"
    DIESEL = "DIESEL"
    CNG = "CNG"  # Compressed natural gas
    LPG = "LPG"  # Liquefied petroleum gas
    HVO = "HVO"  # Hydrotreated vegetable oil
    ADBLUE = "ADBLUE"
    WINDSCREEN_CLEANER = "WINDSCREEN_CLEANER"
    UNCLASSIFIED = "UNCLASSIFIED"


class FuelQuality(str, Enum):
    """Canonical fuel grades."""

    STANDARD = "STANDARD"
    MIDGRADE = "MIDGRADE"
    PREMIUM = "PREMIUM"
    RACING = "RACING"  # Offered by some brands only
    UNSPECIFIED = "UNSPECIFIED"  # Valid value, many sources expose no grade


class Location(BaseModel):
    """Outlet location label with resolved GPS coordinates."""

    name: str
    lat: float = SENTINEL_COORDINATE
    lon: float = SENTINEL_COORDINATE

    @property
    def is_sentinel(self) -> bool:
        """True when coordinates are the geocoding-failure fallback."""
        return self.lat == SENTINEL_COORDINATE and self.lon == SENTINEL_COORDINATE


class Observation(BaseModel):
    """One scraped fuel price at one outlet, before classification."""

    station: Station
    station_name: str
    location: Location
    fuel_name: str
    price: float

    @field_validator("station", mode="before")
    @classmethod
    def normalize_station(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("station_name", "fuel_name")
    @classmethod
    def require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("price")
    @classmethod
    def require_finite_price(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("price must be a finite number")
        return value


class ClassifiedObservation(Observation):
    """Observation with the canonical fuel type and quality attached."""

    fuel_type: FuelType = FuelType.UNCLASSIFIED
    fuel_quality: FuelQuality = FuelQuality.UNSPECIFIED

    @classmethod
    def from_observation(
        cls,
        observation: Observation,
        fuel_type: FuelType,
        fuel_quality: FuelQuality,
    ) -> ClassifiedObservation:
        return cls(
            **observation.model_dump(),
            fuel_type=fuel_type,
            fuel_quality=fuel_quality,
        )

    @property
    def identity_key(self) -> IdentityKey:
        return IdentityKey(
            station_name=self.station_name,
            lat=self.location.lat,
            lon=self.location.lon,
            fuel_type=self.fuel_type,
            fuel_quality=self.fuel_quality,
        )


@dataclass(frozen=True)
class IdentityKey:
    """Natural identity of a stored fuel price record.

    Quality is part of the key; UNSPECIFIED matches only UNSPECIFIED.
    """

    station_name: str
    lat: float
    lon: float
    fuel_type: FuelType
    fuel_quality: FuelQuality

    def describe(self) -> str:
        return (
            f"{self.station_name} @ ({self.lat}, {self.lon}) "
            f"{self.fuel_type.value}/{self.fuel_quality.value}"
        )


class StoredRecord(BaseModel):
    """Detached snapshot of a persisted fuel price row."""

    id: int
    station_name: str
    location_name: str
    lat: float
    lon: float
    fuel_type: FuelType
    fuel_quality: FuelQuality
    fuel_name: str
    price: float
    timestamp: datetime | None = Field(default=None, description="Server time of last write")

    @property
    def identity_key(self) -> IdentityKey:
        return IdentityKey(
            station_name=self.station_name,
            lat=self.lat,
            lon=self.lon,
            fuel_type=self.fuel_type,
            fuel_quality=self.fuel_quality,
        )
