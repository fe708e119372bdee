"""Fuel name classifier.

Maps a (station, raw fuel name) pair onto the canonical fuel type and quality
using the ordered rule tables in :mod:`petrolscan.classification.rules`.
Type and quality resolve independently. Unmatched input is a classification
gap, returned as UNCLASSIFIED / UNSPECIFIED rather than raised.
"""

from __future__ import annotations

from petrolscan.classification.rules import (
    FUEL_QUALITY_RULES,
    FUEL_TYPE_RULES,
    Rule,
    T,
)
from petrolscan.models import (
    ClassifiedObservation,
    FuelQuality,
    FuelType,
    Observation,
    Station,
)


class FuelClassifier:
    """Stateless classifier over station-scoped rule tables."""

    def __init__(
        self,
        type_rules: dict[Station, list[Rule[FuelType]]] | None = None,
        quality_rules: dict[Station, list[Rule[FuelQuality]]] | None = None,
    ):
        self._type_rules = FUEL_TYPE_RULES if type_rules is None else type_rules
        self._quality_rules = FUEL_QUALITY_RULES if quality_rules is None else quality_rules

    def classify(self, station: Station | str, fuel_name: str | None) -> tuple[FuelType, FuelQuality]:
        """Classify a raw fuel name scraped from ``station``.

        Args:
            station: Station enum member or its string value (case-insensitive)
            fuel_name: Fuel name as rendered by the station website

        Returns:
            (FuelType, FuelQuality); (UNCLASSIFIED, UNSPECIFIED) when nothing matches
        """
        resolved = _resolve_station(station)
        if resolved is None or not isinstance(fuel_name, str) or not fuel_name:
            return FuelType.UNCLASSIFIED, FuelQuality.UNSPECIFIED

        name = fuel_name.strip().lower()

        fuel_type = _first_match(self._type_rules.get(resolved, []), name, FuelType.UNCLASSIFIED)
        fuel_quality = _first_match(
            self._quality_rules.get(resolved, []), name, FuelQuality.UNSPECIFIED
        )
        return fuel_type, fuel_quality

    def classify_observation(self, observation: Observation) -> ClassifiedObservation:
        """Attach fuel type and quality to an observation."""
        fuel_type, fuel_quality = self.classify(observation.station, observation.fuel_name)
        return ClassifiedObservation.from_observation(observation, fuel_type, fuel_quality)


def _resolve_station(station: Station | str) -> Station | None:
    if isinstance(station, Station):
        return station
    if not isinstance(station, str):
        return None
    try:
        return Station(station.strip().lower())
    except ValueError:
        return None


def _first_match(rules: list[Rule[T]], name: str, default: T) -> T:
    for rule in rules:
        if rule.matches(name):
            return rule.result
    return default


_default_classifier = FuelClassifier()


def classify(station: Station | str, fuel_name: str | None) -> tuple[FuelType, FuelQuality]:
    """Classify with the built-in rule tables (convenience wrapper)."""
    return _default_classifier.classify(station, fuel_name)
