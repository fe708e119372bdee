"""Station-scoped fuel classification rule tables.

Each station maps to two ordered rule lists: one resolving the fuel type, one
resolving the fuel quality. Rules are evaluated top to bottom against the
lower-cased fuel name and the first match wins, so list order is the tie-break
and must be kept as written.

Names are matched as the sites render them. No diacritics are stripped:
"kapalina do ostrikovacu" will not match the windscreen rule.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from petrolscan.models import FuelQuality, FuelType, Station

T = TypeVar("T")

Predicate = Callable[[str], bool]


@dataclass(frozen=True)
class Rule(Generic[T]):
    """One (predicate, result) row of a rule table."""

    predicate: Predicate
    result: T
    note: str = ""

    def matches(self, name: str) -> bool:
        return self.predicate(name)


def contains(*needles: str) -> Predicate:
    """Match when any needle occurs in the name."""
    return lambda name: any(needle in name for needle in needles)


def starts_with(*prefixes: str) -> Predicate:
    return lambda name: name.startswith(prefixes)


def ends_with(*suffixes: str) -> Predicate:
    return lambda name: name.endswith(suffixes)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda name: all(predicate(name) for predicate in predicates)


def not_(predicate: Predicate) -> Predicate:
    return lambda name: not predicate(name)


# Premium variants are marked by a trailing "plus" or "+"
is_plus_variant = ends_with("plus", "+")

# Shared by almost every station
_ADBLUE = Rule(contains("adblue", "ad blue"), FuelType.ADBLUE)
_LPG = Rule(contains("lpg"), FuelType.LPG)
_CNG = Rule(contains("cng"), FuelType.CNG)


FUEL_TYPE_RULES: dict[Station, list[Rule[FuelType]]] = {
    Station.GLOBUS: [
        _ADBLUE,
        Rule(contains("ostřikovač"), FuelType.WINDSCREEN_CLEANER, "Kapalina do ostřikovačů"),
        _LPG,
        _CNG,
        Rule(contains("natural"), FuelType.PETROL, "Natural 95, Natural 95 Plus"),
        Rule(contains("diesel", "nafta"), FuelType.DIESEL, "Diesel, Diesel Plus"),
    ],
    Station.ORLEN: [
        _ADBLUE,
        _LPG,
        _CNG,
        Rule(contains("hvo"), FuelType.HVO, "HVO100"),
        Rule(contains("diesel", "nafta"), FuelType.DIESEL, "Efecta Diesel, Verva Diesel"),
        Rule(contains("efecta", "verva", "natural"), FuelType.PETROL, "Efecta 95, Verva 100"),
    ],
    Station.SHELL: [
        _ADBLUE,
        _LPG,
        _CNG,
        Rule(contains("diesel"), FuelType.DIESEL, "FuelSave Diesel, V-Power Diesel"),
        Rule(contains("fuelsave", "v-power", "natural"), FuelType.PETROL, "FuelSave 95, V-Power Racing"),
    ],
    Station.EUROOIL: [
        _ADBLUE,
        _LPG,
        _CNG,
        # "HVO Diesel" must resolve before the generic diesel rule
        Rule(contains("hvo"), FuelType.HVO, "HVO Diesel"),
        Rule(contains("diesel", "nafta"), FuelType.DIESEL),
        Rule(contains("natural", "ba 95"), FuelType.PETROL, "Natural 95, Natural 95 Premium"),
    ],
    Station.ONO: [
        # ONO renders fuels as images; names are the image codes
        Rule(starts_with("adb"), FuelType.ADBLUE),
        _LPG,
        _CNG,
        Rule(starts_with("n9"), FuelType.PETROL, "n95c, n98c"),
        Rule(starts_with("nm"), FuelType.DIESEL, "nmc"),
    ],
    Station.MOL: [
        _ADBLUE,
        _LPG,
        _CNG,
        Rule(contains("diesel"), FuelType.DIESEL, "EVO Diesel, EVO Diesel Plus"),
        Rule(contains("evo", "natural"), FuelType.PETROL, "EVO 95, EVO 100 Plus"),
    ],
    Station.OMV: [
        _ADBLUE,
        _LPG,
        _CNG,
        Rule(contains("diesel"), FuelType.DIESEL, "Diesel, MaxxMotion Diesel"),
        Rule(contains("maxxmotion", "natural"), FuelType.PETROL, "Natural 95, MaxxMotion 100"),
    ],
    Station.PRIM: [
        _ADBLUE,
        _LPG,
        _CNG,
        Rule(contains("natural"), FuelType.PETROL),
        Rule(contains("diesel", "nafta"), FuelType.DIESEL),
    ],
    Station.MAKRO: [
        _ADBLUE,
        Rule(contains("ostřikovač"), FuelType.WINDSCREEN_CLEANER),
        _LPG,
        _CNG,
        Rule(contains("natural"), FuelType.PETROL),
        Rule(contains("diesel", "nafta"), FuelType.DIESEL),
    ],
}


FUEL_QUALITY_RULES: dict[Station, list[Rule[FuelQuality]]] = {
    Station.GLOBUS: [
        Rule(all_of(contains("natural", "diesel"), is_plus_variant), FuelQuality.PREMIUM),
        Rule(contains("natural", "diesel"), FuelQuality.STANDARD),
    ],
    Station.ORLEN: [
        Rule(contains("verva"), FuelQuality.PREMIUM),
        Rule(contains("efecta"), FuelQuality.STANDARD),
    ],
    Station.SHELL: [
        Rule(contains("racing"), FuelQuality.RACING, "V-Power Racing"),
        Rule(contains("v-power"), FuelQuality.PREMIUM),
        Rule(contains("fuelsave"), FuelQuality.STANDARD),
    ],
    Station.EUROOIL: [
        Rule(ends_with("premium"), FuelQuality.PREMIUM),
        Rule(contains("natural", "diesel", "nafta", "ba 95"), FuelQuality.STANDARD),
    ],
    Station.ONO: [
        Rule(starts_with("n95"), FuelQuality.STANDARD),
        Rule(starts_with("n98"), FuelQuality.PREMIUM),
        # no data for diesel codes
    ],
    Station.MOL: [
        Rule(is_plus_variant, FuelQuality.PREMIUM),
        Rule(contains("evo"), FuelQuality.STANDARD),
    ],
    Station.OMV: [
        Rule(contains("maxxmotion 100"), FuelQuality.PREMIUM),
        Rule(all_of(contains("maxxmotion"), contains("diesel")), FuelQuality.PREMIUM),
        Rule(contains("maxxmotion"), FuelQuality.MIDGRADE, "MaxxMotion 95"),
        Rule(all_of(contains("natural", "diesel"), not_(contains("maxxmotion"))), FuelQuality.STANDARD),
    ],
    # Prim and Makro expose no grade in their fuel names
    Station.PRIM: [],
    Station.MAKRO: [],
}
