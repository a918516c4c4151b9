"""
emission_factors.py – Emission factor registry used in footprint calculations.

Factors are keyed by (category, key) where *key* is either a region code
(``"us"``, ``"uk"`` …) or a subcategory (``"sedan"``, ``"short"`` …).
Every category carries a ``"global"`` entry that acts as its default.

Units are kg CO₂e per activity unit unless noted (food is tonnes CO₂e per
person-year; home and rf_factor entries are dimensionless multipliers).
Sources: US EPA GHG Emission Factors Hub, DEFRA conversion factors,
national grid averages (2023).

Resolution order for ``lookup(category, key)``
──────────────────────────────────────────────
 1. exact (category, key)
 2. the category's ``global`` entry when the key is missing
 3. hardcoded category fallback when the category itself is unknown
 4. 0.0
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, NamedTuple

from carbon_footprint.constants import GLOBAL_LOCATION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmissionFactor:
    """A single seeded emission factor."""
    category: str
    key: str
    value: float
    unit: str
    description: str | None = None
    year: int | None = None


class FactorResolution(NamedTuple):
    """Outcome of a registry lookup, including which tier answered."""
    value: float
    tier: str          # exact | global | category_fallback | zero
    matched_key: str | None


TIER_EXACT = "exact"
TIER_GLOBAL = "global"
TIER_CATEGORY_FALLBACK = "category_fallback"
TIER_ZERO = "zero"


# ─────────────────────────────────────────────────────────────
# Category-level fallbacks (used only when a category is absent)
# ─────────────────────────────────────────────────────────────
CATEGORY_FALLBACKS: Mapping[str, float] = MappingProxyType({
    "electricity": 0.475,   # kg CO₂e / kWh
    "natural_gas": 5.3,     # kg CO₂e / therm
    "car": 0.39,            # kg CO₂e / mile
    "flight": 0.22,         # kg CO₂e / passenger-mile
    "food": 1.7,            # tonnes CO₂e / person-year
})


def _normalise_key(value: str | None) -> str:
    return (value or "").strip().lower()


# ─────────────────────────────────────────────────────────────
# Scope 2 – Grid electricity (kg CO₂e / kWh), national averages
# ─────────────────────────────────────────────────────────────
ELECTRICITY_FACTORS_BY_REGION: dict[str, float] = {
    "us": 0.42,
    "uk": 0.23,
    "ca": 0.14,    # hydro-heavy
    "au": 0.79,
    "in": 0.82,    # coal-heavy
    "cn": 0.63,
    "de": 0.37,
    "fr": 0.09,    # nuclear
    "mx": 0.45,
    "it": 0.33,
    "es": 0.24,
    "jp": 0.47,
    "sg": 0.41,
    "nz": 0.15,
    "za": 0.92,
    "ng": 0.44,
    "eg": 0.48,
    "br": 0.09,
    "ar": 0.35,
    "cl": 0.42,
    GLOBAL_LOCATION: 0.475,
}

# ─────────────────────────────────────────────────────────────
# Scope 1 – Residential natural gas (kg CO₂e / therm)
# ─────────────────────────────────────────────────────────────
NATURAL_GAS_FACTORS: dict[str, float] = {
    "residential": 5.3,
    GLOBAL_LOCATION: 5.3,
}

# ─────────────────────────────────────────────────────────────
# Personal vehicles (kg CO₂e / mile)
# ─────────────────────────────────────────────────────────────
CAR_FACTORS: dict[str, float] = {
    "sedan": 0.39,
    "suv": 0.57,
    "truck": 0.68,
    "hybrid": 0.19,
    "electric": 0.10,   # includes generation
    GLOBAL_LOCATION: 0.39,
}

# ─────────────────────────────────────────────────────────────
# Public transport (kg CO₂e / passenger-mile)
# ─────────────────────────────────────────────────────────────
PUBLIC_TRANSPORT_FACTORS: dict[str, float] = {
    "bus": 0.16,
    "train": 0.12,
    "subway": 0.11,
    GLOBAL_LOCATION: 0.16,
}

# ─────────────────────────────────────────────────────────────
# Aviation (kg CO₂e / passenger-mile) + radiative forcing multiplier
# ─────────────────────────────────────────────────────────────
FLIGHT_FACTORS: dict[str, float] = {
    "short": 0.28,      # < 1000 mi, takeoff-dominated
    "medium": 0.22,     # 1000–2000 mi
    "long": 0.18,       # > 2000 mi
    "rf_factor": 1.9,   # non-CO₂ warming at altitude
    GLOBAL_LOCATION: 0.22,
}

# ─────────────────────────────────────────────────────────────
# Diet (tonnes CO₂e / person / year)
# ─────────────────────────────────────────────────────────────
FOOD_FACTORS: dict[str, float] = {
    "average": 1.7,
    "meat_heavy": 2.5,
    "vegetarian": 1.2,
    "vegan": 0.8,
    GLOBAL_LOCATION: 1.7,
}

# ─────────────────────────────────────────────────────────────
# Home type multipliers (dimensionless)
# ─────────────────────────────────────────────────────────────
HOME_TYPE_FACTORS: dict[str, float] = {
    "apartment": 0.75,
    "house": 1.0,
    "other": 0.9,
    GLOBAL_LOCATION: 0.9,   # unlisted home types count as "other"
}

_SEED_TABLES: tuple[tuple[str, dict[str, float], str], ...] = (
    ("electricity", ELECTRICITY_FACTORS_BY_REGION, "kg CO2e/kWh"),
    ("natural_gas", NATURAL_GAS_FACTORS, "kg CO2e/therm"),
    ("car", CAR_FACTORS, "kg CO2e/mile"),
    ("public_transport", PUBLIC_TRANSPORT_FACTORS, "kg CO2e/mile"),
    ("flight", FLIGHT_FACTORS, "kg CO2e/mile"),
    ("food", FOOD_FACTORS, "tonnes CO2e/year"),
    ("home", HOME_TYPE_FACTORS, "multiplier"),
)

SEED_YEAR = 2023


def seed_factors() -> list[EmissionFactor]:
    """Return the built-in factor set as EmissionFactor rows."""
    rows: list[EmissionFactor] = []
    for category, table, unit in _SEED_TABLES:
        for key, value in table.items():
            factor_unit = "multiplier" if key == "rf_factor" else unit
            rows.append(EmissionFactor(category, key, value, factor_unit, year=SEED_YEAR))
    return rows


# ─────────────────────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────────────────────

class EmissionFactorRegistry:
    """
    Read-only (category, key) → factor map with a global-default fallback chain.

    Instances never change after construction; ``with_factors`` returns a
    new registry, so a snapshot can be shared across threads without locks.

    Raises
    ------
    ValueError
        If any category lacks a ``global`` entry.
    """

    def __init__(self, factors: Iterable[EmissionFactor]) -> None:
        table: dict[tuple[str, str], EmissionFactor] = {}
        for f in factors:
            category, key = _normalise_key(f.category), _normalise_key(f.key)
            table[(category, key)] = EmissionFactor(
                category, key, float(f.value), f.unit, f.description, f.year,
            )

        categories = {category for category, _ in table}
        missing = sorted(c for c in categories if (c, GLOBAL_LOCATION) not in table)
        if missing:
            raise ValueError(
                f"Emission factor categories without a '{GLOBAL_LOCATION}' entry: "
                + ", ".join(missing)
            )

        self._factors: Mapping[tuple[str, str], EmissionFactor] = MappingProxyType(table)
        self._categories = frozenset(categories)

    def __len__(self) -> int:
        return len(self._factors)

    @property
    def categories(self) -> frozenset[str]:
        return self._categories

    def factors(self, category: str | None = None) -> list[EmissionFactor]:
        """All factors, optionally for one category, sorted by (category, key)."""
        wanted = _normalise_key(category) if category else None
        return sorted(
            (f for f in self._factors.values() if wanted is None or f.category == wanted),
            key=lambda f: (f.category, f.key),
        )

    def resolve(self, category: str, key: str | None) -> FactorResolution:
        """Resolve a factor and report which fallback tier supplied it."""
        c, k = _normalise_key(category), _normalise_key(key) or GLOBAL_LOCATION

        exact = self._factors.get((c, k))
        if exact is not None:
            return FactorResolution(exact.value, TIER_EXACT, k)

        if c in self._categories:
            default = self._factors[(c, GLOBAL_LOCATION)]
            logger.debug("Factor %s/%s missing; using %s/global=%.4f", c, k, c, default.value)
            return FactorResolution(default.value, TIER_GLOBAL, GLOBAL_LOCATION)

        if c in CATEGORY_FALLBACKS:
            logger.debug("Unknown category %r; using fallback constant %.4f", c, CATEGORY_FALLBACKS[c])
            return FactorResolution(CATEGORY_FALLBACKS[c], TIER_CATEGORY_FALLBACK, None)

        logger.debug("Unknown category %r with no fallback; using 0", c)
        return FactorResolution(0.0, TIER_ZERO, None)

    def lookup(self, category: str, key: str | None) -> float:
        """Return the factor for (category, key). Never raises."""
        return self.resolve(category, key).value

    def with_factors(self, factors: Iterable[EmissionFactor]) -> "EmissionFactorRegistry":
        """Return a new registry with *factors* overriding existing entries."""
        merged = dict(self._factors)
        for f in factors:
            merged[(_normalise_key(f.category), _normalise_key(f.key))] = f
        return EmissionFactorRegistry(merged.values())


DEFAULT_REGISTRY = EmissionFactorRegistry(seed_factors())


def get_default_registry() -> EmissionFactorRegistry:
    """Registry built from the seed tables in this module."""
    return DEFAULT_REGISTRY
