"""
countries.py – Country reference data and result summaries.

Country rows carry per-capita average footprints (tonnes CO₂e / year) and
the headline factors used for each country.  The summary helpers turn a
``FootprintResult`` into the figures shown next to it: category shares,
comparison with a national average, and share of the 1.5 °C budget.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from carbon_footprint.constants import CARBON_BUDGET_TONNES, GLOBAL_LOCATION
from carbon_footprint.schemas import FootprintResult


@dataclass(frozen=True)
class Country:
    code: str
    name: str
    region: str
    average_footprint: float      # tonnes CO₂e / person / year
    electricity_factor: float     # kg CO₂e / kWh
    transport_factor: float       # kg CO₂e / mile
    food_factor: float            # tonnes CO₂e / person / year
    gas_factor: float = 5.3       # kg CO₂e / therm


_COUNTRIES: tuple[Country, ...] = (
    # North America
    Country("us", "United States", "North America", 16.1, 0.42, 0.39, 1.7),
    Country("ca", "Canada", "North America", 15.4, 0.14, 0.39, 1.7),
    Country("mx", "Mexico", "North America", 3.7, 0.45, 0.39, 1.4),
    # Europe
    Country("uk", "United Kingdom", "Europe", 5.5, 0.23, 0.32, 1.7),
    Country("de", "Germany", "Europe", 9.4, 0.37, 0.32, 1.7),
    Country("fr", "France", "Europe", 5.0, 0.09, 0.32, 1.7),
    Country("it", "Italy", "Europe", 5.8, 0.33, 0.32, 1.7),
    Country("es", "Spain", "Europe", 5.4, 0.24, 0.32, 1.7),
    # Asia
    Country("in", "India", "Asia", 1.9, 0.82, 0.35, 1.2),
    Country("cn", "China", "Asia", 7.4, 0.63, 0.35, 1.3),
    Country("jp", "Japan", "Asia", 9.0, 0.47, 0.33, 1.7),
    Country("sg", "Singapore", "Asia", 8.3, 0.41, 0.33, 1.7),
    # Oceania
    Country("au", "Australia", "Oceania", 15.4, 0.79, 0.38, 1.7),
    Country("nz", "New Zealand", "Oceania", 7.7, 0.15, 0.38, 1.7),
    # Africa
    Country("za", "South Africa", "Africa", 8.3, 0.92, 0.36, 1.4),
    Country("ng", "Nigeria", "Africa", 0.5, 0.44, 0.36, 1.2),
    Country("eg", "Egypt", "Africa", 2.5, 0.48, 0.36, 1.3),
    # South America
    Country("br", "Brazil", "South America", 2.2, 0.09, 0.34, 1.6),
    Country("ar", "Argentina", "South America", 4.5, 0.35, 0.34, 1.7),
    Country("cl", "Chile", "South America", 4.7, 0.42, 0.34, 1.6),
    # Defaults
    Country("gl", "Global", "Global", 4.8, 0.475, 0.37, 1.7),
    Country("ot", "Other", "Custom", 4.8, 0.475, 0.37, 1.7),
)

COUNTRIES: dict[str, Country] = {c.code: c for c in _COUNTRIES}

# Per-capita averages used on the results page (tonnes CO₂e / year)
COMPARISON_AVERAGES: dict[str, float] = {
    "us": 16.0,
    "uk": 10.0,
    "ca": 14.2,
    "au": 15.5,
    "in": 1.9,
    GLOBAL_LOCATION: 12.0,
}


def list_countries() -> list[Country]:
    return sorted(_COUNTRIES, key=lambda c: c.name)


def get_country(code: str | None) -> Country | None:
    return COUNTRIES.get((code or "").strip().lower())


# ─────────────────────────────────────────────────────────────
# Summary helpers
# ─────────────────────────────────────────────────────────────

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(value: float, total: float) -> int:
    """Whole-number share of *total*; 0 when *total* is 0."""
    if total == 0:
        return 0
    return _round_half_up(value / total * 100)


def category_percentages(result: FootprintResult) -> dict[str, int]:
    total = result.total_emissions
    return {
        "home": percentage(result.home_emissions, total),
        "transport": percentage(result.transport_emissions, total),
        "food": percentage(result.food_emissions, total),
    }


@dataclass(frozen=True)
class AverageComparison:
    location: str
    average: float
    percent_difference: int   # absolute value
    is_better: bool


def compare_to_average(total: float, location: str | None) -> AverageComparison:
    """
    Compare *total* with the per-capita average for *location*.

    Locations without a published average compare against the global one.
    """
    key = (location or "").strip().lower()
    if key not in COMPARISON_AVERAGES:
        key = GLOBAL_LOCATION
    average = COMPARISON_AVERAGES[key]
    difference = average - total
    return AverageComparison(
        location=key,
        average=average,
        percent_difference=abs(_round_half_up(difference / average * 100)),
        is_better=difference > 0,
    )


def carbon_budget_percentage(total: float) -> int:
    """Share of the 2.5 t / year budget, capped at 100."""
    return min(_round_half_up(total / CARBON_BUDGET_TONNES * 100), 100)


@dataclass(frozen=True)
class FootprintSummary:
    percentages: dict[str, int]
    comparison: AverageComparison
    carbon_budget_percentage: int

    def to_dict(self) -> dict:
        return {
            "percentages": dict(self.percentages),
            "comparison": {
                "location": self.comparison.location,
                "average": self.comparison.average,
                "percentDifference": self.comparison.percent_difference,
                "isBetter": self.comparison.is_better,
            },
            "carbonBudgetPercentage": self.carbon_budget_percentage,
        }


def summarize(result: FootprintResult, location: str | None) -> FootprintSummary:
    return FootprintSummary(
        percentages=category_percentages(result),
        comparison=compare_to_average(result.total_emissions, location),
        carbon_budget_percentage=carbon_budget_percentage(result.total_emissions),
    )
