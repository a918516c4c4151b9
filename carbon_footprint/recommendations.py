"""
recommendations.py – Rule-based footprint reduction recommender.

Each rule is an independent predicate over the rounded ``FootprintResult``
and the validated ``SurveyInput``; it yields zero or more ``Recommendation``
records.  Rules run in a fixed order that sets the default display
priority.  No rule removes or reorders the output of another.

Rules
-----
1. Home heating & cooling    – homeEmissions > 2
2. Renewable energy          – "greenEnergy" not among renewable sources
3. Carpool / transit         – primary mode car and transportEmissions > 2
4. Alternative modes         – primary mode flight
   + consolidate travel        shortFlights > 5 or longFlights > 2
5. Long-haul offsets         – longFlights > 0
   else short-haul reduction   shortFlights > 3
6. Reduce food waste         – always
7. Plant-rich diet           – foodEmissions > 1.5

Thresholds and reduction estimates are fixed constants; they are not
derived from the emission factor registry.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterator

from carbon_footprint.constants import (
    CAR_TRANSPORT_EMISSIONS_THRESHOLD,
    FOOD_EMISSIONS_THRESHOLD,
    FREQUENT_LONG_FLIGHTS,
    FREQUENT_SHORT_FLIGHTS,
    GREEN_ENERGY_SOURCE,
    HOME_EMISSIONS_THRESHOLD,
    SHORT_HAUL_FLIGHTS_THRESHOLD,
    TRANSPORT_CAR,
    TRANSPORT_FLIGHT,
)
from carbon_footprint.schemas import FootprintResult, Recommendation, SurveyInput

logger = logging.getLogger(__name__)

Rule = Callable[[FootprintResult, SurveyInput], Iterator[Recommendation]]


# ─────────────────────────────────────────────────────────────
# Catalogue
# ─────────────────────────────────────────────────────────────

THERMOSTAT = Recommendation(
    id="rec1",
    category="home",
    title="Optimize Home Heating & Cooling",
    description=(
        "Installing a programmable thermostat and adjusting your temperature by just "
        "1-2 degrees can save up to 10% on your annual energy bill and reduce emissions."
    ),
    icon_name="home-smile-line",
    potential_reduction=0.5,
)

RENEWABLE_ENERGY = Recommendation(
    id="rec2",
    category="home",
    title="Switch to Renewable Energy",
    description=(
        "Many utility companies offer green energy options. Switching to a renewable "
        "energy plan could eliminate most of your electricity-related emissions."
    ),
    icon_name="plug-line",
    potential_reduction=1.2,
)

CARPOOL = Recommendation(
    id="rec3",
    category="transport",
    title="Consider Carpooling or Public Transit",
    description=(
        "Based on your location and commute distance, carpooling with colleagues or "
        "taking public transit twice a week could significantly reduce your "
        "transportation emissions."
    ),
    icon_name="car-line",
    potential_reduction=0.7,
)

ALTERNATIVE_MODES = Recommendation(
    id="rec3a",
    category="transport",
    title="Consider Alternative Transport Modes",
    description=(
        "For domestic travel under 500 miles, trains or buses typically have 1/5 the "
        "carbon footprint of flying. For necessary flights, choose direct routes to "
        "reduce emissions by avoiding multiple takeoffs."
    ),
    icon_name="train-line",
    potential_reduction=1.5,
)

CONSOLIDATE_TRAVEL = Recommendation(
    id="rec3b",
    category="transport",
    title="Consolidate Business Travel",
    description=(
        "As a frequent flyer, consider consolidating business trips to reduce total "
        "flights. Each takeoff and landing contributes significantly to emissions, so "
        "fewer, longer trips are better than frequent short ones."
    ),
    icon_name="briefcase-4-line",
    potential_reduction=1.2,
)

OFFSET_LONG_HAUL = Recommendation(
    id="rec4a",
    category="transport",
    title="Offset Long-Haul Flight Emissions",
    description=(
        "Long-haul flights contribute significantly to your carbon footprint. Consider "
        "high-quality carbon offsetting programs for essential travel, which fund "
        "renewable energy, forest conservation, or carbon capture projects."
    ),
    icon_name="flight-takeoff-line",
    potential_reduction=0.8,
)

REDUCE_SHORT_HAUL = Recommendation(
    id="rec4b",
    category="transport",
    title="Reduce Short-Haul Flights",
    description=(
        "Short flights are actually less efficient per mile than longer ones because "
        "takeoff requires significant fuel. Consider trains, buses or carpooling for "
        "shorter trips under 500 miles when possible."
    ),
    icon_name="road-map-line",
    potential_reduction=0.6,
)

FOOD_WASTE = Recommendation(
    id="rec5",
    category="food",
    title="Reduce Food Waste",
    description=(
        "Plan meals, store food properly, and compost scraps to reduce the emissions "
        "associated with food production and waste."
    ),
    icon_name="restaurant-line",
    potential_reduction=0.3,
)

PLANT_RICH_DIET = Recommendation(
    id="rec6",
    category="food",
    title="Adopt a Plant-Rich Diet",
    description=(
        "Reducing meat consumption, especially beef and lamb, can significantly lower "
        "your dietary carbon footprint."
    ),
    icon_name="plant-line",
    potential_reduction=0.5,
)

CATALOGUE: tuple[Recommendation, ...] = (
    THERMOSTAT,
    RENEWABLE_ENERGY,
    CARPOOL,
    ALTERNATIVE_MODES,
    CONSOLIDATE_TRAVEL,
    OFFSET_LONG_HAUL,
    REDUCE_SHORT_HAUL,
    FOOD_WASTE,
    PLANT_RICH_DIET,
)


# ─────────────────────────────────────────────────────────────
# Rules
# ─────────────────────────────────────────────────────────────

def _rule_home_heating(result: FootprintResult, survey: SurveyInput) -> Iterator[Recommendation]:
    if result.home_emissions > HOME_EMISSIONS_THRESHOLD:
        yield THERMOSTAT


def _rule_renewable_energy(result: FootprintResult, survey: SurveyInput) -> Iterator[Recommendation]:
    if GREEN_ENERGY_SOURCE not in survey.home.renewable_sources:
        yield RENEWABLE_ENERGY


def _rule_carpool(result: FootprintResult, survey: SurveyInput) -> Iterator[Recommendation]:
    if (
        survey.transport.primary_transport == TRANSPORT_CAR
        and result.transport_emissions > CAR_TRANSPORT_EMISSIONS_THRESHOLD
    ):
        yield CARPOOL


def _rule_frequent_flyer(result: FootprintResult, survey: SurveyInput) -> Iterator[Recommendation]:
    transport = survey.transport
    if transport.primary_transport != TRANSPORT_FLIGHT:
        return
    yield ALTERNATIVE_MODES
    if (transport.short_flights or 0) > FREQUENT_SHORT_FLIGHTS or (transport.long_flights or 0) > FREQUENT_LONG_FLIGHTS:
        yield CONSOLIDATE_TRAVEL


def _rule_flight_pattern(result: FootprintResult, survey: SurveyInput) -> Iterator[Recommendation]:
    transport = survey.transport
    if (transport.long_flights or 0) > 0:
        yield OFFSET_LONG_HAUL
    elif (transport.short_flights or 0) > SHORT_HAUL_FLIGHTS_THRESHOLD:
        yield REDUCE_SHORT_HAUL


def _rule_food_waste(result: FootprintResult, survey: SurveyInput) -> Iterator[Recommendation]:
    yield FOOD_WASTE


def _rule_plant_rich_diet(result: FootprintResult, survey: SurveyInput) -> Iterator[Recommendation]:
    if result.food_emissions > FOOD_EMISSIONS_THRESHOLD:
        yield PLANT_RICH_DIET


RULES: tuple[Rule, ...] = (
    _rule_home_heating,
    _rule_renewable_energy,
    _rule_carpool,
    _rule_frequent_flyer,
    _rule_flight_pattern,
    _rule_food_waste,
    _rule_plant_rich_diet,
)


def generate_recommendations(result: FootprintResult, survey: SurveyInput) -> list[Recommendation]:
    """
    Evaluate every rule in order and return the accumulated recommendations.

    The food-waste rule is unconditional, so the list is never empty.
    """
    recommendations: list[Recommendation] = []
    for rule in RULES:
        recommendations.extend(rule(result, survey))
    logger.debug(
        "Recommendations for %s/%s: %s",
        survey.calculation_type, survey.location, [r.id for r in recommendations],
    )
    return recommendations


def potential_savings(recommendations: list[Recommendation]) -> float:
    """Sum of estimated reductions, tonnes CO₂e / year."""
    return sum(r.potential_reduction for r in recommendations)
