"""
calculations.py – Annual footprint calculation engine.

Turns a validated ``SurveyInput`` into category-level emissions using an
``EmissionFactorRegistry`` snapshot.  Everything here is pure: no I/O and
no shared mutable state, so calls may run concurrently.

Emission formula references (tonnes CO₂e / year)
────────────────────────────────────────────────
 Category          Formula
 ─────────────────────────────────────────────────────────────────────────
 Electricity       kWh/month × grid_factor(location) × 12 ÷ 1000
 Natural gas       therms/month × gas_factor(global) × 12 ÷ 1000
 Home adjustment   (electricity + gas) × home_type_factor
                   × (1 − min(0.15 × renewable_sources, 0.6))
 Car               annual_miles × car_factor(car_type) ÷ 1000
 Public transport  weekly_rides × ride_miles × 52 × transit_factor ÷ 1000
                   (falls back to annual_miles × transit_factor ÷ 1000)
 Flights           count × band_factor × miles × 2 × rf_factor ÷ 1000
 Food              1.7, or food_factor(average) × income multiplier
                   when household size is given

Rounding to one decimal happens only when a ``FootprintBreakdown`` is
turned into a ``FootprintResult``.

Usage
──────
    from carbon_footprint.calculations import calculate_footprint
    from carbon_footprint.validators import validate_survey

    result = calculate_footprint(validate_survey(payload))
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from carbon_footprint.constants import (
    DEFAULT_CAR_TYPE,
    DEFAULT_FOOD_EMISSIONS,
    GLOBAL_LOCATION,
    HIGH_INCOME_FOOD_MULTIPLIER,
    INCOME_HIGH,
    INCOME_LOW,
    KG_PER_TONNE,
    LONG_FLIGHT_MIN_MILES,
    LOW_INCOME_FOOD_MULTIPLIER,
    MEDIUM_FLIGHT_MAX_MILES,
    MEDIUM_FLIGHT_MIN_MILES,
    MEDIUM_FLIGHT_SHARE,
    MONTHS_PER_YEAR,
    RENEWABLE_REDUCTION_CAP,
    RENEWABLE_REDUCTION_PER_SOURCE,
    RESULT_DECIMALS,
    ROUND_TRIP,
    SHORT_FLIGHT_MAX_MILES,
    STANDARD_LONG_FLIGHT_MILES,
    STANDARD_SHORT_FLIGHT_MILES,
    TRANSPORT_CAR,
    TRANSPORT_FLIGHT,
    TRANSPORT_PUBLIC,
    WEEKS_PER_YEAR,
    ZERO_EMISSION_MODES,
)
from carbon_footprint.emission_factors import EmissionFactorRegistry, get_default_registry
from carbon_footprint.schemas import (
    FootprintResult,
    HomeInput,
    Recommendation,
    SubmissionRecord,
    SurveyInput,
    TransportInput,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Result dataclass (unrounded)
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FootprintBreakdown:
    """Unrounded category emissions in tonnes CO₂e / year."""
    home_emissions: float = 0.0
    transport_emissions: float = 0.0
    food_emissions: float = 0.0

    @property
    def total_emissions(self) -> float:
        return self.home_emissions + self.transport_emissions + self.food_emissions

    def to_result(self) -> FootprintResult:
        return FootprintResult(
            total_emissions=round_emissions(self.total_emissions),
            home_emissions=round_emissions(self.home_emissions),
            transport_emissions=round_emissions(self.transport_emissions),
            food_emissions=round_emissions(self.food_emissions),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Internal helpers
# ─────────────────────────────────────────────────────────────────────────────

def round_emissions(value: float, decimals: int = RESULT_DECIMALS) -> float:
    """
    Round half-up on the exact binary value of *value*.

    Built-in ``round`` rounds exact ties to even (0.25 → 0.2); this rounds
    them up (0.25 → 0.3).
    """
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _round_half_up_int(value: float) -> int:
    return int(math.floor(value + 0.5))


def _kg_to_tonnes(kg: float) -> float:
    return kg / KG_PER_TONNE


def renewable_discount(source_count: int) -> float:
    """Fractional reduction for *source_count* renewable sources (capped at 0.6)."""
    if source_count <= 0:
        return 0.0
    return min(RENEWABLE_REDUCTION_PER_SOURCE * source_count, RENEWABLE_REDUCTION_CAP)


# ─────────────────────────────────────────────────────────────────────────────
# 1. Home energy
# ─────────────────────────────────────────────────────────────────────────────

def calc_home_emissions(home: HomeInput, location: str, registry: EmissionFactorRegistry) -> float:
    """
    Electricity + natural gas, scaled once by home type, then discounted
    for renewable sources.
    """
    emissions = 0.0

    if home.electricity_usage:
        factor = registry.lookup("electricity", location)
        term = _kg_to_tonnes(home.electricity_usage * factor * MONTHS_PER_YEAR)
        emissions += term
        logger.debug(
            "Electricity | %.2f kWh/mo × %.4f (%s) × 12 = %.4f t CO₂e",
            home.electricity_usage, factor, location, term,
        )

    if home.gas_usage:
        factor = registry.lookup("natural_gas", GLOBAL_LOCATION)
        term = _kg_to_tonnes(home.gas_usage * factor * MONTHS_PER_YEAR)
        emissions += term
        logger.debug(
            "Natural gas | %.2f therms/mo × %.4f × 12 = %.4f t CO₂e",
            home.gas_usage, factor, term,
        )

    if home.home_type:
        multiplier = registry.lookup("home", home.home_type)
        emissions *= multiplier
        logger.debug("Home type %r | × %.2f", home.home_type, multiplier)

    discount = renewable_discount(len(home.renewable_sources))
    if discount:
        emissions *= 1 - discount
        logger.debug("Renewables %s | −%.0f%%", sorted(home.renewable_sources), discount * 100)

    return emissions


# ─────────────────────────────────────────────────────────────────────────────
# 2. Transportation
# ─────────────────────────────────────────────────────────────────────────────

def _flight_leg(count: int, factor: float, miles: float, rf_factor: float) -> float:
    """Annual tonnes for *count* round trips of *miles* each way."""
    return _kg_to_tonnes(count * factor * miles * ROUND_TRIP * rf_factor)


def calc_primary_flight_emissions(transport: TransportInput, registry: EmissionFactorRegistry) -> float:
    """
    Flights when flying is the main mode of travel.

    The average flight distance picks the band distances: short flights use
    it unless it exceeds 1000 mi (then 500 mi), long flights use it unless it
    is under 1000 mi (then 2500 mi).  An average within 1000–2000 mi also
    adds a medium-band estimate of round(0.3 × short + 0.3 × long) flights.
    """
    short_flights = transport.short_flights or 0
    long_flights = transport.long_flights or 0
    avg_distance = transport.avg_flight_distance or 0.0

    short_factor = registry.lookup("flight", "short")
    medium_factor = registry.lookup("flight", "medium")
    long_factor = registry.lookup("flight", "long")
    rf_factor = registry.lookup("flight", "rf_factor")

    emissions = 0.0

    if short_flights:
        distance = avg_distance or STANDARD_SHORT_FLIGHT_MILES
        if distance > SHORT_FLIGHT_MAX_MILES:
            distance = STANDARD_SHORT_FLIGHT_MILES
        term = _flight_leg(short_flights, short_factor, distance, rf_factor)
        emissions += term
        logger.debug("Short flights | %d × %.0f mi = %.4f t CO₂e", short_flights, distance, term)

    if avg_distance and MEDIUM_FLIGHT_MIN_MILES <= avg_distance <= MEDIUM_FLIGHT_MAX_MILES:
        # Overlaps the short/long counts above.
        medium_flights = _round_half_up_int(
            short_flights * MEDIUM_FLIGHT_SHARE + long_flights * MEDIUM_FLIGHT_SHARE
        )
        if medium_flights > 0:
            term = _flight_leg(medium_flights, medium_factor, avg_distance, rf_factor)
            emissions += term
            logger.debug("Medium flights | %d × %.0f mi = %.4f t CO₂e", medium_flights, avg_distance, term)

    if long_flights:
        distance = avg_distance or STANDARD_LONG_FLIGHT_MILES
        if distance < LONG_FLIGHT_MIN_MILES:
            distance = STANDARD_LONG_FLIGHT_MILES
        term = _flight_leg(long_flights, long_factor, distance, rf_factor)
        emissions += term
        logger.debug("Long flights | %d × %.0f mi = %.4f t CO₂e", long_flights, distance, term)

    return emissions


def calc_secondary_flight_emissions(transport: TransportInput, registry: EmissionFactorRegistry) -> float:
    """Occasional flights for non-flyers, at standard 500 / 2500 mi distances."""
    emissions = 0.0
    if transport.short_flights:
        emissions += _flight_leg(
            transport.short_flights,
            registry.lookup("flight", "short"),
            STANDARD_SHORT_FLIGHT_MILES,
            registry.lookup("flight", "rf_factor"),
        )
    if transport.long_flights:
        emissions += _flight_leg(
            transport.long_flights,
            registry.lookup("flight", "long"),
            STANDARD_LONG_FLIGHT_MILES,
            registry.lookup("flight", "rf_factor"),
        )
    if emissions:
        logger.debug(
            "Secondary flights | short=%s long=%s = %.4f t CO₂e",
            transport.short_flights, transport.long_flights, emissions,
        )
    return emissions


def calc_transport_emissions(transport: TransportInput, registry: EmissionFactorRegistry) -> float:
    """
    Emissions for the primary mode plus any secondary flights.

    Bike and walking contribute exactly 0, flights included.
    """
    mode = transport.primary_transport
    if mode in ZERO_EMISSION_MODES:
        logger.debug("Transport %s | 0 t CO₂e", mode)
        return 0.0

    emissions = 0.0

    if mode == TRANSPORT_CAR:
        if transport.annual_mileage:
            car_type = transport.car_type or DEFAULT_CAR_TYPE
            factor = registry.lookup("car", car_type)
            emissions += _kg_to_tonnes(transport.annual_mileage * factor)
            logger.debug(
                "Car %s | %.0f mi × %.4f = %.4f t CO₂e",
                car_type, transport.annual_mileage, factor, emissions,
            )

    elif mode == TRANSPORT_PUBLIC:
        factor = registry.lookup("public_transport", GLOBAL_LOCATION)
        if transport.weekly_bus_rides and transport.avg_commute_distance:
            annual_miles = transport.weekly_bus_rides * transport.avg_commute_distance * WEEKS_PER_YEAR
            emissions += _kg_to_tonnes(annual_miles * factor)
        elif transport.annual_mileage:
            # Older surveys only carry annual mileage.
            emissions += _kg_to_tonnes(transport.annual_mileage * factor)
        logger.debug("Public transport | %.4f t CO₂e", emissions)

    elif mode == TRANSPORT_FLIGHT:
        emissions += calc_primary_flight_emissions(transport, registry)

    if mode != TRANSPORT_FLIGHT:
        emissions += calc_secondary_flight_emissions(transport, registry)

    return emissions


# ─────────────────────────────────────────────────────────────────────────────
# 3. Food & consumption
# ─────────────────────────────────────────────────────────────────────────────

def calc_food_emissions(survey: SurveyInput, registry: EmissionFactorRegistry) -> float:
    """
    Per-person diet footprint.

    Household size only switches from the constant baseline to the registry
    value; it is not used as a multiplier.
    """
    if not survey.household_size:
        return DEFAULT_FOOD_EMISSIONS

    emissions = registry.lookup("food", "average")
    if survey.income_range == INCOME_HIGH:
        emissions *= HIGH_INCOME_FOOD_MULTIPLIER
    elif survey.income_range == INCOME_LOW:
        emissions *= LOW_INCOME_FOOD_MULTIPLIER
    logger.debug("Food | income=%s = %.4f t CO₂e", survey.income_range, emissions)
    return emissions


# ─────────────────────────────────────────────────────────────────────────────
# Aggregation
# ─────────────────────────────────────────────────────────────────────────────

def calculate_breakdown(
    survey: SurveyInput,
    registry: EmissionFactorRegistry | None = None,
) -> FootprintBreakdown:
    """Unrounded per-category emissions for *survey*."""
    if registry is None:
        registry = get_default_registry()
    breakdown = FootprintBreakdown(
        home_emissions=calc_home_emissions(survey.home, survey.location, registry),
        transport_emissions=calc_transport_emissions(survey.transport, registry),
        food_emissions=calc_food_emissions(survey, registry),
    )
    logger.info(
        "Footprint %s/%s | home=%.3f transport=%.3f food=%.3f total=%.3f t CO₂e",
        survey.calculation_type, survey.location,
        breakdown.home_emissions, breakdown.transport_emissions,
        breakdown.food_emissions, breakdown.total_emissions,
    )
    return breakdown


def calculate_footprint(
    survey: SurveyInput,
    registry: EmissionFactorRegistry | None = None,
) -> FootprintResult:
    """
    Calculate the annual footprint for a validated survey.

    Parameters
    ──────────
    survey   : validated SurveyInput (see validators.validate_survey)
    registry : factor snapshot; defaults to the built-in seed registry

    Returns
    ───────
    FootprintResult with each field rounded to one decimal.
    """
    return calculate_breakdown(survey, registry).to_result()


def build_submission(
    survey: SurveyInput,
    result: FootprintResult,
    recommendations: Iterable[Recommendation] | None = None,
) -> SubmissionRecord:
    """
    Shape a survey and its results for the submission store.

    ``id`` and ``created_at`` stay unset; the store assigns them on save.
    """
    return SubmissionRecord(
        survey=survey,
        result=result,
        recommendations=tuple(recommendations or ()),
    )
