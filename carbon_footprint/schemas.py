"""
schemas.py – Pydantic models for survey input, results, and recommendations.

Field names are snake_case in Python and camelCase on the wire
(``electricity_usage`` ↔ ``electricityUsage``).  None means the value was
not supplied in the survey; the calculator treats absent numbers as 0.
All models are frozen: callers own their inputs for the duration of a
calculation and nothing downstream mutates them.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from carbon_footprint.constants import GLOBAL_LOCATION, MAX_SURVEY_QUANTITY

CalculationType = Literal["individual", "business"]
TransportMode = Literal["car", "publicTransport", "bike", "walking", "flight"]
RecommendationCategory = Literal["home", "transport", "food", "general"]


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        allow_inf_nan=False,
    )


# ─────────────────────────────────────────────────────────────
# Survey sections
# ─────────────────────────────────────────────────────────────

class HomeInput(_Model):
    """Home energy section of the survey."""

    home_type: Optional[str] = Field(None, description="apartment | house | other")
    home_size: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Floor area")
    home_unit: Optional[Literal["sqft", "sqm"]] = Field(None, description="Unit of home_size")
    electricity_usage: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="kWh per month")
    gas_usage: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Natural gas, therms per month")
    renewable_sources: frozenset[str] = Field(
        default_factory=frozenset, description="e.g. solar, wind, greenEnergy"
    )


class TransportInput(_Model):
    """Transportation and flight section of the survey."""

    primary_transport: Optional[TransportMode] = Field(None, description="Main mode of travel")
    car_type: Optional[str] = Field(None, description="sedan | suv | truck | hybrid | electric")
    fuel_efficiency: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Miles per gallon")
    annual_mileage: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Miles driven per year")
    weekly_bus_rides: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Transit rides per week")
    avg_commute_distance: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Miles per transit ride")
    weekly_bike_miles: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY)
    weekly_walking_miles: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY)
    short_flights: Optional[int] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Round trips under 1000 mi per year")
    long_flights: Optional[int] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="Round trips over 1000 mi per year")
    avg_flight_distance: Optional[float] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY, description="One-way miles")


class SurveyInput(_Model):
    """A complete, validated survey response."""

    calculation_type: CalculationType
    location: str = Field(GLOBAL_LOCATION, description="Region code, e.g. 'us'")
    household_size: Optional[int] = Field(None, ge=0, le=MAX_SURVEY_QUANTITY)
    income_range: Optional[str] = Field(None, description="low | medium-low | medium | medium-high | high")
    home: HomeInput = Field(default_factory=HomeInput)
    transport: TransportInput = Field(default_factory=TransportInput)


# ─────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────

class FootprintResult(_Model):
    """Annual emissions in tonnes CO₂e, each rounded to one decimal."""

    total_emissions: float
    home_emissions: float
    transport_emissions: float
    food_emissions: float


class Recommendation(_Model):
    """One reduction tip with its estimated annual saving."""

    id: str
    category: RecommendationCategory
    title: str
    description: str
    icon_name: str
    potential_reduction: float = Field(..., description="tonnes CO₂e / year")


class SubmissionRecord(_Model):
    """Survey + results handed to the submission store."""

    id: Optional[int] = None
    survey: SurveyInput
    result: FootprintResult
    recommendations: tuple[Recommendation, ...] = ()
    created_at: Optional[datetime] = None
