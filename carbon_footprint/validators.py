"""
validators.py – The single validation boundary in front of the calculator.

Raw payloads (HTTP bodies, JSON files) are normalised and parsed into a
frozen ``SurveyInput`` here; the calculator and recommendation engine
assume validated input and do no checking of their own.

Normalisation steps
-------------------
* Accept the flat survey layout (home / transport fields at top level) and
  nest it under ``home`` / ``transport``.
* Strip commas and spaces from numeric strings ("12,000" → 12000.0).
* Default a missing or blank ``location`` to ``"global"``; lower-case it.

Anything that still fails pydantic validation (unknown enum value,
negative number, wrong type) raises ``SurveyValidationError``.
"""
from __future__ import annotations

import re
from typing import Any, Mapping

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from carbon_footprint.constants import GLOBAL_LOCATION
from carbon_footprint.schemas import (
    FootprintResult,
    HomeInput,
    SurveyInput,
    TransportInput,
)


class SurveyValidationError(ValueError):
    """Raised when a survey payload cannot be turned into a SurveyInput."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def _aliases(model: type) -> dict[str, str]:
    """Map both snake_case names and camelCase aliases to the field name."""
    out: dict[str, str] = {}
    for name in model.model_fields:
        out[name] = name
        out[to_camel(name)] = name
    return out


_HOME_KEYS = _aliases(HomeInput)
_TRANSPORT_KEYS = _aliases(TransportInput)

_NUMERIC_FIELDS = {
    "home_size", "electricity_usage", "gas_usage",
    "fuel_efficiency", "annual_mileage", "weekly_bus_rides", "avg_commute_distance",
    "weekly_bike_miles", "weekly_walking_miles",
    "short_flights", "long_flights", "avg_flight_distance",
}


def _to_number(value: Any) -> Any:
    """
    Clean numeric strings before pydantic sees them.

    Strips commas and whitespace; blank strings become None.  Values that
    still do not parse are passed through so pydantic reports them.
    """
    if isinstance(value, str):
        cleaned = re.sub(r"[,\s]", "", value)
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return value
    return value


def _clean_section(raw: Any, keys: dict[str, str]) -> Any:
    if not isinstance(raw, Mapping):
        return raw
    section: dict[str, Any] = {}
    for key, value in raw.items():
        name = keys.get(key)
        if name is None:
            continue
        section[name] = _to_number(value) if name in _NUMERIC_FIELDS else value
    return section


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        parts.append(f"{loc or 'survey'}: {err.get('msg')}")
    return "Validation error: " + "; ".join(parts)


def normalise_survey_payload(raw: Mapping[str, Any], *, default_location: str = GLOBAL_LOCATION) -> dict[str, Any]:
    """
    Return a dict shaped like SurveyInput from a flat or nested payload.

    Nested ``home`` / ``transport`` objects take precedence over flat keys
    with the same name.
    """
    if not isinstance(raw, Mapping):
        raise SurveyValidationError("Validation error: survey payload must be a JSON object")

    flat_home = {k: v for k, v in raw.items() if k in _HOME_KEYS}
    flat_transport = {k: v for k, v in raw.items() if k in _TRANSPORT_KEYS}

    home = _clean_section(flat_home, _HOME_KEYS)
    transport = _clean_section(flat_transport, _TRANSPORT_KEYS)
    if isinstance(raw.get("home"), Mapping):
        home.update(_clean_section(raw["home"], _HOME_KEYS))
    elif raw.get("home") is not None:
        home = raw["home"]
    if isinstance(raw.get("transport"), Mapping):
        transport.update(_clean_section(raw["transport"], _TRANSPORT_KEYS))
    elif raw.get("transport") is not None:
        transport = raw["transport"]

    location = raw.get("location")
    if location is None or (isinstance(location, str) and not location.strip()):
        location = default_location
    if isinstance(location, str):
        location = location.strip().lower()

    household = raw.get("householdSize", raw.get("household_size"))
    return {
        "calculation_type": raw.get("calculationType", raw.get("calculation_type")),
        "location": location,
        "household_size": _to_number(household),
        "income_range": raw.get("incomeRange", raw.get("income_range")) or None,
        "home": home,
        "transport": transport,
    }


# ─────────────────────────────────────────────────────────────
# Public entry points
# ─────────────────────────────────────────────────────────────

def validate_survey(raw: Mapping[str, Any], *, default_location: str = GLOBAL_LOCATION) -> SurveyInput:
    """
    Normalise and validate a survey payload.

    Raises
    ------
    SurveyValidationError
        If a required field is missing or a value is malformed.
    """
    payload = normalise_survey_payload(raw, default_location=default_location)
    try:
        return SurveyInput.model_validate(payload)
    except ValidationError as exc:
        raise SurveyValidationError(_format_errors(exc), exc.errors()) from exc


def validate_recommendation_request(
    raw: Mapping[str, Any],
    *,
    default_location: str = GLOBAL_LOCATION,
) -> tuple[FootprintResult, SurveyInput]:
    """
    Validate ``{footprintData, totalEmissions, homeEmissions, ...}``.

    ``footprintData.calculationType`` defaults to ``"individual"`` here since
    the recommendation rules never depend on it.
    """
    if not isinstance(raw, Mapping):
        raise SurveyValidationError("Validation error: request body must be a JSON object")

    footprint_data = raw.get("footprintData") or {}
    if not isinstance(footprint_data, Mapping):
        raise SurveyValidationError("Validation error: footprintData must be a JSON object")
    footprint_data = dict(footprint_data)
    if not footprint_data.get("calculationType"):
        footprint_data["calculationType"] = "individual"
    survey = validate_survey(footprint_data, default_location=default_location)

    try:
        result = FootprintResult.model_validate({
            k: raw.get(k)
            for k in ("totalEmissions", "homeEmissions", "transportEmissions", "foodEmissions")
        })
    except ValidationError as exc:
        raise SurveyValidationError(_format_errors(exc), exc.errors()) from exc
    return result, survey
