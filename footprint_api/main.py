"""
main.py – FastAPI service for the carbon footprint calculator.

Start:
    uvicorn footprint_api.main:app --reload --port 8000
    (or: carbon-footprint serve)

The emission factor registry is loaded once at start-up (seed factors,
overlaid with any stored in PostgreSQL) and shared read-only across
requests.  Database calls run in worker threads so the event loop never
blocks on psycopg2.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carbon_footprint.calculations import build_submission, calculate_footprint
from carbon_footprint.config import Config, configure_logging, get_config
from carbon_footprint.countries import get_country, list_countries, summarize
from carbon_footprint.emission_factors import EmissionFactorRegistry
from carbon_footprint.recommendations import generate_recommendations
from carbon_footprint.schemas import SubmissionRecord
from carbon_footprint.storage import SubmissionStore, build_store, load_registry
from carbon_footprint.validators import (
    SurveyValidationError,
    validate_recommendation_request,
    validate_survey,
)

logger = logging.getLogger(__name__)


def _dump(model) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def _submission_out(record: SubmissionRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "survey": _dump(record.survey),
        **_dump(record.result),
        "recommendations": [_dump(r) for r in record.recommendations],
    }


def _country_out(country) -> dict[str, Any]:
    return {
        "code": country.code,
        "name": country.name,
        "region": country.region,
        "averageFootprint": country.average_footprint,
        "electricityFactor": country.electricity_factor,
        "gasFactor": country.gas_factor,
        "transportFactor": country.transport_factor,
        "foodFactor": country.food_factor,
    }


def create_app(
    config: Config | None = None,
    registry: EmissionFactorRegistry | None = None,
    store: SubmissionStore | None = None,
) -> FastAPI:
    """
    Build the API.

    *registry* and *store* default to ``load_registry(config)`` and
    ``build_store(config)``; tests pass their own.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.registry is None:
            app.state.registry = await asyncio.to_thread(load_registry, config)
        logger.info("Emission factor registry ready (%d factors)", len(app.state.registry))
        yield

    app = FastAPI(
        title="Carbon Footprint Calculator API",
        version="1.0.0",
        description="Annual footprint estimates, breakdowns and reduction recommendations.",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry
    app.state.store = store if store is not None else build_store(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SurveyValidationError)
    async def _validation_error(_request: Request, exc: SurveyValidationError):
        return JSONResponse(status_code=400, content={"message": str(exc)})

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    # ── Health ────────────────────────────────────────────────
    @app.get("/health", summary="Liveness check")
    async def health():
        return {"status": "ok", "factors": len(app.state.registry)}

    # ── Calculation ───────────────────────────────────────────
    @app.post("/api/calculate-footprint", summary="Calculate annual footprint from a survey")
    async def calculate(body: dict):
        survey = validate_survey(body, default_location=config.default_location)
        result = calculate_footprint(survey, app.state.registry)
        record = await asyncio.to_thread(app.state.store.save, build_submission(survey, result))
        return {**_dump(result), "submissionId": record.id}

    @app.post("/api/recommendations", summary="Recommendations for a calculated footprint")
    async def recommendations(body: dict):
        result, survey = validate_recommendation_request(body, default_location=config.default_location)
        return {"recommendations": [_dump(r) for r in generate_recommendations(result, survey)]}

    # ── Submissions ───────────────────────────────────────────
    @app.post("/api/submissions", status_code=201, summary="Calculate, recommend and store a submission")
    async def create_submission(body: dict):
        survey = validate_survey(body, default_location=config.default_location)
        result = calculate_footprint(survey, app.state.registry)
        recs = generate_recommendations(result, survey)
        record = await asyncio.to_thread(app.state.store.save, build_submission(survey, result, recs))
        return {
            **_submission_out(record),
            "summary": summarize(result, survey.location).to_dict(),
        }

    @app.get("/api/submissions/{submission_id}", summary="Fetch one stored submission")
    async def get_submission(submission_id: int):
        record = await asyncio.to_thread(app.state.store.get, submission_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Submission not found")
        return _submission_out(record)

    @app.get("/api/submissions", summary="Most recent submissions")
    async def recent_submissions(limit: int = Query(20, ge=1, le=100)):
        records = await asyncio.to_thread(app.state.store.recent, limit)
        return [_submission_out(r) for r in records]

    # ── Reference data ────────────────────────────────────────
    @app.get("/api/countries", summary="Countries with average footprints")
    async def countries():
        return [_country_out(c) for c in list_countries()]

    @app.get("/api/countries/{code}", summary="One country by code")
    async def country(code: str):
        found = get_country(code)
        if found is None:
            raise HTTPException(status_code=404, detail="Country not found")
        return _country_out(found)

    @app.get("/api/emission-factors", summary="Emission factors in use")
    async def emission_factors(category: str | None = None):
        return [
            {
                "category": f.category,
                "key": f.key,
                "value": f.value,
                "unit": f.unit,
                "description": f.description,
                "year": f.year,
            }
            for f in app.state.registry.factors(category)
        ]

    return app


def _build_default_app() -> FastAPI:
    config = get_config()
    configure_logging(config.log_level)
    return create_app(config)


app = _build_default_app()
