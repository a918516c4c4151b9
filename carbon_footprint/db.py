"""
db.py – PostgreSQL access for emission factors and submissions.

Tables are defined in schema/footprint.sql.  Row-level helpers take an open
psycopg2 connection and never commit; the caller owns the transaction.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from carbon_footprint.emission_factors import EmissionFactor
from carbon_footprint.schemas import FootprintResult, Recommendation, SubmissionRecord, SurveyInput

SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "footprint.sql"


def get_connection(database_url: str):
    """Open a connection to the footprint database; the caller closes it."""
    return psycopg2.connect(database_url)


def _execute_once(database_url: str, sql: str, autocommit: bool = False) -> tuple[bool, str | None]:
    conn = None
    try:
        conn = get_connection(database_url)
        conn.autocommit = autocommit
        with conn.cursor() as cur:
            cur.execute(sql)
        return True, None
    except psycopg2.Error as e:
        return False, f"Database error: {e}"
    finally:
        if conn is not None:
            conn.close()


def ping_database(database_url: str) -> tuple[bool, str | None]:
    """Check that the footprint database answers a trivial query."""
    return _execute_once(database_url, "SELECT 1")


def apply_schema(database_url: str, schema_path: Path | None = None) -> tuple[bool, str | None]:
    """
    Create the emission_factors and submissions tables.

    The DDL is idempotent (IF NOT EXISTS), so running init-db twice is safe.
    """
    schema_path = schema_path or SCHEMA_PATH
    if not schema_path.is_file():
        return False, f"Footprint schema missing at {schema_path}"
    return _execute_once(database_url, schema_path.read_text(encoding="utf-8"), autocommit=True)


# ─────────────────────────────────────────────────────────────
# Emission factors
# ─────────────────────────────────────────────────────────────

UPSERT_FACTOR_SQL = """
INSERT INTO emission_factors
    (category, factor_key, value, unit, description, year)
VALUES (%s, %s, %s, %s, %s, %s)
ON CONFLICT (category, factor_key) DO UPDATE SET
    value       = EXCLUDED.value,
    unit        = EXCLUDED.unit,
    description = EXCLUDED.description,
    year        = EXCLUDED.year,
    updated_at  = NOW();
"""


def fetch_emission_factors(conn, category: str | None = None) -> list[EmissionFactor]:
    """Return stored factors, optionally for a single category."""
    sql = "SELECT category, factor_key, value, unit, description, year FROM emission_factors"
    params: tuple = ()
    if category:
        sql += " WHERE category = %s"
        params = (category,)
    sql += " ORDER BY category, factor_key"
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(sql, params)
        rows = cur.fetchall()
    return [
        EmissionFactor(
            category=row["category"],
            key=row["factor_key"],
            value=float(row["value"]),
            unit=row["unit"],
            description=row.get("description"),
            year=row.get("year"),
        )
        for row in rows
    ]


def upsert_emission_factors(conn, factors: Iterable[EmissionFactor]) -> int:
    """Insert or refresh each factor. Returns the number of rows written."""
    count = 0
    with conn.cursor() as cur:
        for f in factors:
            cur.execute(
                UPSERT_FACTOR_SQL,
                (f.category, f.key, f.value, f.unit, f.description, f.year),
            )
            count += 1
    return count


# ─────────────────────────────────────────────────────────────
# Submissions
# ─────────────────────────────────────────────────────────────

_SUBMISSION_COLUMNS = (
    "id, calculation_type, location, survey, total_emissions, home_emissions, "
    "transport_emissions, food_emissions, recommendations, created_at"
)


def insert_submission(conn, record: SubmissionRecord) -> tuple[int, Any]:
    """Insert one submission. Return (id, created_at) as assigned by the database."""
    survey = record.survey
    result = record.result
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO submissions
                (calculation_type, location, survey, total_emissions, home_emissions,
                 transport_emissions, food_emissions, recommendations)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at
            """,
            (
                survey.calculation_type,
                survey.location,
                Json(survey.model_dump(mode="json", by_alias=True)),
                result.total_emissions,
                result.home_emissions,
                result.transport_emissions,
                result.food_emissions,
                Json([r.model_dump(mode="json", by_alias=True) for r in record.recommendations]),
            ),
        )
        row = cur.fetchone()
    return row[0], row[1]


def _row_to_record(row: dict[str, Any]) -> SubmissionRecord:
    return SubmissionRecord(
        id=row["id"],
        survey=SurveyInput.model_validate(row["survey"]),
        result=FootprintResult(
            total_emissions=float(row["total_emissions"]),
            home_emissions=float(row["home_emissions"]),
            transport_emissions=float(row["transport_emissions"]),
            food_emissions=float(row["food_emissions"]),
        ),
        recommendations=tuple(
            Recommendation.model_validate(r) for r in (row.get("recommendations") or [])
        ),
        created_at=row["created_at"],
    )


def fetch_submission(conn, submission_id: int) -> SubmissionRecord | None:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"SELECT {_SUBMISSION_COLUMNS} FROM submissions WHERE id = %s",
            (submission_id,),
        )
        row = cur.fetchone()
    return _row_to_record(dict(row)) if row else None


def fetch_recent_submissions(conn, limit: int = 20) -> list[SubmissionRecord]:
    """Most recent submissions first."""
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"SELECT {_SUBMISSION_COLUMNS} FROM submissions ORDER BY created_at DESC, id DESC LIMIT %s",
            (limit,),
        )
        rows = cur.fetchall()
    return [_row_to_record(dict(r)) for r in rows]
