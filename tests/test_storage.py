"""
Unit tests for carbon_footprint/db.py and carbon_footprint/storage.py

No real DB connection is used. Each test builds a mock psycopg2 connection
that satisfies the `with conn.cursor() as cur:` pattern used in db.py.
"""
import threading
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from carbon_footprint import db
from carbon_footprint.calculations import build_submission, calculate_footprint
from carbon_footprint.config import Config
from carbon_footprint.emission_factors import EmissionFactor, get_default_registry, seed_factors
from carbon_footprint.recommendations import generate_recommendations
from carbon_footprint.storage import (
    MemorySubmissionStore,
    PostgresSubmissionStore,
    build_store,
    load_registry,
)
from carbon_footprint.validators import validate_survey


# ─────────────────────────────────────────────────────────────────────────────
# Helper: build a mock psycopg2 connection
#
# db.py always does:
#     with conn.cursor(...) as cur:
#         cur.execute(...)
#         rows = cur.fetchall()   # or cur.fetchone()
# ─────────────────────────────────────────────────────────────────────────────

def make_conn(fetchall_rows=None, fetchone_row=None):
    """
    Returns (mock_conn, mock_cursor).

    mock_cursor.fetchall() → fetchall_rows  (default [])
    mock_cursor.fetchone() → fetchone_row   (default (1, <now>))
    """
    mock_cursor = MagicMock()
    mock_cursor.fetchall.return_value = fetchall_rows if fetchall_rows is not None else []
    mock_cursor.fetchone.return_value = (
        fetchone_row if fetchone_row is not None else (1, datetime(2024, 1, 1, tzinfo=timezone.utc))
    )

    mock_ctx = MagicMock()
    mock_ctx.__enter__ = MagicMock(return_value=mock_cursor)
    mock_ctx.__exit__ = MagicMock(return_value=False)

    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_ctx
    return mock_conn, mock_cursor


SURVEY = validate_survey({
    "calculationType": "individual",
    "location": "us",
    "electricityUsage": 600,
    "renewableSources": ["solar"],
    "primaryTransport": "car",
    "annualMileage": 12000,
})


def make_record(with_recommendations=False):
    result = calculate_footprint(SURVEY)
    recs = generate_recommendations(result, SURVEY) if with_recommendations else None
    return build_submission(SURVEY, result, recs)


def submission_row(record, submission_id=7):
    return {
        "id": submission_id,
        "calculation_type": "individual",
        "location": "us",
        "survey": record.survey.model_dump(mode="json", by_alias=True),
        "total_emissions": Decimal(str(record.result.total_emissions)),
        "home_emissions": Decimal(str(record.result.home_emissions)),
        "transport_emissions": Decimal(str(record.result.transport_emissions)),
        "food_emissions": Decimal(str(record.result.food_emissions)),
        "recommendations": [r.model_dump(mode="json", by_alias=True) for r in record.recommendations],
        "created_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
    }


# ─────────────────────────────────────────────────────────────────────────────
# 1. db – emission factors
# ─────────────────────────────────────────────────────────────────────────────

class TestEmissionFactorQueries:

    def test_fetch_converts_rows(self):
        rows = [{
            "category": "electricity", "factor_key": "us", "value": Decimal("0.4100"),
            "unit": "kg CO2e/kWh", "description": "grid", "year": 2024,
        }]
        conn, cur = make_conn(fetchall_rows=rows)
        factors = db.fetch_emission_factors(conn)
        assert factors == [EmissionFactor("electricity", "us", 0.41, "kg CO2e/kWh", "grid", 2024)]
        assert isinstance(factors[0].value, float)

    def test_fetch_filters_by_category(self):
        conn, cur = make_conn()
        db.fetch_emission_factors(conn, "car")
        sql, params = cur.execute.call_args[0]
        assert "WHERE category = %s" in sql
        assert params == ("car",)

    def test_upsert_every_factor(self):
        conn, cur = make_conn()
        count = db.upsert_emission_factors(conn, seed_factors())
        assert count == len(seed_factors())
        assert cur.execute.call_count == count
        assert "ON CONFLICT (category, factor_key) DO UPDATE" in cur.execute.call_args[0][0]

    def test_upsert_does_not_commit(self):
        conn, _ = make_conn()
        db.upsert_emission_factors(conn, seed_factors()[:1])
        conn.commit.assert_not_called()


# ─────────────────────────────────────────────────────────────────────────────
# 2. db – submissions
# ─────────────────────────────────────────────────────────────────────────────

class TestSubmissionQueries:

    def test_insert_returns_id_and_timestamp(self):
        conn, cur = make_conn(fetchone_row=(42, "2024-01-01"))
        assert db.insert_submission(conn, make_record()) == (42, "2024-01-01")

    def test_insert_params(self):
        conn, cur = make_conn()
        record = make_record(with_recommendations=True)
        db.insert_submission(conn, record)
        params = cur.execute.call_args[0][1]
        assert params[0] == "individual"
        assert params[1] == "us"
        assert params[3] == record.result.total_emissions
        # survey and recommendations are wrapped for JSONB
        assert params[2].adapted["calculationType"] == "individual"
        assert params[7].adapted[-1]["id"] == record.recommendations[-1].id

    def test_fetch_submission_round_trips_row(self):
        record = make_record(with_recommendations=True)
        conn, cur = make_conn(fetchone_row=submission_row(record))
        fetched = db.fetch_submission(conn, 7)
        assert fetched.id == 7
        assert fetched.survey == record.survey
        assert fetched.result == record.result
        assert fetched.recommendations == record.recommendations

    def test_fetch_missing_submission(self):
        conn, cur = make_conn()
        cur.fetchone.return_value = None
        assert db.fetch_submission(conn, 99) is None

    def test_fetch_recent_passes_limit(self):
        record = make_record()
        conn, cur = make_conn(fetchall_rows=[submission_row(record, 2), submission_row(record, 1)])
        records = db.fetch_recent_submissions(conn, limit=2)
        assert [r.id for r in records] == [2, 1]
        assert cur.execute.call_args[0][1] == (2,)


# ─────────────────────────────────────────────────────────────────────────────
# 3. db – connection helpers
# ─────────────────────────────────────────────────────────────────────────────

class TestConnectionHelpers:

    def test_ping_ok(self):
        conn, _ = make_conn()
        with patch("carbon_footprint.db.psycopg2.connect", return_value=conn):
            assert db.ping_database("postgresql://x") == (True, None)
        conn.close.assert_called_once()

    def test_ping_failure_is_reported(self):
        import psycopg2

        with patch("carbon_footprint.db.psycopg2.connect", side_effect=psycopg2.OperationalError("refused")):
            ok, err = db.ping_database("postgresql://x")
        assert ok is False
        assert err.startswith("Database error:")
        assert "refused" in err

    def test_ping_closes_connection_when_query_fails(self):
        import psycopg2

        conn, cur = make_conn()
        cur.execute.side_effect = psycopg2.ProgrammingError("boom")
        with patch("carbon_footprint.db.psycopg2.connect", return_value=conn):
            ok, _ = db.ping_database("postgresql://x")
        assert ok is False
        conn.close.assert_called_once()

    def test_apply_schema_runs_sql_file(self):
        conn, cur = make_conn()
        with patch("carbon_footprint.db.psycopg2.connect", return_value=conn):
            assert db.apply_schema("postgresql://x") == (True, None)
        assert conn.autocommit is True
        assert "CREATE TABLE IF NOT EXISTS submissions" in cur.execute.call_args[0][0]

    def test_apply_schema_missing_file(self, tmp_path):
        ok, err = db.apply_schema("postgresql://x", tmp_path / "nope.sql")
        assert ok is False
        assert "schema missing" in err

    def test_location_column_is_unbounded(self):
        # validate_survey accepts any location string, so the column must too
        sql = db.SCHEMA_PATH.read_text(encoding="utf-8")
        location = next(line for line in sql.splitlines() if line.strip().startswith("location"))
        assert "VARCHAR" not in location
        assert "TEXT" in location


# ─────────────────────────────────────────────────────────────────────────────
# 4. storage – submission stores
# ─────────────────────────────────────────────────────────────────────────────

class TestMemorySubmissionStore:

    def test_save_assigns_id_and_timestamp(self):
        store = MemorySubmissionStore()
        saved = store.save(make_record())
        assert saved.id == 1
        assert saved.created_at is not None
        assert store.get(1) == saved

    def test_write_once(self):
        store = MemorySubmissionStore()
        saved = store.save(make_record())
        with pytest.raises(ValueError, match="write-once"):
            store.save(saved)

    def test_recent_newest_first(self):
        store = MemorySubmissionStore()
        for _ in range(3):
            store.save(make_record())
        assert [r.id for r in store.recent(2)] == [3, 2]

    def test_get_missing(self):
        assert MemorySubmissionStore().get(5) is None

    def test_concurrent_saves_get_unique_ids(self):
        store = MemorySubmissionStore()
        threads = [threading.Thread(target=store.save, args=(make_record(),)) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store) == 20
        assert {r.id for r in store.recent(50)} == set(range(1, 21))


class TestPostgresSubmissionStore:

    def test_save_commits_and_closes(self):
        conn, _ = make_conn(fetchone_row=(11, datetime(2024, 1, 1, tzinfo=timezone.utc)))
        with patch("carbon_footprint.db.psycopg2.connect", return_value=conn):
            saved = PostgresSubmissionStore("postgresql://x").save(make_record())
        assert saved.id == 11
        conn.commit.assert_called_once()
        conn.close.assert_called_once()

    def test_save_rolls_back_on_error(self):
        conn, cur = make_conn()
        cur.execute.side_effect = RuntimeError("boom")
        with patch("carbon_footprint.db.psycopg2.connect", return_value=conn):
            with pytest.raises(RuntimeError):
                PostgresSubmissionStore("postgresql://x").save(make_record())
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    def test_write_once(self):
        record = make_record().model_copy(update={"id": 3})
        with pytest.raises(ValueError):
            PostgresSubmissionStore("postgresql://x").save(record)


# ─────────────────────────────────────────────────────────────────────────────
# 5. storage – build_store / load_registry
# ─────────────────────────────────────────────────────────────────────────────

class TestBuilders:

    def test_memory_store_without_database(self):
        assert isinstance(build_store(Config()), MemorySubmissionStore)

    def test_postgres_store_with_database(self):
        store = build_store(Config(database_url="postgresql://x"))
        assert isinstance(store, PostgresSubmissionStore)

    def test_registry_without_database_is_seed(self):
        assert load_registry(Config()) is get_default_registry()

    def test_registry_overlays_stored_factors(self):
        rows = [{
            "category": "electricity", "factor_key": "us", "value": Decimal("0.5"),
            "unit": "kg CO2e/kWh", "description": None, "year": 2024,
        }]
        conn, _ = make_conn(fetchall_rows=rows)
        with patch("carbon_footprint.db.psycopg2.connect", return_value=conn):
            registry = load_registry(Config(database_url="postgresql://x"))
        assert registry.lookup("electricity", "us") == 0.5
        assert registry.lookup("electricity", "uk") == 0.23
        conn.close.assert_called_once()

    def test_empty_table_keeps_seed_registry(self):
        conn, _ = make_conn(fetchall_rows=[])
        with patch("carbon_footprint.db.psycopg2.connect", return_value=conn):
            assert load_registry(Config(database_url="postgresql://x")) is get_default_registry()
