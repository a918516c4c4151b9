"""
storage.py – Submission stores and registry loading.

Two interchangeable submission stores share the same three methods
(``save``, ``get``, ``recent``):

* ``MemorySubmissionStore``   – process-local, used when no DATABASE_URL is set
* ``PostgresSubmissionStore`` – one short-lived psycopg2 connection per call

Submissions are write-once: ``save`` assigns ``id`` and ``created_at`` and
rejects a record that already carries an id.
"""
from __future__ import annotations

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Protocol

from carbon_footprint import db
from carbon_footprint.config import Config
from carbon_footprint.emission_factors import EmissionFactorRegistry, get_default_registry
from carbon_footprint.schemas import SubmissionRecord

logger = logging.getLogger(__name__)


class SubmissionStore(Protocol):
    def save(self, record: SubmissionRecord) -> SubmissionRecord: ...

    def get(self, submission_id: int) -> SubmissionRecord | None: ...

    def recent(self, limit: int = 20) -> list[SubmissionRecord]: ...


def _check_new(record: SubmissionRecord) -> None:
    if record.id is not None:
        raise ValueError(f"Submission {record.id} is already stored; submissions are write-once")


class MemorySubmissionStore:
    """Thread-safe in-process store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._records: dict[int, SubmissionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def save(self, record: SubmissionRecord) -> SubmissionRecord:
        _check_new(record)
        with self._lock:
            stored = record.model_copy(
                update={"id": next(self._ids), "created_at": datetime.now(timezone.utc)}
            )
            self._records[stored.id] = stored
        logger.info("Stored submission %d in memory", stored.id)
        return stored

    def get(self, submission_id: int) -> SubmissionRecord | None:
        with self._lock:
            return self._records.get(submission_id)

    def recent(self, limit: int = 20) -> list[SubmissionRecord]:
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: r.id, reverse=True)[:limit]


class PostgresSubmissionStore:
    """Submissions table in PostgreSQL."""

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url

    def save(self, record: SubmissionRecord) -> SubmissionRecord:
        _check_new(record)
        conn = db.get_connection(self.database_url)
        try:
            submission_id, created_at = db.insert_submission(conn, record)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Stored submission %d", submission_id)
        return record.model_copy(update={"id": submission_id, "created_at": created_at})

    def get(self, submission_id: int) -> SubmissionRecord | None:
        conn = db.get_connection(self.database_url)
        try:
            return db.fetch_submission(conn, submission_id)
        finally:
            conn.close()

    def recent(self, limit: int = 20) -> list[SubmissionRecord]:
        conn = db.get_connection(self.database_url)
        try:
            return db.fetch_recent_submissions(conn, limit)
        finally:
            conn.close()


def build_store(config: Config) -> SubmissionStore:
    if config.database_url:
        return PostgresSubmissionStore(config.database_url)
    logger.warning("DATABASE_URL not set; submissions are kept in memory only")
    return MemorySubmissionStore()


def load_registry(config: Config) -> EmissionFactorRegistry:
    """
    Seed registry with any factors stored in PostgreSQL laid over it.

    Called once at start-up; the returned registry is an immutable snapshot.
    """
    registry = get_default_registry()
    if not config.database_url:
        return registry

    conn = db.get_connection(config.database_url)
    try:
        stored = db.fetch_emission_factors(conn)
    finally:
        conn.close()

    if not stored:
        logger.info("No stored emission factors; using %d seed factors", len(registry))
        return registry
    logger.info("Loaded %d emission factors from the database", len(stored))
    return registry.with_factors(stored)
