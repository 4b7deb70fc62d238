from __future__ import annotations

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .errors import AlreadyProcessedError, DuplicatePendingError, InvalidTransitionError, NotFoundError
from .models import FollowUpRecord
from .workflow import FollowUpStatus, validate_sent_at, validate_transition

logger = logging.getLogger(__name__)


IMMUTABLE_FIELDS = ("id", "deal_id")


def _default_db_path() -> Path:
    return Path(os.getenv("FOLLOWUPS_DB_PATH", "data/follow-ups.db"))


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS follow_ups (
  seq INTEGER PRIMARY KEY AUTOINCREMENT,
  id TEXT NOT NULL UNIQUE,
  deal_id TEXT NOT NULL,
  status TEXT NOT NULL,
  created_at TEXT NOT NULL,
  sent_at TEXT,
  record TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_follow_ups_deal_status ON follow_ups(deal_id, status);
CREATE INDEX IF NOT EXISTS idx_follow_ups_status ON follow_ups(status);

-- At most one pending follow-up per deal
CREATE UNIQUE INDEX IF NOT EXISTS idx_follow_ups_pending_deal
  ON follow_ups(deal_id) WHERE status = 'pending';
"""


class FollowUpStore:
    """
    Durable store for follow-up records.

    Backed by sqlite in WAL mode: readers never block, and every mutation runs
    as read-merge-write inside a ``BEGIN IMMEDIATE`` transaction, so writers
    are serialized and no update is lost. Records keep insertion order.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path or _default_db_path())
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=FULL;")
        conn.execute("PRAGMA busy_timeout=5000;")
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(SCHEMA_SQL)
        finally:
            conn.close()

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _tx(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE;")
            yield conn
            conn.execute("COMMIT;")
        except Exception:
            conn.execute("ROLLBACK;")
            raise
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> FollowUpRecord:
        return FollowUpRecord.model_validate(json.loads(row["record"]))

    @staticmethod
    def _fetch(conn: sqlite3.Connection, follow_up_id: str) -> Optional[FollowUpRecord]:
        row = conn.execute("SELECT record FROM follow_ups WHERE id = ?", (follow_up_id,)).fetchone()
        return FollowUpStore._row_to_record(row) if row else None

    @staticmethod
    def _write(conn: sqlite3.Connection, record: FollowUpRecord) -> None:
        conn.execute(
            """
            UPDATE follow_ups
            SET status = ?, sent_at = ?, record = ?
            WHERE id = ?
            """,
            (
                FollowUpStatus(record.status).value,
                record.sent_at,
                json.dumps(record.to_json()),
                record.id,
            ),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all(self) -> List[FollowUpRecord]:
        with self._read() as conn:
            rows = conn.execute("SELECT record FROM follow_ups ORDER BY seq ASC").fetchall()
        return [self._row_to_record(r) for r in rows]

    def list_by_status(self, status: FollowUpStatus) -> List[FollowUpRecord]:
        with self._read() as conn:
            rows = conn.execute(
                "SELECT record FROM follow_ups WHERE status = ? ORDER BY seq ASC",
                (FollowUpStatus(status).value,),
            ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def get_by_id(self, follow_up_id: str) -> Optional[FollowUpRecord]:
        with self._read() as conn:
            return self._fetch(conn, follow_up_id)

    def get_pending_by_deal(self, deal_id: str) -> Optional[FollowUpRecord]:
        with self._read() as conn:
            row = conn.execute(
                "SELECT record FROM follow_ups WHERE deal_id = ? AND status = ?",
                (deal_id, FollowUpStatus.PENDING.value),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def export_json(self) -> List[Dict[str, Any]]:
        """The whole ordered collection, serialized."""
        return [r.to_json() for r in self.get_all()]

    def ping(self) -> bool:
        with self._read() as conn:
            conn.execute("SELECT 1").fetchone()
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, record: FollowUpRecord) -> FollowUpRecord:
        """
        Persist a new record.

        Raises:
            DuplicatePendingError: the record is pending and its deal already
                has a pending follow-up.
            InvalidTransitionError: sent_at does not agree with status.
        """
        validate_sent_at(record.status, record.sent_at)
        status = FollowUpStatus(record.status)

        with self._tx() as conn:
            if status == FollowUpStatus.PENDING:
                existing = conn.execute(
                    "SELECT id FROM follow_ups WHERE deal_id = ? AND status = ?",
                    (record.deal_id, FollowUpStatus.PENDING.value),
                ).fetchone()
                if existing:
                    raise DuplicatePendingError(record.deal_id, existing["id"])
            try:
                conn.execute(
                    """
                    INSERT INTO follow_ups (id, deal_id, status, created_at, sent_at, record)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.id,
                        record.deal_id,
                        status.value,
                        record.created_at,
                        record.sent_at,
                        json.dumps(record.to_json()),
                    ),
                )
            except sqlite3.IntegrityError as e:
                if "follow_ups.id" in str(e):
                    raise InvalidTransitionError(f"Follow-up '{record.id}' already exists") from e
                raise DuplicatePendingError(record.deal_id) from e

        logger.info("Created follow-up: id=%s deal_id=%s status=%s", record.id, record.deal_id, status.value)
        return record

    def update(self, follow_up_id: str, fields: Dict[str, Any]) -> Optional[FollowUpRecord]:
        """
        Merge ``fields`` into a record and persist it.

        Returns None if the id is unknown. Raises InvalidTransitionError for a
        status change the state machine forbids, a sent_at that disagrees with
        the resulting status, or an attempt to change id/deal_id.
        """
        with self._tx() as conn:
            current = self._fetch(conn, follow_up_id)
            if current is None:
                return None
            merged = self._merge(current, fields)
            self._write(conn, merged)

        logger.debug("Updated follow-up: id=%s fields=%s", follow_up_id, sorted(fields))
        return merged

    def transition(
        self,
        follow_up_id: str,
        to_status: FollowUpStatus,
        *,
        expected_status: FollowUpStatus = FollowUpStatus.PENDING,
        **fields: Any,
    ) -> FollowUpRecord:
        """
        Compare-and-set status change.

        The current status is re-read inside the write transaction, so of two
        racing transitions on the same record only the first succeeds.

        Raises:
            NotFoundError: unknown id
            AlreadyProcessedError: status is no longer ``expected_status``
        """
        with self._tx() as conn:
            current = self._fetch(conn, follow_up_id)
            if current is None:
                raise NotFoundError(follow_up_id)
            if FollowUpStatus(current.status) != FollowUpStatus(expected_status):
                raise AlreadyProcessedError(follow_up_id, FollowUpStatus(current.status).value)
            merged = self._merge(current, {**fields, "status": FollowUpStatus(to_status)})
            self._write(conn, merged)

        logger.info(
            "Follow-up transitioned: id=%s %s -> %s",
            follow_up_id,
            FollowUpStatus(expected_status).value,
            FollowUpStatus(to_status).value,
        )
        return merged

    @staticmethod
    def _merge(current: FollowUpRecord, fields: Dict[str, Any]) -> FollowUpRecord:
        data = current.model_dump()
        updates = dict(fields)
        for name in IMMUTABLE_FIELDS:
            if name in updates and updates[name] != data[name]:
                raise InvalidTransitionError(f"'{name}' cannot be changed")

        new_status = updates.get("status", current.status)
        if FollowUpStatus(new_status) != FollowUpStatus(current.status):
            validate_transition(current.status, new_status)

        data.update(updates)
        merged = FollowUpRecord.model_validate(data)
        validate_sent_at(merged.status, merged.sent_at)
        return merged
