"""Historial de corridas de validación en SQLite."""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from sales_robot.domain.entities import HistoryRecord

logger = structlog.get_logger()

_SCHEMA = """
CREATE TABLE IF NOT EXISTS validation_history (
    id                  TEXT PRIMARY KEY,
    run_at              TEXT NOT NULL,
    campaign_selector   TEXT NOT NULL,
    operator_id         TEXT,
    total_processed     INTEGER DEFAULT 0,
    validated           INTEGER DEFAULT 0,
    rejected            INTEGER DEFAULT 0,
    conflict            INTEGER DEFAULT 0,
    kept_pending        INTEGER DEFAULT 0,
    revalidated         INTEGER DEFAULT 0,
    details_json        TEXT NOT NULL DEFAULT '[]',
    created_at          TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_history_run_at ON validation_history(run_at);
CREATE INDEX IF NOT EXISTS idx_history_campaign ON validation_history(campaign_selector);
"""


def _utc_iso(value: datetime) -> str:
    """Fechas en UTC para que el orden de texto coincida con el cronológico."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


class SqliteHistoryRepository:
    def __init__(self, db_path: str) -> None:
        path = Path(db_path)
        if db_path != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()
        logger.info("sqlite_history_initialized", db_path=db_path)

    def save(self, record: HistoryRecord) -> None:
        self._conn.execute(
            """INSERT INTO validation_history
               (id, run_at, campaign_selector, operator_id, total_processed,
                validated, rejected, conflict, kept_pending, revalidated, details_json)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                record.id,
                _utc_iso(record.run_at),
                record.campaign_selector,
                record.operator_id,
                record.total_processed,
                record.validated,
                record.rejected,
                record.conflict,
                record.kept_pending,
                record.revalidated,
                json.dumps(record.details, ensure_ascii=False, default=str),
            ),
        )
        self._conn.commit()
        logger.info("history_saved", run_id=record.id, total=record.total_processed)

    def search(
        self,
        campaign_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        operator_id: str | None = None,
    ) -> list[HistoryRecord]:
        """Filtra por campaña, operador y rango de fechas; más reciente primero."""
        clauses: list[str] = []
        params: list[Any] = []
        if campaign_id:
            clauses.append("campaign_selector=?")
            params.append(campaign_id)
        if operator_id:
            clauses.append("operator_id=?")
            params.append(operator_id)
        if start is not None:
            clauses.append("run_at>=?")
            params.append(_utc_iso(start))
        if end is not None:
            clauses.append("run_at<=?")
            params.append(_utc_iso(end))

        query = "SELECT * FROM validation_history"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY run_at DESC"
        if limit > 0:
            query += " LIMIT ?"
            params.append(limit)

        cursor = self._conn.execute(query, params)
        columns = [desc[0] for desc in cursor.description]
        return [self._to_record(dict(zip(columns, row))) for row in cursor.fetchall()]

    @staticmethod
    def _to_record(row: dict[str, Any]) -> HistoryRecord:
        return HistoryRecord(
            id=row["id"],
            run_at=datetime.fromisoformat(row["run_at"]),
            campaign_selector=row["campaign_selector"],
            operator_id=row["operator_id"],
            total_processed=row["total_processed"],
            validated=row["validated"],
            rejected=row["rejected"],
            conflict=row["conflict"],
            kept_pending=row["kept_pending"],
            revalidated=row["revalidated"],
            details=json.loads(row["details_json"]),
        )

    def close(self) -> None:
        self._conn.close()
