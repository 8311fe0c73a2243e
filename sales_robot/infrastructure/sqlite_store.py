"""Almacenamiento de envíos de venta en SQLite, con proyección de lectura hidratada."""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog

from sales_robot.application.ports.submission_repository import ValidatedClaim
from sales_robot.domain.entities import (
    ALL_ACTIVE_CAMPAIGNS,
    RECONCILABLE_STATUSES,
    Campaign,
    Condition,
    OpticsEntity,
    ProductCatalogEntry,
    Requirement,
    Seller,
    Submission,
    SubmissionStatus,
    SubmissionView,
    UnitType,
)
from sales_robot.domain.exceptions import DataIntegrityError
from sales_robot.domain.value_objects import SpilloverPool

logger = structlog.get_logger()

_SCHEMA = """
CREATE TABLE IF NOT EXISTS optics (
    id                  TEXT PRIMARY KEY,
    name                TEXT NOT NULL,
    tax_id              TEXT,
    parent_id           TEXT REFERENCES optics(id)
);

CREATE TABLE IF NOT EXISTS sellers (
    id                  TEXT PRIMARY KEY,
    name                TEXT NOT NULL,
    email               TEXT NOT NULL DEFAULT '',
    optics_id           TEXT REFERENCES optics(id),
    manager_id          TEXT
);

CREATE TABLE IF NOT EXISTS campaigns (
    id                  TEXT PRIMARY KEY,
    title               TEXT NOT NULL,
    start_date          TEXT NOT NULL,
    end_date            TEXT NOT NULL,
    order_type          TEXT NOT NULL DEFAULT 'OS_OP_EPS',
    active              INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS catalog_products (
    campaign_id         TEXT NOT NULL REFERENCES campaigns(id),
    code                TEXT NOT NULL,
    payout_value        TEXT NOT NULL,
    PRIMARY KEY (campaign_id, code)
);

CREATE TABLE IF NOT EXISTS requirements (
    id                  TEXT PRIMARY KEY,
    campaign_id         TEXT NOT NULL REFERENCES campaigns(id),
    description         TEXT NOT NULL,
    quantity            INTEGER NOT NULL CHECK (quantity >= 1),
    unit_type           TEXT NOT NULL,
    order_key           INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS requirement_conditions (
    id                  TEXT PRIMARY KEY,
    requirement_id      TEXT NOT NULL REFERENCES requirements(id),
    position            INTEGER NOT NULL,
    field               TEXT NOT NULL,
    operator            TEXT NOT NULL,
    expected_value      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS submissions (
    id                    TEXT PRIMARY KEY,
    order_number          TEXT NOT NULL,
    seller_id             TEXT NOT NULL REFERENCES sellers(id),
    requirement_id        TEXT NOT NULL REFERENCES requirements(id),
    campaign_id           TEXT NOT NULL REFERENCES campaigns(id),
    status                TEXT NOT NULL,
    technical_message     TEXT,
    counterparty_message  TEXT,
    slot_number           INTEGER,
    product_code          TEXT,
    payout_value          TEXT,
    sale_date             TEXT,
    submitted_at          TEXT NOT NULL,
    validated_at          TEXT
);

CREATE TABLE IF NOT EXISTS notifications (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    seller_id           TEXT NOT NULL REFERENCES sellers(id),
    submission_id       TEXT REFERENCES submissions(id),
    message             TEXT NOT NULL,
    created_at          TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS saved_mappings (
    operator_id         TEXT PRIMARY KEY,
    mapping             TEXT NOT NULL,
    updated_at          TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS uq_submissions_validated_order
    ON submissions(order_number, campaign_id) WHERE status = 'VALIDATED';
CREATE INDEX IF NOT EXISTS idx_submissions_status ON submissions(status, campaign_id);
CREATE INDEX IF NOT EXISTS idx_submissions_pool ON submissions(seller_id, campaign_id, status);
CREATE INDEX IF NOT EXISTS idx_conditions_requirement ON requirement_conditions(requirement_id);
CREATE INDEX IF NOT EXISTS idx_notifications_seller ON notifications(seller_id);
"""


def _decimal(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_submission(row: sqlite3.Row) -> Submission:
    return Submission(
        id=row["id"],
        order_number=row["order_number"],
        seller_id=row["seller_id"],
        requirement_id=row["requirement_id"],
        campaign_id=row["campaign_id"],
        status=SubmissionStatus(row["status"]),
        technical_message=row["technical_message"],
        counterparty_message=row["counterparty_message"],
        slot_number=row["slot_number"],
        product_code=row["product_code"],
        payout_value=_decimal(row["payout_value"]),
        sale_date=_datetime(row["sale_date"]),
        submitted_at=_datetime(row["submitted_at"]),
        validated_at=_datetime(row["validated_at"]),
    )


class SqliteSubmissionTransaction:
    """Operaciones válidas dentro de una transacción BEGIN IMMEDIATE."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def count_validated_in_pool(self, pool: SpilloverPool) -> int:
        cursor = self._conn.execute(
            """SELECT COUNT(*) FROM submissions s
               JOIN requirements r ON r.id = s.requirement_id
               WHERE s.seller_id=? AND s.campaign_id=? AND s.status='VALIDATED'
                 AND r.order_key=?""",
            (pool.seller_id, pool.campaign_id, pool.order_key),
        )
        return int(cursor.fetchone()[0])

    def mark_validated(
        self,
        submission_id: str,
        *,
        slot_number: int,
        product_code: str | None,
        payout_value: Decimal | None,
        sale_date: datetime | None,
        validated_at: datetime,
    ) -> Submission:
        cursor = self._conn.execute(
            """UPDATE submissions
               SET status='VALIDATED', technical_message=NULL, counterparty_message=NULL,
                   slot_number=?, product_code=?, payout_value=?, sale_date=?, validated_at=?
               WHERE id=? AND status != 'VALIDATED'""",
            (
                slot_number,
                product_code,
                str(payout_value) if payout_value is not None else None,
                sale_date.isoformat() if sale_date else None,
                validated_at.isoformat(),
                submission_id,
            ),
        )
        if cursor.rowcount == 0:
            raise DataIntegrityError(submission_id, ["envío conciliable"])
        row = self._conn.execute("SELECT * FROM submissions WHERE id=?", (submission_id,)).fetchone()
        return _row_to_submission(row)

    def record_notification(self, seller_id: str, submission_id: str, message: str) -> None:
        self._conn.execute(
            """INSERT INTO notifications (seller_id, submission_id, message, created_at)
               VALUES (?, ?, ?, ?)""",
            (seller_id, submission_id, message, datetime.now(UTC).isoformat()),
        )


class SqliteSubmissionRepository:
    """
    Envíos, catálogo y jerarquía de óticas en SQLite.

    La conexión trabaja en autocommit; `transaction()` abre BEGIN IMMEDIATE, que
    toma el lock de escritura antes del conteo de spillover. Dos corridas en
    paralelo no pueden calcular la misma cartela.
    """

    def __init__(self, db_path: str, timeout: float = 30.0) -> None:
        path = Path(db_path)
        if db_path != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path) if db_path != ":memory:" else db_path,
            timeout=timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.info("sqlite_store_initialized", db_path=db_path)

    # ── Alta de datos maestros ──────────────────────────────

    def save_optics(self, optics: OpticsEntity) -> None:
        if optics.parent is not None:
            self.save_optics(optics.parent)
        self._conn.execute(
            """INSERT INTO optics (id, name, tax_id, parent_id) VALUES (?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name=excluded.name, tax_id=excluded.tax_id, parent_id=excluded.parent_id""",
            (optics.id, optics.name, optics.tax_id, optics.parent.id if optics.parent else None),
        )

    def save_seller(self, seller: Seller) -> None:
        if seller.optics is not None:
            self.save_optics(seller.optics)
        self._conn.execute(
            """INSERT INTO sellers (id, name, email, optics_id, manager_id) VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   name=excluded.name, email=excluded.email,
                   optics_id=excluded.optics_id, manager_id=excluded.manager_id""",
            (
                seller.id,
                seller.name,
                seller.email,
                seller.optics.id if seller.optics else None,
                seller.manager_id,
            ),
        )

    def save_campaign(self, campaign: Campaign) -> None:
        """Guarda la campaña y reemplaza su catálogo. Los códigos se guardan en mayúsculas."""
        with self._write():
            self._conn.execute(
                """INSERT INTO campaigns (id, title, start_date, end_date, order_type, active)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                       title=excluded.title, start_date=excluded.start_date,
                       end_date=excluded.end_date, order_type=excluded.order_type,
                       active=excluded.active""",
                (
                    campaign.id,
                    campaign.title,
                    campaign.start_date.isoformat(),
                    campaign.end_date.isoformat(),
                    campaign.order_type,
                    1 if campaign.active else 0,
                ),
            )
            self._conn.execute("DELETE FROM catalog_products WHERE campaign_id=?", (campaign.id,))
            self._conn.executemany(
                "INSERT INTO catalog_products (campaign_id, code, payout_value) VALUES (?, ?, ?)",
                [
                    (campaign.id, entry.code.strip().upper(), str(entry.payout_value))
                    for entry in campaign.catalog
                ],
            )

    def save_requirement(self, requirement: Requirement) -> None:
        with self._write():
            self._conn.execute(
                """INSERT INTO requirements
                   (id, campaign_id, description, quantity, unit_type, order_key)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                       description=excluded.description, quantity=excluded.quantity,
                       unit_type=excluded.unit_type, order_key=excluded.order_key""",
                (
                    requirement.id,
                    requirement.campaign_id,
                    requirement.description,
                    requirement.quantity,
                    requirement.unit_type.value,
                    requirement.order_key,
                ),
            )
            self._conn.execute(
                "DELETE FROM requirement_conditions WHERE requirement_id=?", (requirement.id,)
            )
            self._conn.executemany(
                """INSERT INTO requirement_conditions
                   (id, requirement_id, position, field, operator, expected_value)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                [
                    (c.id, requirement.id, position, c.field, c.operator, c.expected_value)
                    for position, c in enumerate(requirement.conditions)
                ],
            )

    def save_submission(self, submission: Submission) -> None:
        submitted_at = submission.submitted_at or datetime.now(UTC)
        self._conn.execute(
            """INSERT INTO submissions
               (id, order_number, seller_id, requirement_id, campaign_id, status,
                technical_message, counterparty_message, slot_number, product_code,
                payout_value, sale_date, submitted_at, validated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                submission.id,
                submission.order_number,
                submission.seller_id,
                submission.requirement_id,
                submission.campaign_id,
                submission.status.value,
                submission.technical_message,
                submission.counterparty_message,
                submission.slot_number,
                submission.product_code,
                str(submission.payout_value) if submission.payout_value is not None else None,
                submission.sale_date.isoformat() if submission.sale_date else None,
                submitted_at.isoformat(),
                submission.validated_at.isoformat() if submission.validated_at else None,
            ),
        )

    # ── Lectura ─────────────────────────────────────────────

    def get_submission(self, submission_id: str) -> Submission | None:
        row = self._conn.execute("SELECT * FROM submissions WHERE id=?", (submission_id,)).fetchone()
        return _row_to_submission(row) if row else None

    def list_notifications(self, seller_id: str) -> list[dict[str, Any]]:
        cursor = self._conn.execute(
            "SELECT * FROM notifications WHERE seller_id=? ORDER BY id", (seller_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def fetch_reconcilable(self, campaign_selector: str) -> list[SubmissionView]:
        """Envíos no validados, hidratados una sola vez con campaña, requisito y vendedor."""
        placeholders = ", ".join("?" for _ in RECONCILABLE_STATUSES)
        params: list[Any] = [s.value for s in RECONCILABLE_STATUSES]
        query = f"""SELECT s.* FROM submissions s
                    JOIN campaigns c ON c.id = s.campaign_id
                    WHERE s.status IN ({placeholders})"""
        if campaign_selector == ALL_ACTIVE_CAMPAIGNS:
            query += " AND c.active = 1"
        else:
            query += " AND s.campaign_id = ?"
            params.append(campaign_selector)
        query += " ORDER BY s.submitted_at, s.rowid"

        rows = self._conn.execute(query, params).fetchall()
        campaigns: dict[str, Campaign] = {}
        requirements: dict[str, Requirement] = {}
        sellers: dict[str, Seller | None] = {}

        views: list[SubmissionView] = []
        for row in rows:
            submission = _row_to_submission(row)
            if submission.campaign_id not in campaigns:
                campaigns[submission.campaign_id] = self._load_campaign(submission.campaign_id)
            if submission.requirement_id not in requirements:
                requirements[submission.requirement_id] = self._load_requirement(
                    submission.requirement_id
                )
            if submission.seller_id not in sellers:
                sellers[submission.seller_id] = self._load_seller(submission.seller_id)
            views.append(
                SubmissionView(
                    submission=submission,
                    requirement=requirements[submission.requirement_id],
                    campaign=campaigns[submission.campaign_id],
                    seller=sellers[submission.seller_id],
                )
            )

        logger.info("reconcilable_fetched", campaign_selector=campaign_selector, count=len(views))
        return views

    def find_validated_by_other_seller(
        self, order_number: str, campaign_id: str, seller_id: str
    ) -> ValidatedClaim | None:
        row = self._conn.execute(
            """SELECT s.id, s.seller_id, se.name FROM submissions s
               LEFT JOIN sellers se ON se.id = s.seller_id
               WHERE TRIM(s.order_number)=? AND s.campaign_id=? AND s.status='VALIDATED'
                 AND s.seller_id != ?
               LIMIT 1""",
            (order_number.strip(), campaign_id, seller_id),
        ).fetchone()
        if row is None:
            return None
        return ValidatedClaim(submission_id=row[0], seller_id=row[1], seller_name=row[2])

    def _load_campaign(self, campaign_id: str) -> Campaign:
        row = self._conn.execute("SELECT * FROM campaigns WHERE id=?", (campaign_id,)).fetchone()
        catalog = self._conn.execute(
            "SELECT code, payout_value FROM catalog_products WHERE campaign_id=? ORDER BY code",
            (campaign_id,),
        ).fetchall()
        return Campaign(
            id=row["id"],
            title=row["title"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            order_type=row["order_type"],
            active=bool(row["active"]),
            catalog=tuple(
                ProductCatalogEntry(code=p["code"], payout_value=Decimal(p["payout_value"]))
                for p in catalog
            ),
        )

    def _load_requirement(self, requirement_id: str) -> Requirement:
        row = self._conn.execute(
            "SELECT * FROM requirements WHERE id=?", (requirement_id,)
        ).fetchone()
        conditions = self._conn.execute(
            """SELECT id, field, operator, expected_value FROM requirement_conditions
               WHERE requirement_id=? ORDER BY position""",
            (requirement_id,),
        ).fetchall()
        return Requirement(
            id=row["id"],
            campaign_id=row["campaign_id"],
            description=row["description"],
            quantity=row["quantity"],
            unit_type=UnitType(row["unit_type"]),
            order_key=row["order_key"],
            conditions=tuple(
                Condition(
                    id=c["id"],
                    field=c["field"],
                    operator=c["operator"],
                    expected_value=c["expected_value"],
                )
                for c in conditions
            ),
        )

    def _load_seller(self, seller_id: str) -> Seller | None:
        row = self._conn.execute("SELECT * FROM sellers WHERE id=?", (seller_id,)).fetchone()
        if row is None:
            return None
        optics = self._load_optics(row["optics_id"]) if row["optics_id"] else None
        return Seller(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            optics=optics,
            manager_id=row["manager_id"],
        )

    def _load_optics(self, optics_id: str, with_parent: bool = True) -> OpticsEntity | None:
        row = self._conn.execute("SELECT * FROM optics WHERE id=?", (optics_id,)).fetchone()
        if row is None:
            return None
        parent = None
        if with_parent and row["parent_id"]:
            parent = self._load_optics(row["parent_id"], with_parent=False)
        return OpticsEntity(id=row["id"], name=row["name"], tax_id=row["tax_id"], parent=parent)

    # ── Escritura ───────────────────────────────────────────

    def update_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        technical_message: str | None,
        counterparty_message: str | None,
    ) -> None:
        """Un VALIDATED nunca se sobreescribe desde acá."""
        with self._lock:
            self._conn.execute(
                """UPDATE submissions
                   SET status=?, technical_message=?, counterparty_message=?
                   WHERE id=? AND status != 'VALIDATED'""",
                (status.value, technical_message, counterparty_message, submission_id),
            )

    @contextmanager
    def transaction(self) -> Iterator[SqliteSubmissionTransaction]:
        with self._write():
            yield SqliteSubmissionTransaction(self._conn)

    @contextmanager
    def _write(self) -> Iterator[None]:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield
            except Exception:
                self._conn.execute("ROLLBACK")
                logger.warning("sqlite_transaction_rolled_back")
                raise
            self._conn.execute("COMMIT")

    def save_mapping(self, operator_id: str, mapping: dict[str, str]) -> None:
        self._conn.execute(
            """INSERT INTO saved_mappings (operator_id, mapping, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(operator_id) DO UPDATE SET
                   mapping=excluded.mapping, updated_at=excluded.updated_at""",
            (operator_id, json.dumps(mapping, ensure_ascii=False), datetime.now(UTC).isoformat()),
        )

    def load_mapping(self, operator_id: str) -> dict[str, str] | None:
        row = self._conn.execute(
            "SELECT mapping FROM saved_mappings WHERE operator_id=?", (operator_id,)
        ).fetchone()
        return json.loads(row["mapping"]) if row else None

    def close(self) -> None:
        """Cierra la conexión a la base de datos."""
        self._conn.close()
