"""Integration test fixtures: seeded SQLite store, XLSX factory and use case builder.

Real components: SqliteSubmissionRepository, SqliteHistoryRepository,
NotificationRewardEngine, OpenpyxlSpreadsheetHandler, ReconcileSalesUseCase.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from sales_robot.application.config import ValidationConfig
from sales_robot.application.use_cases.reconcile_sales import ReconcileSalesUseCase
from sales_robot.domain.entities import (
    Campaign,
    Condition,
    OpticsEntity,
    ProductCatalogEntry,
    Requirement,
    Seller,
    Submission,
    UnitType,
)
from sales_robot.infrastructure.excel_handler import OpenpyxlSpreadsheetHandler
from sales_robot.infrastructure.notification_reward_engine import NotificationRewardEngine
from sales_robot.infrastructure.sqlite_history import SqliteHistoryRepository
from sales_robot.infrastructure.sqlite_store import SqliteSubmissionRepository


# ── Column Constants ─────────────────────────────────────────────────

SHEET_COLUMNS = ["Pedido OS", "CNPJ Loja", "Data da Venda", "Cod. Referencia"]

BRANCH_CNPJ = "12.345.678/0001-90"
HQ_CNPJ = "99.888.777/0001-66"
OTHER_CNPJ = "55.444.333/0001-22"


# ── XLSX Factory Functions ───────────────────────────────────────────


def create_sales_xlsx(path: Path, rows: list[dict], sheet_name: str = "Vendas") -> Path:
    """Create the admin spreadsheet with text cells, as exported by the ERP."""
    df = pd.DataFrame(rows, columns=SHEET_COLUMNS).astype(object)
    df.to_excel(path, sheet_name=sheet_name, index=False, engine="openpyxl")
    return path


# ── Store Seeding ────────────────────────────────────────────────────


class SeededStore:
    """Wrapper that seeds master data and submissions with incremental timestamps."""

    def __init__(self, store: SqliteSubmissionRepository) -> None:
        self.store = store
        self._clock = datetime(2025, 1, 20, 9, 0, tzinfo=UTC)

    def submit(
        self,
        submission_id: str,
        order_number: str,
        seller_id: str = "seller-ana",
        requirement_id: str = "req-unit",
        campaign_id: str = "camp-verao",
        **overrides: Any,
    ) -> Submission:
        self._clock += timedelta(minutes=1)
        submission = Submission(
            id=submission_id,
            order_number=order_number,
            seller_id=seller_id,
            requirement_id=requirement_id,
            campaign_id=campaign_id,
            submitted_at=self._clock,
            **overrides,
        )
        self.store.save_submission(submission)
        return submission


def seed_master_data(store: SqliteSubmissionRepository) -> None:
    hq = OpticsEntity(id="opt-hq", name="Ótica Matriz", tax_id=HQ_CNPJ)
    branch = OpticsEntity(id="opt-branch", name="Ótica Filial", tax_id=BRANCH_CNPJ, parent=hq)
    other = OpticsEntity(id="opt-other", name="Ótica Outra", tax_id=OTHER_CNPJ)

    store.save_seller(Seller(id="seller-ana", name="Ana Souza", email="ana@filial.com", optics=branch))
    store.save_seller(Seller(id="seller-bia", name="Bia Lima", email="bia@filial.com", optics=branch))
    store.save_seller(Seller(id="seller-hq", name="Caio Reis", email="caio@matriz.com", optics=hq))
    store.save_seller(Seller(id="seller-out", name="Davi Melo", email="davi@outra.com", optics=other))

    store.save_campaign(
        Campaign(
            id="camp-verao",
            title="Campanha Verão",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 1, 31),
            catalog=(
                ProductCatalogEntry(code="LENTE-A", payout_value=Decimal("50.00")),
                ProductCatalogEntry(code="LENTE-B", payout_value=Decimal("75.50")),
            ),
        )
    )
    catalog_condition = Condition(
        id="cond-catalog", field="CODIGO_DA_REFERENCIA", operator="EQUALS", expected_value=""
    )
    store.save_requirement(
        Requirement(
            id="req-unit",
            campaign_id="camp-verao",
            description="Vender 2 lentes avulsas por cartela",
            quantity=2,
            unit_type=UnitType.UNIT,
            order_key=1,
            conditions=(catalog_condition,),
        )
    )
    store.save_requirement(
        Requirement(
            id="req-pair",
            campaign_id="camp-verao",
            description="Vender 1 par de lentes",
            quantity=1,
            unit_type=UnitType.PAIR,
            order_key=2,
        )
    )


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "sales_robot.db")


@pytest.fixture
def store(db_path: str):
    """Real SQLite store with optics hierarchy, sellers, campaign and requirements."""
    s = SqliteSubmissionRepository(db_path)
    seed_master_data(s)
    yield s
    s.close()


@pytest.fixture
def history(db_path: str):
    h = SqliteHistoryRepository(db_path)
    yield h
    h.close()


@pytest.fixture
def seeded(store: SqliteSubmissionRepository) -> SeededStore:
    return SeededStore(store)


@pytest.fixture
def spreadsheet(tmp_path: Path):
    """Factory: writes an XLSX with the given rows and returns them as read by the handler."""
    handler = OpenpyxlSpreadsheetHandler()

    def _build(rows: list[dict]) -> list[dict]:
        path = create_sales_xlsx(tmp_path / "vendas.xlsx", rows)
        return handler.read_rows(path)

    return _build


@pytest.fixture
def build_use_case(store: SqliteSubmissionRepository, history: SqliteHistoryRepository):
    """Factory that builds a ReconcileSalesUseCase with real store + history."""

    def _build(reward_engine=None, config: ValidationConfig | None = None) -> ReconcileSalesUseCase:
        return ReconcileSalesUseCase(
            repository=store,
            history=history,
            reward_engine=reward_engine or NotificationRewardEngine(),
            config=config or ValidationConfig(),
        )

    return _build
