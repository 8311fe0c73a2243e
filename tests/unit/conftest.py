"""Unit test fixtures: domain builders for views, rows and column mappings."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from sales_robot.application.column_mapping import ColumnMapping
from sales_robot.domain.entities import (
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


# ── Constants ────────────────────────────────────────────────────────

SELLER_CNPJ = "12.345.678/0001-90"
PARENT_CNPJ = "99.888.777/0001-66"

HEADER_ORDER = "Pedido"
HEADER_CNPJ = "CNPJ"
HEADER_DATE = "Data Venda"
HEADER_PRODUCT = "Produto"


def build_campaign(**overrides: Any) -> Campaign:
    data: dict[str, Any] = {
        "id": "camp-1",
        "title": "Campanha Verão",
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 1, 31),
        "catalog": (
            ProductCatalogEntry(code="LENTE-A", payout_value=Decimal("50.00")),
            ProductCatalogEntry(code="LENTE-B", payout_value=Decimal("75.50")),
        ),
    }
    data.update(overrides)
    return Campaign(**data)


def build_seller(**overrides: Any) -> Seller:
    parent = OpticsEntity(id="opt-hq", name="Ótica Matriz", tax_id=PARENT_CNPJ)
    optics = OpticsEntity(id="opt-1", name="Ótica Centro", tax_id=SELLER_CNPJ, parent=parent)
    data: dict[str, Any] = {
        "id": "seller-1",
        "name": "Ana Souza",
        "email": "ana@otica.com",
        "optics": optics,
    }
    data.update(overrides)
    return Seller(**data)


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def mapping() -> ColumnMapping:
    return ColumnMapping(
        columns={
            "NUMERO_PEDIDO_OS": HEADER_ORDER,
            "CNPJ_OTICA": HEADER_CNPJ,
            "DATA_VENDA": HEADER_DATE,
            "CODIGO_REFERENCIA": HEADER_PRODUCT,
        }
    )


@pytest.fixture
def make_row():
    """Factory de filas de la planilha con valores válidos por defecto."""

    def _make(
        order: Any = "1001",
        cnpj: Any = SELLER_CNPJ,
        sale_date: Any = "15/01/2025",
        product: Any = "LENTE-A",
        **extra: Any,
    ) -> dict[str, Any]:
        row = {
            HEADER_ORDER: order,
            HEADER_CNPJ: cnpj,
            HEADER_DATE: sale_date,
            HEADER_PRODUCT: product,
        }
        row.update(extra)
        return row

    return _make


@pytest.fixture
def make_view():
    """Factory de SubmissionView: envío PENDING de un requisito UNIT sin condiciones."""

    def _make(
        order_number: str = "1001",
        submission_id: str = "sub-1",
        status: SubmissionStatus = SubmissionStatus.PENDING,
        unit_type: UnitType = UnitType.UNIT,
        quantity: int = 1,
        order_key: int = 1,
        conditions: tuple[Condition, ...] = (),
        seller: Seller | None = None,
        campaign: Campaign | None = None,
        with_seller: bool = True,
    ) -> SubmissionView:
        seller = seller or build_seller()
        campaign = campaign or build_campaign()
        requirement = Requirement(
            id="req-1",
            campaign_id=campaign.id,
            description="Vender 1 lente premium",
            quantity=quantity,
            unit_type=unit_type,
            order_key=order_key,
            conditions=conditions,
        )
        submission = Submission(
            id=submission_id,
            order_number=order_number,
            seller_id=seller.id,
            requirement_id=requirement.id,
            campaign_id=campaign.id,
            status=status,
        )
        return SubmissionView(
            submission=submission,
            requirement=requirement,
            campaign=campaign,
            seller=seller if with_seller else None,
        )

    return _make


@pytest.fixture
def make_campaign():
    return build_campaign


@pytest.fixture
def make_seller():
    return build_seller
