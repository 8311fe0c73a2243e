"""Port para el almacenamiento de envíos de venta."""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sales_robot.domain.entities import Submission, SubmissionStatus, SubmissionView
from sales_robot.domain.value_objects import SpilloverPool


@dataclass(frozen=True)
class ValidatedClaim:
    """Envío VALIDATED que ya reclama un pedido dentro de una campaña."""

    submission_id: str
    seller_id: str
    seller_name: str | None = None


class SubmissionTransaction(Protocol):
    """Contexto transaccional de un envío: todo se confirma o se revierte junto."""

    def count_validated_in_pool(self, pool: SpilloverPool) -> int:
        """Envíos VALIDATED del mismo vendedor, campaña y order_key."""
        ...

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
        """Pasa el envío a VALIDATED, limpia mensajes previos y retorna el envío actualizado."""
        ...

    def record_notification(self, seller_id: str, submission_id: str, message: str) -> None: ...


class SubmissionRepository(Protocol):
    def fetch_reconcilable(self, campaign_selector: str) -> list[SubmissionView]:
        """Envíos PENDING/REJECTED/CONFLICT de la campaña (o de todas las activas), ya hidratados."""
        ...

    def find_validated_by_other_seller(
        self, order_number: str, campaign_id: str, seller_id: str
    ) -> ValidatedClaim | None: ...

    def update_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        technical_message: str | None,
        counterparty_message: str | None,
    ) -> None:
        """Actualización simple (sin transacción) para REJECTED y CONFLICT."""
        ...

    def transaction(self) -> AbstractContextManager[SubmissionTransaction]:
        """Transacción serializada para el conteo de spillover + escritura."""
        ...

    def save_mapping(self, operator_id: str, mapping: dict[str, str]) -> None: ...

    def load_mapping(self, operator_id: str) -> dict[str, str] | None: ...
