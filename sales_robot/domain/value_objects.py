"""Value objects del dominio."""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

CNPJ_LENGTH = 14

_NON_DIGITS = re.compile(r"\D")


def normalize_tax_id(raw: object) -> Optional[str]:
    """
    Deja sólo los dígitos de un CNPJ.

    "12.345.678/0001-90" → "12345678000190"; vacío o sin dígitos → None.
    """
    if raw is None:
        return None
    digits = _NON_DIGITS.sub("", str(raw))
    return digits or None


def is_full_cnpj(normalized: Optional[str]) -> bool:
    return normalized is not None and len(normalized) == CNPJ_LENGTH


@dataclass(frozen=True)
class Payout:
    """Valor a pagar por un producto del catálogo. Siempre Decimal, nunca float."""

    product_code: str
    amount: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Valor inválido: {self.amount}") from e
        if self.amount < 0:
            raise ValueError(f"Valor no puede ser negativo: {self.amount}")


@dataclass(frozen=True)
class SpilloverPool:
    """Agrupa los envíos validados que compiten por las mismas cartelas."""

    seller_id: str
    campaign_id: str
    order_key: int

    def slot_for(self, prior_validated: int, quantity: int) -> int:
        """Cartela que recibe la próxima venta validada del pool."""
        if quantity < 1:
            raise ValueError(f"quantity debe ser >= 1: {quantity}")
        if prior_validated < 0:
            raise ValueError(f"prior_validated no puede ser negativo: {prior_validated}")
        return prior_validated // quantity + 1
