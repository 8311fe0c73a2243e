"""Resultados tipados de cada etapa de la cascada de validación."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from sales_robot.domain.entities import SubmissionStatus

T = TypeVar("T")


class FailureKind(Enum):
    """Motivos terminales que puede producir una etapa."""

    # Resolución de columnas / localización
    ORDER_TYPE_UNRECOGNIZED = "ORDER_TYPE_UNRECOGNIZED"
    ORDER_COLUMN_UNMAPPED = "ORDER_COLUMN_UNMAPPED"
    PAIR_ROWS_INCONSISTENT = "PAIR_ROWS_INCONSISTENT"

    # CNPJ
    ID_COLUMN_UNMAPPED = "ID_COLUMN_UNMAPPED"
    ID_NOT_REGISTERED = "ID_NOT_REGISTERED"
    ID_NOT_FOUND_IN_ROW = "ID_NOT_FOUND_IN_ROW"
    ID_INVALID_FORMAT = "ID_INVALID_FORMAT"
    ID_MISMATCH = "ID_MISMATCH"

    # Fecha de venta
    DATE_COLUMN_UNMAPPED = "DATE_COLUMN_UNMAPPED"
    DATE_EMPTY = "DATE_EMPTY"
    DATE_UNPARSEABLE = "DATE_UNPARSEABLE"
    DATE_OUT_OF_RANGE = "DATE_OUT_OF_RANGE"

    # Reglas
    PAIR_TWO_ROWS_REQUIRED = "PAIR_TWO_ROWS_REQUIRED"
    UNIT_ONE_ROW_REQUIRED = "UNIT_ONE_ROW_REQUIRED"
    RULE_FIELD_UNMAPPED = "RULE_FIELD_UNMAPPED"
    RULE_OPERATOR_UNKNOWN = "RULE_OPERATOR_UNKNOWN"
    RULE_NOT_SATISFIED = "RULE_NOT_SATISFIED"
    RULE_PRODUCT_CODES_MISSING = "RULE_PRODUCT_CODES_MISSING"
    RULE_PRODUCT_NOT_IN_CATALOG = "RULE_PRODUCT_NOT_IN_CATALOG"

    # Resolución del valor a pagar
    PRODUCT_COLUMN_UNMAPPED = "PRODUCT_COLUMN_UNMAPPED"
    PRODUCT_CODE_EMPTY = "PRODUCT_CODE_EMPTY"
    PRODUCT_NOT_IN_CATALOG = "PRODUCT_NOT_IN_CATALOG"

    # Conflicto entre vendedores
    SELLER_CONFLICT = "SELLER_CONFLICT"

    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class StagePassed(Generic[T]):
    """La etapa aprobó; `value` se arrastra a la siguiente."""

    value: T


@dataclass(frozen=True)
class StageFailed:
    """La etapa decidió un resultado terminal."""

    kind: FailureKind
    status: SubmissionStatus = SubmissionStatus.REJECTED
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class KeptPending:
    """El pedido no está en esta planilha: el envío sigue pendiente."""

    reason: str


StageResult = Union[StagePassed[T], StageFailed]
