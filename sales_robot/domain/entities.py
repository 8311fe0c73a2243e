"""Entidades de dominio del robot de conciliación de ventas."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class SubmissionStatus(Enum):
    """Estado de un envío de venta."""

    PENDING = "PENDING"  # Aguarda conciliación (o no apareció en la planilha)
    REJECTED = "REJECTED"  # Falló alguna validación de datos
    CONFLICT = "CONFLICT"  # Requiere revisión manual del admin
    VALIDATED = "VALIDATED"  # Terminal, nunca se reprocesa


RECONCILABLE_STATUSES: tuple[SubmissionStatus, ...] = (
    SubmissionStatus.PENDING,
    SubmissionStatus.REJECTED,
    SubmissionStatus.CONFLICT,
)


class UnitType(Enum):
    """Tipo de unidad del requisito: PAR exige 2 filas, UNIDAD exige 1."""

    PAIR = "PAIR"
    UNIT = "UNIT"

    @property
    def expected_rows(self) -> int:
        return 2 if self is UnitType.PAIR else 1


class LogicalField:
    """Campos lógicos que el admin asocia a columnas de la planilha."""

    TAX_ID = "CNPJ_OTICA"
    SALE_DATE = "DATA_VENDA"
    PRODUCT_CODE = "CODIGO_REFERENCIA"
    ORDER_NUMBER_OS = "NUMERO_PEDIDO_OS"
    ORDER_NUMBER_OPTICLICK = "NUMERO_PEDIDO_OPTICLICK"
    ORDER_NUMBER_ONLINE = "NUMERO_PEDIDO_ONLINE"
    ORDER_NUMBER_ENVELOPE = "NUMERO_PEDIDO_ENVELOPE"

    # Campo de condición que dispara la validación contra el catálogo
    PRODUCT_CODE_CONDITION = "CODIGO_DA_REFERENCIA"


DEFAULT_ORDER_TYPE = "OS_OP_EPS"

# Selector de campaña que abarca todas las campañas activas
ALL_ACTIVE_CAMPAIGNS = "ALL_ACTIVE"

DEFAULT_ORDER_TYPE_FIELDS: dict[str, str] = {
    "OS_OP_EPS": LogicalField.ORDER_NUMBER_OS,
    "OPTICLICK": LogicalField.ORDER_NUMBER_OPTICLICK,
    "EPSWEB": LogicalField.ORDER_NUMBER_ONLINE,
    "ENVELOPE_OTICA": LogicalField.ORDER_NUMBER_ENVELOPE,
}


@dataclass(frozen=True, kw_only=True)
class OpticsEntity:
    """Ótica (filial) con su CNPJ y, opcionalmente, su matriz."""

    id: str
    name: str
    tax_id: Optional[str] = None
    parent: Optional["OpticsEntity"] = None


@dataclass(frozen=True, kw_only=True)
class Seller:
    id: str
    name: str
    email: str = ""
    optics: Optional[OpticsEntity] = None
    manager_id: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class ProductCatalogEntry:
    code: str
    payout_value: Decimal


@dataclass(frozen=True, kw_only=True)
class Campaign:
    """Campaña con su ventana de vigencia y catálogo de productos."""

    id: str
    title: str
    start_date: date
    end_date: date
    order_type: str = DEFAULT_ORDER_TYPE
    active: bool = True
    catalog: tuple[ProductCatalogEntry, ...] = ()

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError(
                f"end_date ({self.end_date}) no puede ser anterior a start_date ({self.start_date})"
            )

    def find_product(self, code: str) -> Optional[ProductCatalogEntry]:
        """Busca un código exacto en el catálogo de la campaña."""
        for entry in self.catalog:
            if entry.code == code:
                return entry
        return None


@dataclass(frozen=True, kw_only=True)
class Condition:
    """Tripla campo/operador/valor esperado definida en el Rule Builder."""

    id: str
    field: str
    operator: str
    expected_value: str


@dataclass(frozen=True, kw_only=True)
class Requirement:
    """Requisito de una cartela. `order_key` agrupa requisitos repetidos entre cartelas."""

    id: str
    campaign_id: str
    description: str
    quantity: int
    unit_type: UnitType
    order_key: int
    conditions: tuple[Condition, ...] = ()

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(f"quantity debe ser >= 1: {self.quantity}")


@dataclass(frozen=True, kw_only=True)
class Submission:
    """Envío de venta reportado por un vendedor."""

    id: str
    order_number: str
    seller_id: str
    requirement_id: str
    campaign_id: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    technical_message: Optional[str] = None
    counterparty_message: Optional[str] = None
    slot_number: Optional[int] = None
    product_code: Optional[str] = None
    payout_value: Optional[Decimal] = None
    sale_date: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    validated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.order_number or not self.order_number.strip():
            raise ValueError("order_number no puede estar vacío")

    @property
    def is_reconcilable(self) -> bool:
        return self.status in RECONCILABLE_STATUSES


@dataclass(frozen=True, kw_only=True)
class SubmissionView:
    """
    Proyección de lectura de un envío, armada una sola vez antes del lote.

    Los validadores sólo ven esta proyección, nunca el almacenamiento.
    """

    submission: Submission
    requirement: Requirement
    campaign: Campaign
    seller: Optional[Seller] = None

    @property
    def seller_tax_id(self) -> Optional[str]:
        if self.seller is None or self.seller.optics is None:
            return None
        return self.seller.optics.tax_id

    @property
    def parent_optics(self) -> Optional[OpticsEntity]:
        if self.seller is None or self.seller.optics is None:
            return None
        return self.seller.optics.parent


@dataclass(frozen=True, kw_only=True)
class ValidationOutcome:
    """Resultado efímero de la cascada para un envío en una corrida."""

    status: SubmissionStatus
    technical_message: Optional[str] = None
    counterparty_message: Optional[str] = None
    failure_kind: Optional[str] = None
    product_code: Optional[str] = None
    payout_value: Optional[Decimal] = None
    sale_date: Optional[datetime] = None

    @property
    def is_validated(self) -> bool:
        return self.status is SubmissionStatus.VALIDATED


@dataclass(frozen=True, kw_only=True)
class HistoryRecord:
    """Registro inmutable de una corrida real (nunca de simulaciones)."""

    id: str
    run_at: datetime
    campaign_selector: str
    operator_id: Optional[str]
    total_processed: int
    validated: int
    rejected: int
    conflict: int
    kept_pending: int
    revalidated: int
    details: list[dict[str, Any]] = field(default_factory=list)
