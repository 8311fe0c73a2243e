from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sales_robot.application.transformers import DateFormat
from sales_robot.domain.entities import LogicalField


class BatchRequest(BaseModel):
    """Pedido de conciliación: planilha ya leída + mapeo de columnas del admin."""

    model_config = ConfigDict(populate_by_name=True)

    campaign_selector: str = Field(..., min_length=1, alias="campaignSelector")
    simulate: bool = False
    column_mapping: dict[str, str] = Field(..., alias="columnMapping")
    rows: list[dict[str, Any]] = Field(default_factory=list)
    date_format: Optional[DateFormat] = Field(None, alias="dateFormat")

    @field_validator("column_mapping")
    @classmethod
    def _require_tax_id_column(cls, value: dict[str, str]) -> dict[str, str]:
        column = value.get(LogicalField.TAX_ID)
        if column is None or not str(column).strip():
            raise ValueError(f"column_mapping debe incluir {LogicalField.TAX_ID}")
        return value

    @field_validator("date_format", mode="before")
    @classmethod
    def _accept_format_name(cls, value: Any) -> Any:
        """Acepta tanto el nombre ("DMY") como el patrón ("DD/MM/YYYY")."""
        if isinstance(value, str) and value.upper() in DateFormat.__members__:
            return DateFormat[value.upper()]
        return value


@dataclass
class OutcomeDetail:
    submission_id: str
    order_number: str
    status: str
    previous_status: str
    technical_message: Optional[str] = None
    counterparty_message: Optional[str] = None
    failure_kind: Optional[str] = None
    seller_summary: Optional[str] = None
    optics_summary: Optional[str] = None
    campaign_summary: Optional[str] = None
    requirement_summary: Optional[str] = None
    resolved_product_code: Optional[str] = None
    payout_value: Optional[Decimal] = None
    sale_date: Optional[datetime] = None
    slot_number: Optional[int] = None
    persisted: bool = False
    trace: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "submissionId": self.submission_id,
            "orderNumber": self.order_number,
            "status": self.status,
            "previousStatus": self.previous_status,
            "technicalMessage": self.technical_message,
            "counterpartyMessage": self.counterparty_message,
            "failureKind": self.failure_kind,
            "sellerSummary": self.seller_summary,
            "opticsSummary": self.optics_summary,
            "campaignSummary": self.campaign_summary,
            "requirementSummary": self.requirement_summary,
            "resolvedProductCode": self.resolved_product_code,
            "payoutValue": str(self.payout_value) if self.payout_value is not None else None,
            "saleDate": self.sale_date.isoformat() if self.sale_date else None,
            "slotNumber": self.slot_number,
            "persisted": self.persisted,
            "trace": list(self.trace),
        }


@dataclass
class BatchReport:
    run_id: str
    campaign_selector: str
    simulate: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    message: str = ""
    interrupted: bool = False

    # Counters
    total_processed: int = 0
    validated: int = 0
    rejected: int = 0
    conflict: int = 0
    kept_pending: int = 0
    revalidated: int = 0
    persistence_errors: int = 0

    details: list[OutcomeDetail] = field(default_factory=list)

    def count(self, status: str) -> None:
        if status == "VALIDATED":
            self.validated += 1
        elif status == "REJECTED":
            self.rejected += 1
        elif status == "CONFLICT":
            self.conflict += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "runId": self.run_id,
            "message": self.message,
            "simulate": self.simulate,
            "interrupted": self.interrupted,
            "totalProcessed": self.total_processed,
            "validated": self.validated,
            "rejected": self.rejected,
            "conflict": self.conflict,
            "keptPending": self.kept_pending,
            "revalidated": self.revalidated,
            "persistenceErrors": self.persistence_errors,
            "details": [d.to_dict() for d in self.details],
        }
