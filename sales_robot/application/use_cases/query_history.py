"""Consulta del historial de corridas y estadísticas del dashboard."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import structlog

from sales_robot.application.config import HistoryConfig
from sales_robot.application.ports.history_repository import HistoryRepository
from sales_robot.domain.entities import HistoryRecord, SubmissionStatus

logger = structlog.get_logger()

TOP_REJECTION_REASONS = 10


@dataclass
class DashboardStats:
    totals: dict[str, int]
    validation_rate: Decimal
    top_rejection_reasons: list[dict[str, Any]]
    per_day: dict[str, dict[str, int]]
    run_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totals": dict(self.totals),
            "validationRate": float(self.validation_rate),
            "topRejectionReasons": list(self.top_rejection_reasons),
            "perDay": {day: dict(counts) for day, counts in self.per_day.items()},
            "runCount": self.run_count,
        }


@dataclass(frozen=True)
class QueryHistoryUseCase:
    history: HistoryRepository
    config: HistoryConfig = field(default_factory=HistoryConfig)

    def list_runs(
        self,
        campaign_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
        operator_id: Optional[str] = None,
    ) -> list[HistoryRecord]:
        """Corridas reales, más recientes primero."""
        return self.history.search(
            campaign_id=campaign_id,
            start=start,
            end=end,
            limit=limit or self.config.default_limit,
            operator_id=operator_id,
        )

    def dashboard_stats(self, now: Optional[datetime] = None) -> DashboardStats:
        """
        Agregados de los últimos `dashboard_days` días.

        La tasa de validación es validados / procesados en porcentaje con dos
        decimales. Los motivos de rechazo salen del mensaje técnico de cada detalle.
        """
        now = now or datetime.now(UTC)
        start = now - timedelta(days=self.config.dashboard_days)
        records = self.history.search(start=start, end=now, limit=0)

        totals = {
            "total_processed": 0,
            "validated": 0,
            "rejected": 0,
            "conflict": 0,
            "kept_pending": 0,
            "revalidated": 0,
        }
        reasons: Counter[str] = Counter()
        per_day: dict[str, dict[str, int]] = {}

        for record in records:
            totals["total_processed"] += record.total_processed
            totals["validated"] += record.validated
            totals["rejected"] += record.rejected
            totals["conflict"] += record.conflict
            totals["kept_pending"] += record.kept_pending
            totals["revalidated"] += record.revalidated

            day = record.run_at.date().isoformat()
            bucket = per_day.setdefault(day, {"validated": 0, "rejected": 0, "total": 0})
            bucket["validated"] += record.validated
            bucket["rejected"] += record.rejected
            bucket["total"] += record.total_processed

            for detail in record.details:
                message = detail.get("technicalMessage")
                if detail.get("status") == SubmissionStatus.REJECTED.value and message:
                    reasons[message] += 1

        if totals["total_processed"]:
            rate = Decimal(totals["validated"] * 100) / Decimal(totals["total_processed"])
        else:
            rate = Decimal("0")

        stats = DashboardStats(
            totals=totals,
            validation_rate=rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            top_rejection_reasons=[
                {"message": message, "count": count}
                for message, count in reasons.most_common(TOP_REJECTION_REASONS)
            ],
            per_day=dict(sorted(per_day.items())),
            run_count=len(records),
        )
        logger.info("dashboard_stats_computed", runs=stats.run_count, rate=str(stats.validation_rate))
        return stats
