"""Port para el historial de corridas de validación."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sales_robot.domain.entities import HistoryRecord


class HistoryRepository(Protocol):
    def save(self, record: HistoryRecord) -> None:
        """Guarda una corrida real. Las simulaciones nunca llegan acá."""
        ...

    def search(
        self,
        campaign_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        operator_id: str | None = None,
    ) -> list[HistoryRecord]:
        """Corridas filtradas, de la más reciente a la más antigua. `limit` <= 0 no limita."""
        ...
