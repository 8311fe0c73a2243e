"""Mapeo de columnas guardado por operador, para reutilizar en la próxima planilha."""

from dataclasses import dataclass
from typing import Optional

import structlog

from sales_robot.application.ports.submission_repository import SubmissionRepository

logger = structlog.get_logger()


@dataclass(frozen=True)
class SavedMappingsUseCase:
    repository: SubmissionRepository

    def save(self, operator_id: str, mapping: dict[str, str]) -> dict[str, str]:
        if not operator_id:
            raise ValueError("operator_id es requerido")
        cleaned = {str(k).strip(): str(v).strip() for k, v in mapping.items() if v and str(v).strip()}
        self.repository.save_mapping(operator_id, cleaned)
        logger.info("mapping_saved", operator_id=operator_id, fields=len(cleaned))
        return cleaned

    def load(self, operator_id: str) -> Optional[dict[str, str]]:
        mapping = self.repository.load_mapping(operator_id)
        logger.info("mapping_loaded", operator_id=operator_id, found=mapping is not None)
        return mapping
