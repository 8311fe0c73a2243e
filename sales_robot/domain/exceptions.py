"""Excepciones de negocio del robot de conciliación."""


class ReconciliationError(Exception):
    """Base para errores del proceso de conciliación."""


class BatchFetchError(ReconciliationError):
    """No se pudieron obtener los envíos a conciliar. Aborta la corrida completa."""

    def __init__(self, campaign_selector: str, reason: str) -> None:
        self.campaign_selector = campaign_selector
        self.reason = reason
        super().__init__(f"Error al buscar envíos para '{campaign_selector}': {reason}")


class DataIntegrityError(ReconciliationError):
    """Falta una relación hidratada al persistir. Revierte la transacción del envío."""

    def __init__(self, submission_id: str, missing: list[str]) -> None:
        self.submission_id = submission_id
        self.missing = missing
        super().__init__(
            f"Datos incompletos para el envío {submission_id}: faltan {', '.join(missing)}"
        )


class InvalidConfigurationError(ReconciliationError, ValueError):
    """La configuración no tiene la estructura esperada."""
