from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

import structlog

_log_file: TextIO | None = None


def setup_logging(log_level: str = "INFO", log_dir: Path | None = None) -> Path | None:
    """
    Configura structlog. Con `log_dir` escribe JSON lines en un archivo por
    ejecución y retorna su ruta; sin él, salida de consola legible.
    """
    global _log_file

    level_map = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}
    level = level_map.get(log_level.upper(), 20)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    log_path: Path | None = None
    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / f"reconciliation_{datetime.now(UTC):%Y%m%d_%H%M%S}.jsonl"
        if _log_file is not None:
            _log_file.close()
        _log_file = open(log_path, "a", encoding="utf-8")
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
        logger_factory = structlog.WriteLoggerFactory(file=_log_file)
    else:
        processors.append(structlog.dev.ConsoleRenderer())
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )
    return log_path
