"""Entry point para conciliar una planilha contra los envíos pendientes.

Usage:
    python scripts/run_validation.py --xlsx planilha.xlsx --campaign <id|ALL_ACTIVE> \\
        [--mapping mapeo.json] [--simulate] [--date-format DMY|MDY|ISO|DMY_DOT|DMY_DASH|auto] \\
        [--operator admin-1] [--save-mapping] [--report resultado.xlsx] [--config configs/configuration.yaml]
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
import threading
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog
from pydantic import ValidationError

from sales_robot.application.config import load_config
from sales_robot.application.dtos import BatchRequest
from sales_robot.application.transformers import DateFormat, detect_date_format
from sales_robot.application.use_cases.reconcile_sales import ReconcileSalesUseCase
from sales_robot.application.use_cases.saved_mappings import SavedMappingsUseCase
from sales_robot.domain.entities import LogicalField
from sales_robot.domain.exceptions import BatchFetchError
from sales_robot.infrastructure.excel_handler import OpenpyxlSpreadsheetHandler
from sales_robot.infrastructure.logging_config import setup_logging
from sales_robot.infrastructure.notification_reward_engine import NotificationRewardEngine
from sales_robot.infrastructure.sqlite_history import SqliteHistoryRepository
from sales_robot.infrastructure.sqlite_store import SqliteSubmissionRepository


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Concilia envíos de venta contra una planilha")
    parser.add_argument("--config", default="configs/configuration.yaml", help="Archivo YAML")
    parser.add_argument("--xlsx", required=True, type=Path, help="Planilha del admin")
    parser.add_argument("--sheet", default=None, help="Hoja a leer (default: la primera)")
    parser.add_argument("--campaign", required=True, help="ID de campaña o ALL_ACTIVE")
    parser.add_argument("--mapping", type=Path, default=None, help="JSON campo lógico → columna")
    parser.add_argument("--simulate", action="store_true", help="No persiste ningún cambio")
    parser.add_argument("--date-format", default=None, help="Formato de DATA_VENDA o 'auto'")
    parser.add_argument("--operator", default=None, help="ID del admin que ejecuta")
    parser.add_argument("--save-mapping", action="store_true", help="Guarda el mapeo del operador")
    parser.add_argument("--report", type=Path, default=None, help="Exporta el detalle a XLSX")
    return parser.parse_args(argv)


def _resolve_date_format(
    value: str | None, rows: list[dict], mapping: dict[str, str]
) -> DateFormat | None:
    if value is None:
        return None
    if value.lower() != "auto":
        return DateFormat[value.upper()]
    column = mapping.get(LogicalField.SALE_DATE)
    for row in rows:
        if column and row.get(column) is not None:
            return detect_date_format(row[column])
    return None


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)

    setup_logging(
        log_level=config.logging.level,
        log_dir=Path(config.logging.log_dir) if config.logging.log_to_file else None,
    )
    logger = structlog.get_logger()
    logger.info("validation_starting", config_path=args.config, xlsx=str(args.xlsx))

    store = SqliteSubmissionRepository(db_path=config.database.path)
    history = SqliteHistoryRepository(db_path=config.database.path)
    mappings = SavedMappingsUseCase(repository=store)

    try:
        if args.mapping is not None:
            with open(args.mapping, encoding="utf-8") as f:
                column_mapping = json.load(f)
        elif args.operator:
            column_mapping = mappings.load(args.operator) or {}
        else:
            column_mapping = {}

        rows = OpenpyxlSpreadsheetHandler().read_rows(args.xlsx, args.sheet)

        try:
            request = BatchRequest(
                campaign_selector=args.campaign,
                simulate=args.simulate,
                column_mapping=column_mapping,
                rows=rows,
                date_format=_resolve_date_format(args.date_format, rows, column_mapping),
            )
        except ValidationError as e:
            logger.error("invalid_request", error=str(e))
            return 2

        if args.save_mapping and args.operator:
            mappings.save(args.operator, column_mapping)

        cancel_event = threading.Event()
        signal.signal(signal.SIGINT, lambda *_: cancel_event.set())

        use_case = ReconcileSalesUseCase(
            repository=store,
            history=history,
            reward_engine=NotificationRewardEngine(),
            config=config.validation,
        )
        try:
            report = use_case.execute(request, operator_id=args.operator, cancel_event=cancel_event)
        except BatchFetchError as e:
            logger.error("validation_aborted", error=str(e))
            return 1

        if args.report is not None:
            OpenpyxlSpreadsheetHandler().write_report(report.details, args.report)

        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
        return 0 if not report.persistence_errors and not report.interrupted else 1
    finally:
        store.close()
        history.close()


if __name__ == "__main__":
    sys.exit(main())
