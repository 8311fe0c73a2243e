"""Muestra el historial de corridas o las estadísticas del dashboard.

Usage:
    python scripts/show_history.py [--campaign <id>] [--operator <id>] [--limit 20]
    python scripts/show_history.py --dashboard
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sales_robot.application.config import load_config
from sales_robot.application.use_cases.query_history import QueryHistoryUseCase
from sales_robot.infrastructure.logging_config import setup_logging
from sales_robot.infrastructure.sqlite_history import SqliteHistoryRepository


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Historial de validaciones")
    parser.add_argument("--config", default="configs/configuration.yaml")
    parser.add_argument("--campaign", default=None)
    parser.add_argument("--operator", default=None)
    parser.add_argument("--since", type=datetime.fromisoformat, default=None)
    parser.add_argument("--until", type=datetime.fromisoformat, default=None)
    parser.add_argument("--limit", type=int, default=None)
    parser.add_argument("--dashboard", action="store_true")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(log_level=config.logging.level)

    history = SqliteHistoryRepository(db_path=config.database.path)
    try:
        use_case = QueryHistoryUseCase(history=history, config=config.history)
        if args.dashboard:
            output = use_case.dashboard_stats().to_dict()
        else:
            records = use_case.list_runs(
                campaign_id=args.campaign,
                start=args.since,
                end=args.until,
                limit=args.limit,
                operator_id=args.operator,
            )
            output = [
                {
                    "id": r.id,
                    "runAt": r.run_at.isoformat(),
                    "campaign": r.campaign_selector,
                    "operator": r.operator_id,
                    "totalProcessed": r.total_processed,
                    "validated": r.validated,
                    "rejected": r.rejected,
                    "conflict": r.conflict,
                    "keptPending": r.kept_pending,
                    "revalidated": r.revalidated,
                }
                for r in records
            ]
        print(json.dumps(output, ensure_ascii=False, indent=2))
        return 0
    finally:
        history.close()


if __name__ == "__main__":
    sys.exit(main())
