"""Recompute payroll summaries; meant to be run from cron.

    python scripts/recompute_payroll.py 2025 3            # every active employee
    python scripts/recompute_payroll.py 2025 3 -e 42      # one employee
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.payroll_engine.payroll_engine.container import build_container
from src.payroll_engine.payroll_engine.core.exceptions import DomainError
from src.payroll_engine.payroll_engine.main import configure_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute employee-month payroll summaries.")
    parser.add_argument("year", type=int)
    parser.add_argument("month", type=int)
    parser.add_argument("-e", "--employee-id", type=int, action="append", dest="employee_ids")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    args = parse_args(argv)

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        payroll_max_workers=int(getattr(settings, "PAYROLL_MAX_WORKERS", 4)),
    )
    service = container.payroll_service

    try:
        if args.employee_ids:
            summaries = [service.recompute(employee_id=i, year=args.year, month=args.month) for i in args.employee_ids]
        else:
            summaries = service.recompute_month(year=args.year, month=args.month)
    except DomainError as e:
        logging.getLogger(__name__).error("recompute refused: %s", e)
        return 2

    for s in summaries:
        print(f"{s.employee_id}\t{s.year:04d}-{s.month:02d}\tgross={s.gross_salary}\tdeductions={s.total_deductions}\tnet={s.net_pay}")
    print(f"OK: {len(summaries)} summary(ies) recomputed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
