"""
Cron entry point for the daily leave credit run.

    python -m scripts.run_daily_accrual            # credit today
    python -m scripts.run_daily_accrual 2024-03-01 # backfill a specific day
"""
import json
import logging
import sys
from datetime import date

from leave_ledger.core.logging import setup_logging
from leave_ledger.database import init_db
from leave_ledger.services.accrual import run_daily_accrual

setup_logging()
logger = logging.getLogger("leave_ledger.scripts.accrual")


def main(argv):
    as_of = date.fromisoformat(argv[1]) if len(argv) > 1 else None
    init_db()
    result = run_daily_accrual(as_of=as_of)
    print(json.dumps(result.to_dict(), indent=2))
    if result.failed:
        logger.error(f"{result.failed} employee(s) were not credited; rerun is safe for the same day")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
