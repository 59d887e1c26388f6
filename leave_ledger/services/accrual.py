"""
Daily accrual batch.

Runs once per day from the scheduler. Each employee is credited in its own
session and transaction so one failure (an exception, a lock timeout) never
aborts the run for everyone else.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from leave_ledger.database import SessionLocal
from leave_ledger.models.user import EmploymentStatus, User
from leave_ledger.services.leave_ledger import LeaveLedgerService

logger = logging.getLogger(__name__)


@dataclass
class AccrualRunResult:
    as_of: date
    processed: int = 0
    credited: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[Dict[str, object]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "as_of": self.as_of.isoformat(),
            "processed": self.processed,
            "credited": self.credited,
            "skipped": self.skipped,
            "failed": self.failed,
            "failures": self.failures,
        }


def active_employee_ids(db: Session) -> List[int]:
    rows = (
        db.query(User.id)
        .filter(User.employment_status == EmploymentStatus.ACTIVE)
        .order_by(User.id)
        .all()
    )
    return [row[0] for row in rows]


def run_daily_accrual(
    session_factory: Callable[[], Session] = SessionLocal,
    as_of: Optional[date] = None,
    rate: Optional[Decimal] = None
) -> AccrualRunResult:
    as_of = as_of or date.today()
    result = AccrualRunResult(as_of=as_of)

    with session_factory() as db:
        employee_ids = active_employee_ids(db)
    logger.info(f"Daily leave credit run for {as_of}: {len(employee_ids)} active employee(s)")

    for employee_id in employee_ids:
        result.processed += 1
        db = session_factory()
        try:
            credited = LeaveLedgerService(db).accrue_daily(employee_id, as_of=as_of, rate=rate)
            db.commit()
            if credited:
                result.credited += 1
            else:
                result.skipped += 1
        except Exception as e:
            db.rollback()
            result.failed += 1
            result.failures.append({"employee_id": employee_id, "error": str(e)})
            logger.error(f"Daily accrual failed for employee {employee_id}: {e}", exc_info=True)
        finally:
            db.close()

    logger.info(
        "Daily leave credit run completed",
        extra={"credited": result.credited, "skipped": result.skipped, "failed": result.failed, "total": result.processed}
    )
    return result
