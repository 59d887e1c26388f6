import logging
from datetime import date
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, sessionmaker
from leave_ledger.core.schemas import ApiResponse
from leave_ledger.database import get_db
from leave_ledger.models.leave_credit import CreditType
from leave_ledger.models.user import User, UserRole
from leave_ledger.routers.auth_deps import get_current_user, require_role, check_employee_access
from leave_ledger.schemas.credits import (
    LeaveCreditResponse, LeaveCreditLogResponse, MonthlySummaryRow,
    UsageTotals, LateDeductionRequest, AccrualRunRequest
)
from leave_ledger.services.accrual import run_daily_accrual
from leave_ledger.services.directory import DirectoryService
from leave_ledger.services.leave_ledger import LeaveLedgerService
from leave_ledger.services.notification import LeaveEvent, NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/credits", tags=["leave-credits"])


@router.post("/accrual/run")
def trigger_daily_accrual(
    payload: AccrualRunRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role([UserRole.HR, UserRole.ADMIN]))
):
    """Manual trigger for the daily accrual batch (normally run by the scheduler)."""
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())
    result = run_daily_accrual(session_factory, as_of=payload.as_of)
    logger.info(f"Daily accrual triggered manually by user {current_user.id}")
    return ApiResponse.ok(result.to_dict()).to_dict()


@router.get("/{employee_id}", response_model=LeaveCreditResponse)
def get_balances(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    check_employee_access(current_user, employee_id)
    DirectoryService(db).get_user(employee_id)
    return LeaveLedgerService(db).balances(employee_id)


@router.get("/{employee_id}/history", response_model=List[LeaveCreditLogResponse])
def get_history(
    employee_id: int,
    type: Optional[CreditType] = None,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    check_employee_access(current_user, employee_id)
    return LeaveLedgerService(db).history(employee_id, type, year)


@router.get("/{employee_id}/summary", response_model=List[MonthlySummaryRow])
def get_monthly_summary(
    employee_id: int,
    type: CreditType,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    check_employee_access(current_user, employee_id)
    return LeaveLedgerService(db).monthly_summary(employee_id, year or date.today().year, type)


@router.get("/{employee_id}/usage", response_model=Dict[str, UsageTotals])
def get_usage_totals(
    employee_id: int,
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    check_employee_access(current_user, employee_id)
    return LeaveLedgerService(db).used_totals(employee_id, year or date.today().year)


@router.post("/{employee_id}/late-deductions", response_model=LeaveCreditLogResponse)
def post_late_deduction(
    employee_id: int,
    payload: LateDeductionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role([UserRole.HR]))
):
    """Entry point for the attendance pipeline's tardiness charges."""
    DirectoryService(db).get_user(employee_id)
    entry = LeaveLedgerService(db).deduct_for_lateness(employee_id, payload.late_minutes, payload.on_date)
    NotificationService.emit(
        db,
        employee_id=employee_id,
        event_type=LeaveEvent.LATE_DEDUCTION,
        leave_type_name="VL (Late Deduction)",
        date_from=entry.date,
        date_to=entry.date,
        remarks=f"{payload.late_minutes} late minute(s) charged as {entry.points_deducted} day",
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    return entry
