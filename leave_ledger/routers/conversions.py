from typing import List, Literal, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from leave_ledger.database import get_db
from leave_ledger.models.user import User, UserRole
from leave_ledger.routers.auth_deps import get_current_user, check_employee_access
from leave_ledger.schemas.conversion import (
    ConversionCreate, ConversionAction, ConversionResponse,
    ConversionEligibility, ConversionStats
)
from leave_ledger.services.credit_conversion import CreditConversionService

router = APIRouter(prefix="/conversions", tags=["credit-conversions"])


@router.post("", response_model=ConversionResponse)
def request_conversion(
    payload: ConversionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CreditConversionService(db).request(
        current_user.id,
        payload.leave_type,
        payload.credits_requested,
        payload.remarks,
    )


@router.get("", response_model=List[ConversionResponse])
def list_conversions(
    employee_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if current_user.role == UserRole.EMPLOYEE:
        employee_id = current_user.id
    return CreditConversionService(db).list_conversions(employee_id=employee_id, status=status)


@router.get("/eligibility", response_model=ConversionEligibility)
def check_eligibility(
    leave_type: Literal["SL", "VL"],
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CreditConversionService(db).eligibility(current_user.id, leave_type)


@router.get("/stats", response_model=ConversionStats)
def conversion_stats(
    year: Optional[int] = None,
    employee_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    employee_id = employee_id or current_user.id
    check_employee_access(current_user, employee_id)
    return CreditConversionService(db).stats(employee_id, year)


@router.get("/{conversion_id}", response_model=ConversionResponse)
def get_conversion(
    conversion_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    conversion = CreditConversionService(db).get(conversion_id)
    check_employee_access(current_user, conversion.employee_id)
    return conversion


@router.post("/{conversion_id}/approve", response_model=ConversionResponse)
def approve_conversion(
    conversion_id: int,
    payload: ConversionAction,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CreditConversionService(db).approve(conversion_id, current_user, payload.remarks)


@router.post("/{conversion_id}/reject", response_model=ConversionResponse)
def reject_conversion(
    conversion_id: int,
    payload: ConversionAction,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CreditConversionService(db).reject(conversion_id, current_user, payload.remarks)
