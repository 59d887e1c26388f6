from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from leave_ledger.database import get_db
from leave_ledger.models.user import User, UserRole
from leave_ledger.routers.auth_deps import get_current_user, check_employee_access
from leave_ledger.schemas.leave import (
    LeaveRequestCreate, LeaveRequestResponse, LeaveActionRequest,
    LeaveRecallRequest, LeaveRecallResponse, RecallEligibilityResponse
)
from leave_ledger.services.leave_workflow import LeaveWorkflowService
from leave_ledger.services.recall import RecallService

router = APIRouter(prefix="/leave", tags=["leave"])


@router.post("/requests", response_model=LeaveRequestResponse)
def submit_leave_request(
    payload: LeaveRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    employee_id = payload.employee_id or current_user.id
    # HR may file on behalf of an employee
    if employee_id != current_user.id and current_user.role != UserRole.HR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot file leave for another employee")
    return LeaveWorkflowService(db).submit(
        employee_id=employee_id,
        leave_type=payload.leave_type,
        date_from=payload.date_from,
        date_to=payload.date_to,
        selected_dates=payload.selected_dates,
        reason=payload.reason,
    )


@router.get("/requests", response_model=List[LeaveRequestResponse])
def list_leave_requests(
    employee_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if current_user.role == UserRole.EMPLOYEE:
        employee_id = current_user.id
    return LeaveWorkflowService(db).list_requests(employee_id=employee_id, status=status)


@router.get("/requests/pending", response_model=List[LeaveRequestResponse])
def list_pending_for_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Requests waiting at the gate the caller can act on."""
    return LeaveWorkflowService(db).pending_for(current_user)


@router.get("/requests/{request_id}", response_model=LeaveRequestResponse)
def get_leave_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    request = LeaveWorkflowService(db).get(request_id)
    check_employee_access(current_user, request.employee_id)
    return request


@router.post("/requests/{request_id}/approve", response_model=LeaveRequestResponse)
def approve_leave_request(
    request_id: int,
    payload: LeaveActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return LeaveWorkflowService(db).approve(request_id, current_user, payload.remarks)


@router.post("/requests/{request_id}/reject", response_model=LeaveRequestResponse)
def reject_leave_request(
    request_id: int,
    payload: LeaveActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return LeaveWorkflowService(db).reject(request_id, current_user, payload.remarks)


@router.get("/requests/{request_id}/recall-eligibility", response_model=RecallEligibilityResponse)
def recall_eligibility(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    request = LeaveWorkflowService(db).get(request_id)
    check_employee_access(current_user, request.employee_id)
    blocked = RecallService(db).recall_block_reason(request)
    return RecallEligibilityResponse(request_id=request.id, can_be_recalled=blocked is None, reason=blocked)


@router.post("/requests/{request_id}/recall", response_model=LeaveRecallResponse)
def recall_leave_request(
    request_id: int,
    payload: LeaveRecallRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    request = LeaveWorkflowService(db).get(request_id)
    return RecallService(db).recall(request, payload.reason, current_user)
