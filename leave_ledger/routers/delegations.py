from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from leave_ledger.database import get_db
from leave_ledger.models.user import User
from leave_ledger.routers.auth_deps import get_current_user, require_admin
from leave_ledger.schemas.delegation import (
    DelegationCreate, DelegationResponse, DelegationListItem, ApproverResponse
)
from leave_ledger.services.delegation import DelegationService

router = APIRouter(prefix="/delegations", tags=["delegations"])


@router.get("/current-approver", response_model=ApproverResponse)
def get_current_approver(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Whoever currently holds final approval authority."""
    service = DelegationService(db)
    approver = service.get_current_approver()
    if approver is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No primary admin is configured")
    return ApproverResponse(
        id=approver.id,
        email=approver.email,
        full_name=approver.full_name,
        is_primary=approver.is_primary,
        delegated=not approver.is_primary,
    )


@router.get("", response_model=List[DelegationListItem])
def list_delegations(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return [
        DelegationListItem(
            **DelegationResponse.model_validate(item["delegation"]).model_dump(),
            phase=item["phase"],
        )
        for item in DelegationService(db).list_delegations()
    ]


@router.post("", response_model=DelegationResponse)
def create_delegation(
    payload: DelegationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return DelegationService(db).delegate(
        current_user,
        payload.to_admin_id,
        payload.start_date,
        payload.end_date,
        payload.reason,
    )


@router.post("/{delegation_id}/cancel", response_model=DelegationResponse)
def cancel_delegation(
    delegation_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return DelegationService(db).cancel(delegation_id, current_user)
