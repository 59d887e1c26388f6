from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from typing import Optional
from sqlalchemy.orm import Session
from leave_ledger.database import get_db
from leave_ledger.models.user import User, UserRole
from leave_ledger.routers.auth_deps import require_admin, require_role
from leave_ledger.services.directory import DirectoryService

router = APIRouter(prefix="/directory", tags=["directory"])


class DirectoryUserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: UserRole
    is_primary: bool
    department: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RoleChange(BaseModel):
    role: UserRole


@router.put("/primary-admin/{user_id}", response_model=DirectoryUserResponse)
def assign_primary_admin(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Makes the given admin the sole primary admin."""
    return DirectoryService(db).assign_primary_admin(user_id)


@router.put("/users/{user_id}/role", response_model=DirectoryUserResponse)
def change_role(
    user_id: int,
    payload: RoleChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role([UserRole.HR, UserRole.ADMIN]))
):
    return DirectoryService(db).change_role(user_id, payload.role)
