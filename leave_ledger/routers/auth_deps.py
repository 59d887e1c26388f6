"""
Acting-user dependencies.

Authentication is handled upstream; requests reach this service with the
acting user's directory id in the header named by
settings.actor_header (X-User-Id by default).
"""
import logging
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Callable, Optional
from leave_ledger.core.config import settings
from leave_ledger.database import get_db
from leave_ledger.models.user import User, UserRole

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_id: Optional[int] = Header(None, alias=settings.actor_header),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolves the acting user from the actor header.
    """
    if x_user_id is None:
        logger.warning(f"Request rejected: missing {settings.actor_header} header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing acting user",
        )

    user = db.get(User, x_user_id)
    if user is None:
        logger.warning(f"Request rejected: user {x_user_id} not found in directory")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.post("/accrual/run")
        def run(user: User = Depends(require_role([UserRole.HR, UserRole.ADMIN]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def check_employee_access(user: User, employee_id: int) -> None:
    """Employees may only read their own records; HR, dept heads and admins may read anyone's."""
    if user.role == UserRole.EMPLOYEE and user.id != employee_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: cannot view another employee's records"
        )


require_admin = require_role([UserRole.ADMIN])
