import logging
from sqlalchemy import case, or_

from leave_ledger.core.exceptions import NotFound, ValidationFailed
from leave_ledger.models.user import User, UserRole
from leave_ledger.services.base import BaseService

logger = logging.getLogger(__name__)


class DirectoryService(BaseService):
    """Maintains the directory flags the leave core depends on."""

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("User", user_id)
        return user

    def assign_primary_admin(self, user_id: int) -> User:
        """Make `user_id` the only primary admin, in a single UPDATE."""
        user = self.get_user(user_id)
        if user.role != UserRole.ADMIN:
            raise ValidationFailed("Only an admin can be the primary admin", {"user_id": user_id})

        self.db.query(User).filter(
            or_(User.role == UserRole.ADMIN, User.is_primary.is_(True))
        ).update(
            {User.is_primary: case((User.id == user_id, True), else_=False)},
            synchronize_session="fetch",
        )
        self.commit()
        self.db.refresh(user)
        logger.info(f"User {user_id} is now the primary admin")
        return user

    def change_role(self, user_id: int, role: UserRole) -> User:
        user = self.get_user(user_id)
        user.role = UserRole(role)
        # A primary admin that stops being an admin loses primary status
        if user.role != UserRole.ADMIN and user.is_primary:
            user.is_primary = False
        self.commit()
        self.db.refresh(user)
        return user
