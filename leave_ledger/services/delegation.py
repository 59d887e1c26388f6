"""
Delegation Authority

Resolves who currently holds the admin approval gate. The answer is a pure
function of the delegation rows, the primary-admin flag and the date, so it
is recomputed on every call and never cached: a delegation window opening
or closing at midnight has no triggering event.
"""

import logging
from datetime import date
from typing import List, Optional

from leave_ledger.core.exceptions import InvalidTransition, NotFound, Unauthorized, ValidationFailed
from leave_ledger.models.delegation import DelegatedApprover, DelegationStatus
from leave_ledger.models.user import User, UserRole
from leave_ledger.services.base import BaseService

logger = logging.getLogger(__name__)


class DelegationService(BaseService):

    def get_current_approver(self, today: Optional[date] = None) -> Optional[User]:
        """
        The delegate of the earliest-starting delegation in effect today,
        otherwise the primary admin. None when neither exists.
        """
        today = self.resolve_today(today)
        delegation = (
            self.db.query(DelegatedApprover)
            .filter(
                DelegatedApprover.status == DelegationStatus.ACTIVE.value,
                DelegatedApprover.start_date <= today,
                DelegatedApprover.end_date >= today,
            )
            .order_by(DelegatedApprover.start_date, DelegatedApprover.id)
            .first()
        )
        if delegation:
            return delegation.to_admin
        return self.get_primary_admin()

    def get_primary_admin(self) -> Optional[User]:
        return self.db.query(User).filter(User.role == UserRole.ADMIN, User.is_primary.is_(True)).first()

    def is_current_approver(self, user: User, today: Optional[date] = None) -> bool:
        current = self.get_current_approver(today)
        return current is not None and current.id == user.id

    def delegate(
        self,
        from_admin: User,
        to_admin_id: int,
        start_date: date,
        end_date: date,
        reason: Optional[str] = None,
        today: Optional[date] = None
    ) -> DelegatedApprover:
        today = self.resolve_today(today)
        if from_admin.role != UserRole.ADMIN or not self.is_current_approver(from_admin, today):
            raise Unauthorized("Only the current approver can delegate approval authority")

        to_admin = self.db.get(User, to_admin_id)
        if not to_admin:
            raise NotFound("User", to_admin_id)
        if to_admin.role != UserRole.ADMIN:
            raise ValidationFailed("Approval authority can only be delegated to an admin", {"to_admin_id": to_admin_id})
        if to_admin.id == from_admin.id:
            raise ValidationFailed("Cannot delegate approval authority to yourself")
        if start_date > end_date:
            raise ValidationFailed("Delegation start date must not be after its end date")

        overlapping = (
            self.db.query(DelegatedApprover)
            .filter(
                DelegatedApprover.status == DelegationStatus.ACTIVE.value,
                DelegatedApprover.start_date <= end_date,
                DelegatedApprover.end_date >= start_date,
            )
            .count()
        )
        if overlapping:
            # Allowed; the earliest-starting delegation wins while they overlap
            self.log_warning(
                f"Delegation {from_admin.id}->{to_admin.id} overlaps {overlapping} active delegation(s)",
                start_date=start_date.isoformat(),
                end_date=end_date.isoformat(),
            )

        delegation = DelegatedApprover(
            from_admin_id=from_admin.id,
            to_admin_id=to_admin.id,
            start_date=start_date,
            end_date=end_date,
            status=DelegationStatus.ACTIVE.value,
            reason=reason,
        )
        self.db.add(delegation)
        self.commit()
        self.db.refresh(delegation)
        logger.info(f"Admin {from_admin.id} delegated approval to {to_admin.id} for {start_date}..{end_date}")
        return delegation

    def cancel(self, delegation_id: int, actor: User, today: Optional[date] = None) -> DelegatedApprover:
        today = self.resolve_today(today)
        delegation = self.db.get(DelegatedApprover, delegation_id)
        if not delegation:
            raise NotFound("Delegation", delegation_id)
        if actor.id not in (delegation.from_admin_id, delegation.to_admin_id) and not actor.is_primary_admin:
            raise Unauthorized("Only the delegating admin, the delegate or a primary admin can cancel a delegation")
        if delegation.status == DelegationStatus.ENDED.value:
            raise InvalidTransition("Delegation has already ended", {"delegation_id": delegation_id})

        delegation.status = DelegationStatus.ENDED.value
        delegation.end_date = today
        self.commit()
        self.db.refresh(delegation)
        logger.info(f"Delegation {delegation_id} cancelled by user {actor.id}")
        return delegation

    def list_delegations(self, today: Optional[date] = None) -> List[dict]:
        today = self.resolve_today(today)
        delegations = self.db.query(DelegatedApprover).order_by(DelegatedApprover.start_date.desc()).all()
        return [{"delegation": d, "phase": d.phase(today)} for d in delegations]
