import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError

from leave_ledger.core.config import settings
from leave_ledger.core.exceptions import InvalidTransition, Unauthorized, ValidationFailed
from leave_ledger.models.leave_credit import CreditType, LedgerReason
from leave_ledger.models.leave_recall import LeaveRecall
from leave_ledger.models.leave_request import ApprovalDecision, ApprovalRole, LeaveRequest, LeaveStatus
from leave_ledger.models.user import User
from leave_ledger.services.base import BaseService
from leave_ledger.services.delegation import DelegationService
from leave_ledger.services.leave_ledger import LeaveLedgerService
from leave_ledger.services.notification import LeaveEvent, NotificationService

logger = logging.getLogger(__name__)

RECALLABLE_LEAVE_TYPE = CreditType.VL.value


class RecallService(BaseService):
    """
    Single-step admin recall of approved vacation leave. Restores the paid
    portion of the leave to the VL balance and closes the request.
    """

    def __init__(self, db):
        super().__init__(db)
        self.ledger = LeaveLedgerService(db)
        self.delegation = DelegationService(db)

    def recall_block_reason(self, request: LeaveRequest, today: Optional[date] = None) -> Optional[str]:
        """Why `request` cannot be recalled, or None if it can."""
        today = self.resolve_today(today)
        if request.leave_type != RECALLABLE_LEAVE_TYPE:
            return "Only vacation leave can be recalled"
        if request.recall is not None or request.status == LeaveStatus.RECALLED.value:
            return "Leave request has already been recalled"
        if request.status != LeaveStatus.APPROVED.value:
            return "Only approved leave can be recalled"
        admin_approval = request.approval_for(ApprovalRole.ADMIN)
        if admin_approval is None or admin_approval.status != ApprovalDecision.APPROVED.value:
            return "Leave request has no admin approval"
        window = timedelta(days=settings.leave.recall_window_days)
        if request.date_to < today - window:
            return f"Leave ended more than {settings.leave.recall_window_days} days ago"
        return None

    def can_be_recalled(self, request: LeaveRequest, today: Optional[date] = None) -> bool:
        return self.recall_block_reason(request, today) is None

    def recall(self, request: LeaveRequest, reason: str, acting_admin: User, today: Optional[date] = None) -> LeaveRecall:
        today = self.resolve_today(today)
        if not reason or not reason.strip():
            raise ValidationFailed("A reason is required to recall leave")
        if not self.delegation.is_current_approver(acting_admin, today):
            raise Unauthorized("Only the current approver can recall approved leave")

        blocked = self.recall_block_reason(request, today)
        if blocked:
            raise InvalidTransition(blocked, {"request_id": request.id, "status": request.status})

        recall = LeaveRecall(
            leave_request_id=request.id,
            employee_id=request.employee_id,
            approved_leave_date=request.date_from,
            approved_by_admin=acting_admin.id,
            reason=reason,
        )
        try:
            with self.db.begin_nested():
                self.db.add(recall)
        except IntegrityError:
            raise InvalidTransition("Leave request has already been recalled", {"request_id": request.id})

        # Only the paid portion ever came out of the ledger
        paid_days = Decimal(request.days_with_pay or 0)
        if paid_days > 0:
            self.ledger.restore(
                request.employee_id,
                CreditType.VL,
                paid_days,
                remarks=f"Restored from recall of leave request ID #{request.id}",
                on_date=today,
                reason=LedgerReason.RECALL_RESTORE,
                reference_id=request.id,
            )

        request.status = LeaveStatus.RECALLED.value
        type_info = request.type_info
        NotificationService.emit(
            self.db,
            employee_id=request.employee_id,
            event_type=LeaveEvent.RECALLED,
            request_id=request.id,
            leave_type_name=type_info.name if type_info else request.leave_type,
            date_from=request.date_from,
            date_to=request.date_to,
            remarks=reason,
        )
        self.commit()
        self.db.refresh(recall)
        logger.info(f"Leave request {request.id} recalled by admin {acting_admin.id}; {paid_days} VL day(s) restored")
        return recall
