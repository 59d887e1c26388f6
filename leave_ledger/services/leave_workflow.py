"""
Leave Approval Workflow

State machine driving a leave request through its role gates:

    pending (HR) -> pending_dept_head -> pending_admin -> approved
    any gate may reject -> rejected

Which gates apply is decided by one declarative table keyed by the
requester's role (REQUIRED_APPROVALS); every check below consumes it.

On full approval the working days of the request are deducted from the
ledger. Insufficient credit never blocks approval: the request is approved
as leave without pay instead.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from leave_ledger.core.exceptions import (
    InsufficientBalance, InvalidTransition, NotFound, Unauthorized, ValidationFailed
)
from leave_ledger.models.leave_credit import LedgerReason
from leave_ledger.models.leave_request import (
    ApprovalDecision, ApprovalRole, LeaveApproval, LeaveRequest, LeaveStatus
)
from leave_ledger.models.leave_type import LeaveType
from leave_ledger.models.user import User, UserRole
from leave_ledger.services.base import BaseService
from leave_ledger.services.delegation import DelegationService
from leave_ledger.services.leave_ledger import LeaveLedgerService
from leave_ledger.services.notification import LeaveEvent, NotificationService
from leave_ledger.utils.dates import working_days

logger = logging.getLogger(__name__)

# Requester role -> approval gates, in order
REQUIRED_APPROVALS: Dict[UserRole, Tuple[ApprovalRole, ...]] = {
    UserRole.EMPLOYEE: (ApprovalRole.HR, ApprovalRole.DEPT_HEAD, ApprovalRole.ADMIN),
    UserRole.HR: (ApprovalRole.HR, ApprovalRole.DEPT_HEAD, ApprovalRole.ADMIN),
    UserRole.DEPT_HEAD: (ApprovalRole.HR, ApprovalRole.ADMIN),
    UserRole.ADMIN: (ApprovalRole.HR, ApprovalRole.ADMIN),
}

# Status a request sits in while waiting at each gate
AWAITING_STATUS = {
    ApprovalRole.HR: LeaveStatus.PENDING,
    ApprovalRole.DEPT_HEAD: LeaveStatus.PENDING_DEPT_HEAD,
    ApprovalRole.ADMIN: LeaveStatus.PENDING_ADMIN,
}

# Directory role that may act at the HR and dept-head gates; the admin gate
# is held by whoever DelegationService resolves as current approver.
GATE_ROLE = {
    ApprovalRole.HR: UserRole.HR,
    ApprovalRole.DEPT_HEAD: UserRole.DEPT_HEAD,
}


def required_roles(requester_role) -> Tuple[ApprovalRole, ...]:
    return REQUIRED_APPROVALS[UserRole(requester_role)]


def is_fully_approved(request: LeaveRequest) -> bool:
    approved = {
        a.role for a in request.approvals if a.status == ApprovalDecision.APPROVED.value
    }
    return all(role.value in approved for role in required_roles(request.requester_role_snapshot))


def next_gate(request: LeaveRequest) -> Optional[ApprovalRole]:
    """First required gate without an approval, or None once all have approved."""
    acted = {a.role for a in request.approvals}
    for role in required_roles(request.requester_role_snapshot):
        if role.value not in acted:
            return role
    return None


class LeaveWorkflowService(BaseService):

    def __init__(self, db):
        super().__init__(db)
        self.ledger = LeaveLedgerService(db)
        self.delegation = DelegationService(db)

    # ------------------------------------------------------------------
    # Submission and lookup
    # ------------------------------------------------------------------

    def submit(
        self,
        employee_id: int,
        leave_type: str,
        date_from: date,
        date_to: date,
        selected_dates: Optional[Iterable[date]] = None,
        reason: Optional[str] = None
    ) -> LeaveRequest:
        employee = self.db.get(User, employee_id)
        if not employee:
            raise NotFound("User", employee_id)
        type_info = self._leave_type(leave_type)
        if date_from > date_to:
            raise ValidationFailed("date_from must not be after date_to")

        dates = None
        if selected_dates:
            dates = sorted({d.isoformat() if isinstance(d, date) else str(d) for d in selected_dates})
            outside = [d for d in dates if not (date_from <= date.fromisoformat(d) <= date_to)]
            if outside:
                raise ValidationFailed("Selected dates must fall within the requested range", {"dates": outside})

        request = LeaveRequest(
            employee_id=employee.id,
            leave_type=type_info.code,
            date_from=date_from,
            date_to=date_to,
            selected_dates=dates,
            reason=reason,
            status=LeaveStatus.PENDING.value,
            days_with_pay=Decimal("0"),
            days_without_pay=Decimal("0"),
            requester_role_snapshot=employee.role.value,
        )
        self.db.add(request)
        self.commit()
        self.db.refresh(request)
        logger.info(f"Leave request {request.id} submitted by employee {employee.id} ({type_info.code} {date_from}..{date_to})")
        return request

    def get(self, request_id: int) -> LeaveRequest:
        request = self.db.get(LeaveRequest, request_id)
        if not request:
            raise NotFound("Leave request", request_id)
        return request

    def list_requests(self, employee_id: Optional[int] = None, status: Optional[str] = None) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest)
        if employee_id:
            query = query.filter(LeaveRequest.employee_id == employee_id)
        if status:
            query = query.filter(LeaveRequest.status == status)
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def pending_for(self, actor: User, today: Optional[date] = None) -> List[LeaveRequest]:
        """Requests currently waiting at a gate `actor` may act on."""
        gate = self._gate_for(actor, today, raise_if_none=False)
        if gate is None:
            return []
        return (
            self.db.query(LeaveRequest)
            .filter(LeaveRequest.status == AWAITING_STATUS[gate].value)
            .order_by(LeaveRequest.id)
            .all()
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def approve(self, request_id: int, actor: User, remarks: Optional[str] = None, today: Optional[date] = None) -> LeaveRequest:
        return self._act(request_id, actor, ApprovalDecision.APPROVED, remarks, today)

    def reject(self, request_id: int, actor: User, remarks: str, today: Optional[date] = None) -> LeaveRequest:
        if not remarks or not remarks.strip():
            raise ValidationFailed("Remarks are required when rejecting a leave request")
        return self._act(request_id, actor, ApprovalDecision.REJECTED, remarks, today)

    def _act(
        self,
        request_id: int,
        actor: User,
        decision: ApprovalDecision,
        remarks: Optional[str],
        today: Optional[date]
    ) -> LeaveRequest:
        request = self.get(request_id)
        if request.is_terminal:
            raise InvalidTransition(
                f"Leave request {request.id} is already {request.status}",
                {"request_id": request.id, "status": request.status}
            )

        role = self._gate_for(actor, today)
        gates = required_roles(request.requester_role_snapshot)
        if role not in gates:
            raise InvalidTransition(
                f"{role.value} approval is not required for this request",
                {"request_id": request.id, "role": role.value}
            )
        if request.approval_for(role) is not None:
            raise InvalidTransition(
                f"{role.value} has already acted on leave request {request.id}",
                {"request_id": request.id, "role": role.value}
            )
        expected = next_gate(request)
        if role != expected:
            raise InvalidTransition(
                f"Leave request {request.id} is awaiting {expected.value}, not {role.value}",
                {"request_id": request.id, "awaiting": expected.value, "role": role.value}
            )

        approval = LeaveApproval(
            leave_id=request.id,
            approved_by=actor.id,
            role=role.value,
            status=decision.value,
            remarks=remarks,
        )
        try:
            with self.db.begin_nested():
                self.db.add(approval)
        except IntegrityError:
            # Same gate recorded concurrently; the unique (leave_id, role) row won
            raise InvalidTransition(
                f"{role.value} has already acted on leave request {request.id}",
                {"request_id": request.id, "role": role.value}
            )
        self.db.refresh(request, attribute_names=["approvals"])

        if decision == ApprovalDecision.REJECTED:
            request.status = LeaveStatus.REJECTED.value
            self._notify(request, LeaveEvent.REJECTED, remarks)
            logger.info(f"Leave request {request.id} rejected at {role.value} gate by user {actor.id}")
        elif is_fully_approved(request):
            self._finalize_approval(request)
            self._notify(request, LeaveEvent.APPROVED, remarks)
        else:
            request.status = AWAITING_STATUS[next_gate(request)].value
            logger.info(f"Leave request {request.id} passed {role.value} gate; now {request.status}")

        self.commit()
        self.db.refresh(request)
        return request

    def _finalize_approval(self, request: LeaveRequest) -> None:
        days = Decimal(working_days(request.date_from, request.date_to, request.selected_dates))
        type_info = request.type_info or self._leave_type(request.leave_type)
        request.status = LeaveStatus.APPROVED.value

        if not type_info.is_credit_backed or days == 0:
            request.days_with_pay = days
            request.days_without_pay = Decimal("0")
            logger.info(f"Leave request {request.id} approved; {days} working day(s), no ledger effect")
            return

        try:
            self.ledger.deduct(
                request.employee_id,
                type_info.credit_type,
                days,
                remarks=f"Auto deducted after Admin approval of leave request ID #{request.id}",
                on_date=request.date_from,
                reason=LedgerReason.LEAVE_USAGE,
                reference_id=request.id,
            )
        except InsufficientBalance as exc:
            request.days_with_pay = Decimal("0")
            request.days_without_pay = days
            logger.warning(
                f"Leave request {request.id} approved without pay: {exc.message}",
                extra={"request_id": request.id, "working_days": str(days)}
            )
            return

        request.days_with_pay = days
        request.days_without_pay = Decimal("0")
        logger.info(f"Leave request {request.id} approved; {days} {type_info.credit_type} day(s) deducted")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _gate_for(self, actor: User, today: Optional[date], raise_if_none: bool = True) -> Optional[ApprovalRole]:
        """
        Gate the actor acts at. The admin gate is authorized against the
        current approver, re-resolved on every call.
        """
        if actor.role == UserRole.ADMIN:
            if self.delegation.is_current_approver(actor, today):
                return ApprovalRole.ADMIN
            if raise_if_none:
                raise Unauthorized("Only the current approver can act at the admin gate")
            return None
        for gate, user_role in GATE_ROLE.items():
            if actor.role == user_role:
                return gate
        if raise_if_none:
            raise Unauthorized(f"Role {actor.role.value} cannot approve leave requests")
        return None

    def _leave_type(self, code: str) -> LeaveType:
        type_info = self.db.query(LeaveType).filter(LeaveType.code == code).first()
        if not type_info:
            raise NotFound("Leave type", code)
        return type_info

    def _notify(self, request: LeaveRequest, event: LeaveEvent, remarks: Optional[str]) -> None:
        type_info = request.type_info
        NotificationService.emit(
            self.db,
            employee_id=request.employee_id,
            event_type=event,
            request_id=request.id,
            leave_type_name=type_info.name if type_info else request.leave_type,
            date_from=request.date_from,
            date_to=request.date_to,
            remarks=remarks,
        )
