from sqlalchemy import Column, Integer, String, Date, Numeric, ForeignKey, DateTime, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leave_ledger.database import Base
import enum

class LeaveStatus(str, enum.Enum):
    PENDING = "pending"  # awaiting HR
    PENDING_DEPT_HEAD = "pending_dept_head"
    PENDING_ADMIN = "pending_admin"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECALLED = "recalled"

TERMINAL_STATUSES = {LeaveStatus.APPROVED.value, LeaveStatus.REJECTED.value, LeaveStatus.RECALLED.value}

class ApprovalRole(str, enum.Enum):
    HR = "hr"
    DEPT_HEAD = "dept_head"
    ADMIN = "admin"

class ApprovalDecision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"

class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(String(10), ForeignKey("leave_types.code"), nullable=False, index=True)
    date_from = Column(Date, nullable=False)
    date_to = Column(Date, nullable=False)
    selected_dates = Column(JSON, nullable=True)  # ISO dates; NULL means the whole range
    reason = Column(Text, nullable=True)
    status = Column(String, default=LeaveStatus.PENDING.value, nullable=False, index=True)  # String keeps SQLite simple
    days_with_pay = Column(Numeric(8, 2), default=0, nullable=False)
    days_without_pay = Column(Numeric(8, 2), default=0, nullable=False)
    requester_role_snapshot = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("User", back_populates="leave_requests")
    type_info = relationship("LeaveType")
    approvals = relationship("LeaveApproval", back_populates="leave_request", order_by="LeaveApproval.id")
    recall = relationship("LeaveRecall", back_populates="leave_request", uselist=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def approval_for(self, role: ApprovalRole):
        for approval in self.approvals:
            if approval.role == ApprovalRole(role).value:
                return approval
        return None

class LeaveApproval(Base):
    """One approval/rejection per (request, role). Never updated."""
    __tablename__ = "leave_approvals"
    __table_args__ = (
        UniqueConstraint("leave_id", "role", name="uq_leave_approvals_leave_role"),
    )

    id = Column(Integer, primary_key=True, index=True)
    leave_id = Column(Integer, ForeignKey("leave_requests.id"), nullable=False, index=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    role = Column(String, nullable=False)
    status = Column(String, nullable=False)
    remarks = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), server_default=func.now())

    leave_request = relationship("LeaveRequest", back_populates="approvals")
    approver = relationship("User")
