# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    user, leave_type, leave_credit, leave_request,
    leave_recall, delegation, credit_conversion, notification
)

# Explicit class exports for cleaner imports
from .user import User, UserRole, EmploymentStatus
from .leave_type import LeaveType
from .leave_credit import LeaveCredit, LeaveCreditLog, CreditType, LedgerReason
from .leave_request import LeaveRequest, LeaveApproval, LeaveStatus, ApprovalRole, ApprovalDecision
from .leave_recall import LeaveRecall
from .delegation import DelegatedApprover, DelegationStatus
from .credit_conversion import CreditConversion, ConversionStatus
from .notification import Notification

__all__ = [
    "User",
    "UserRole",
    "EmploymentStatus",
    "LeaveType",
    "LeaveCredit",
    "LeaveCreditLog",
    "CreditType",
    "LedgerReason",
    "LeaveRequest",
    "LeaveApproval",
    "LeaveStatus",
    "ApprovalRole",
    "ApprovalDecision",
    "LeaveRecall",
    "DelegatedApprover",
    "DelegationStatus",
    "CreditConversion",
    "ConversionStatus",
    "Notification",
]
