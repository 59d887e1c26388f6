import enum
import logging
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session
from leave_ledger.models.notification import Notification

logger = logging.getLogger(__name__)


class LeaveEvent(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    RECALLED = "recalled"
    CONVERSION_APPROVED = "conversion_approved"
    CONVERSION_REJECTED = "conversion_rejected"
    LATE_DEDUCTION = "late_deduction"


class NotificationService:
    @staticmethod
    def emit(
        db: Session,
        employee_id: int,
        event_type: LeaveEvent,
        request_id: Optional[int] = None,
        leave_type_name: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        remarks: Optional[str] = None
    ) -> Notification:
        """
        Record an outbound leave event for the notifier.
        Joins the caller's transaction: an event is only visible if the
        state change that produced it commits.
        """
        notification = Notification(
            user_id=employee_id,
            event_type=LeaveEvent(event_type).value,
            request_id=request_id,
            leave_type_name=leave_type_name,
            date_from=date_from,
            date_to=date_to,
            remarks=remarks
        )
        db.add(notification)
        db.flush()
        logger.info(f"Queued {notification.event_type} event for employee {employee_id} (request {request_id})")
        return notification
