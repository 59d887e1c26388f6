from sqlalchemy import Column, Integer, Date, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leave_ledger.database import Base


class LeaveRecall(Base):
    """Single-step admin recall of an approved VL request. Immutable."""
    __tablename__ = "leave_recalls"

    id = Column(Integer, primary_key=True, index=True)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id"), unique=True, nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approved_leave_date = Column(Date, nullable=False)
    approved_by_admin = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reason = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    leave_request = relationship("LeaveRequest", back_populates="recall")
