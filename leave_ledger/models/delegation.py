from datetime import date
from sqlalchemy import Column, Integer, String, Date, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leave_ledger.database import Base
import enum


class DelegationStatus(str, enum.Enum):
    ACTIVE = "active"
    ENDED = "ended"


class DelegatedApprover(Base):
    """Time-boxed transfer of the admin approval gate from one admin to another."""
    __tablename__ = "delegated_approvers"

    id = Column(Integer, primary_key=True, index=True)
    from_admin_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    to_admin_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, default=DelegationStatus.ACTIVE.value, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    from_admin = relationship("User", foreign_keys=[from_admin_id])
    to_admin = relationship("User", foreign_keys=[to_admin_id])

    def is_in_effect(self, today: date) -> bool:
        return self.status == DelegationStatus.ACTIVE.value and self.start_date <= today <= self.end_date

    def phase(self, today: date) -> str:
        """active, scheduled or ended, as seen on `today`."""
        if self.is_in_effect(today):
            return "active"
        if self.status == DelegationStatus.ACTIVE.value and self.start_date > today:
            return "scheduled"
        return "ended"
