from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leave_ledger.database import Base
import enum

class ConversionStatus(str, enum.Enum):
    PENDING = "pending"
    HR_APPROVED = "hr_approved"
    DEPT_HEAD_APPROVED = "dept_head_approved"
    ADMIN_APPROVED = "admin_approved"
    REJECTED = "rejected"

class CreditConversion(Base):
    __tablename__ = "credit_conversions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(String(2), nullable=False)  # SL or VL
    credits_requested = Column(Numeric(8, 2), nullable=False)
    equivalent_cash = Column(Numeric(12, 2), nullable=False)
    status = Column(String, default=ConversionStatus.PENDING.value, nullable=False, index=True)
    employee_remarks = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    hr_approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    hr_approved_at = Column(DateTime(timezone=True), nullable=True)
    hr_remarks = Column(Text, nullable=True)

    dept_head_approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    dept_head_approved_at = Column(DateTime(timezone=True), nullable=True)
    dept_head_remarks = Column(Text, nullable=True)

    admin_approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    admin_approved_at = Column(DateTime(timezone=True), nullable=True)
    admin_remarks = Column(Text, nullable=True)

    employee = relationship("User", foreign_keys=[employee_id])
