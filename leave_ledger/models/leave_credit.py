from sqlalchemy import Column, Integer, String, Date, Numeric, ForeignKey, DateTime, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leave_ledger.database import Base
import enum

# Ledger amounts are stored with six decimals: the daily accrual rate is 1.25/30.
LEDGER_PRECISION = Numeric(12, 6)


class CreditType(str, enum.Enum):
    SL = "SL"
    VL = "VL"


class LedgerReason(str, enum.Enum):
    """Structured reason code on every ledger row."""
    ACCRUAL = "accrual"
    LEAVE_USAGE = "leave_usage"
    LATE = "late"
    RECALL_RESTORE = "recall_restore"
    CONVERSION = "conversion"
    RESTORATION = "restoration"


class LeaveCredit(Base):
    """Current SL/VL balance of one employee. Owned by the ledger service."""
    __tablename__ = "leave_credits"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    sl_balance = Column(LEDGER_PRECISION, default=0, nullable=False)
    vl_balance = Column(LEDGER_PRECISION, default=0, nullable=False)
    # Calendar day of the last daily accrual
    last_updated = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("User", back_populates="leave_credit")

    def balance_for(self, credit_type: CreditType):
        return self.sl_balance if CreditType(credit_type) == CreditType.SL else self.vl_balance

    def set_balance(self, credit_type: CreditType, value) -> None:
        if CreditType(credit_type) == CreditType.SL:
            self.sl_balance = value
        else:
            self.vl_balance = value


class LeaveCreditLog(Base):
    """
    Append-only ledger row. points_deducted is signed: positive deducts,
    negative credits. balance_after = balance_before - points_deducted.
    """
    __tablename__ = "leave_credit_logs"
    __table_args__ = (
        Index("ix_leave_credit_logs_employee_type_year", "employee_id", "type", "year"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(2), nullable=False)
    date = Column(Date, nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    points_deducted = Column(LEDGER_PRECISION, nullable=False)
    balance_before = Column(LEDGER_PRECISION, nullable=False)
    balance_after = Column(LEDGER_PRECISION, nullable=False)
    reason = Column(String(20), nullable=False, index=True)
    # Id of the leave request / conversion that caused the entry, if any
    reference_id = Column(Integer, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<LeaveCreditLog {self.employee_id} {self.type} {self.points_deducted} ({self.reason})>"
