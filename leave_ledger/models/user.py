"""
Employee/User directory mirror.

The directory itself is owned elsewhere; the leave core only needs the
organizational role, the primary-admin flag, employment status (gates daily
accrual) and the monthly salary used for credit conversion.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from leave_ledger.database import Base


class UserRole(str, enum.Enum):
    """
    Organizational roles. The role of a leave applicant decides which
    approval gates apply to the request.
    """
    EMPLOYEE = "employee"
    HR = "hr"
    DEPT_HEAD = "dept_head"
    ADMIN = "admin"


class EmploymentStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    __tablename__ = "users"

    # Doubles as the employee id throughout the ledger
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)

    role = Column(Enum(UserRole), default=UserRole.EMPLOYEE, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    employment_status = Column(Enum(EmploymentStatus), default=EmploymentStatus.ACTIVE, nullable=False, index=True)

    department = Column(String, nullable=True)
    monthly_salary = Column(Numeric(12, 2), default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    leave_credit = relationship("LeaveCredit", back_populates="employee", uselist=False)
    leave_requests = relationship("LeaveRequest", back_populates="employee")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"

    @property
    def is_primary_admin(self) -> bool:
        return self.is_primary and self.role == UserRole.ADMIN
