from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional


class ConversionCreate(BaseModel):
    leave_type: Literal["SL", "VL"]
    credits_requested: Decimal = Field(..., gt=0)
    remarks: Optional[str] = Field(None, max_length=500)


class ConversionAction(BaseModel):
    remarks: Optional[str] = Field(None, max_length=500)


class ConversionResponse(BaseModel):
    id: int
    employee_id: int
    leave_type: str
    credits_requested: Decimal
    equivalent_cash: Decimal
    status: str
    employee_remarks: Optional[str] = None
    submitted_at: Optional[datetime] = None
    hr_approved_by: Optional[int] = None
    hr_approved_at: Optional[datetime] = None
    hr_remarks: Optional[str] = None
    dept_head_approved_by: Optional[int] = None
    dept_head_approved_at: Optional[datetime] = None
    dept_head_remarks: Optional[str] = None
    admin_approved_by: Optional[int] = None
    admin_approved_at: Optional[datetime] = None
    admin_remarks: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ConversionEligibility(BaseModel):
    eligible: bool
    reason: str
    available_balance: Decimal
    available_quota: Decimal


class ConversionStats(BaseModel):
    year: int
    total_converted_credits: Decimal
    total_cash_received: Decimal
    pending_requests: int
    remaining_quota: Decimal
