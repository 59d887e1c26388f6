from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

class LeaveRequestCreate(BaseModel):
    employee_id: Optional[int] = None  # defaults to the acting user
    leave_type: str = Field(..., min_length=1, max_length=10)
    date_from: date
    date_to: date
    selected_dates: Optional[List[date]] = None
    reason: Optional[str] = None

class LeaveApprovalResponse(BaseModel):
    id: int
    approved_by: int
    role: str
    status: str
    remarks: Optional[str] = None
    approved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LeaveRequestResponse(BaseModel):
    id: int
    employee_id: int
    leave_type: str
    date_from: date
    date_to: date
    selected_dates: Optional[List[date]] = None
    reason: Optional[str] = None
    status: str
    days_with_pay: Decimal
    days_without_pay: Decimal
    requester_role_snapshot: str
    approvals: List[LeaveApprovalResponse] = []
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LeaveActionRequest(BaseModel):
    remarks: Optional[str] = Field(None, max_length=500)

class LeaveRecallRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)

class LeaveRecallResponse(BaseModel):
    id: int
    leave_request_id: int
    employee_id: int
    approved_leave_date: date
    approved_by_admin: int
    reason: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class RecallEligibilityResponse(BaseModel):
    request_id: int
    can_be_recalled: bool
    reason: Optional[str] = None

# Resolve forward references for Pydantic V2
LeaveRequestResponse.model_rebuild()
