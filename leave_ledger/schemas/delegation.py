from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from typing import Optional


class DelegationCreate(BaseModel):
    to_admin_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=500)


class DelegationResponse(BaseModel):
    id: int
    from_admin_id: int
    to_admin_id: int
    start_date: date
    end_date: date
    status: str
    reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DelegationListItem(DelegationResponse):
    phase: str  # active, scheduled or ended


class ApproverResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    is_primary: bool
    delegated: bool

    model_config = ConfigDict(from_attributes=True)
