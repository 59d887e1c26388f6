from pydantic import BaseModel, ConfigDict
from datetime import date, datetime
from typing import Optional


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    event_type: str
    request_id: Optional[int] = None
    leave_type_name: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    remarks: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
