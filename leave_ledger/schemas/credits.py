from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


class LeaveCreditResponse(BaseModel):
    employee_id: int
    sl_balance: Decimal
    vl_balance: Decimal
    last_updated: Optional[date] = None


class LeaveCreditLogResponse(BaseModel):
    """One ledger row, with every field a report needs to replay balances."""
    id: int
    employee_id: int
    type: str
    date: date
    year: int
    month: int
    points_deducted: Decimal
    balance_before: Decimal
    balance_after: Decimal
    reason: str
    reference_id: Optional[int] = None
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MonthlySummaryRow(BaseModel):
    month: int
    opening_balance: Decimal
    earned: Decimal
    used: Decimal
    late: Decimal
    converted: Decimal
    restored: Decimal
    closing_balance: Decimal


class UsageTotals(BaseModel):
    earned: Decimal
    used: Decimal
    late: Decimal
    converted: Decimal
    restored: Decimal


class LateDeductionRequest(BaseModel):
    late_minutes: int = Field(..., gt=0)
    on_date: Optional[date] = None


class AccrualRunRequest(BaseModel):
    as_of: Optional[date] = None
