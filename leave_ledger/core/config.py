import os
import logging
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()

def _default_daily_rate() -> Decimal:
    raw = os.getenv("LEAVE_DAILY_ACCRUAL_RATE")
    if raw:
        return Decimal(raw)
    # 1.25 days per month spread over a 30-day month
    return (Decimal("1.25") / Decimal("30")).quantize(Decimal("0.000001"))

class LeaveSettings(BaseModel):
    daily_accrual_rate: Decimal = Field(default_factory=_default_daily_rate)
    recall_window_days: int = int(os.getenv("LEAVE_RECALL_WINDOW_DAYS", "7"))
    late_minutes_per_day: int = int(os.getenv("LATE_MINUTES_PER_DAY", "480"))
    late_minutes_cap: int = 60

class ConversionSettings(BaseModel):
    working_days_per_month: int = int(os.getenv("CONVERSION_WORKING_DAYS_PER_MONTH", "22"))
    annual_cap: Decimal = Field(default=Decimal(os.getenv("CONVERSION_ANNUAL_CAP", "10")))

class Config(BaseModel):
    app_name: str = "Leave Ledger"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./leave_ledger.db")

    # Leave rules
    leave: LeaveSettings = LeaveSettings()
    conversion: ConversionSettings = ConversionSettings()

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    actor_header: str = "X-User-Id"

    # CORS: comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if o.strip()
        ]
    )

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing") and settings.database_url.startswith("sqlite"):
    _logger.warning("SQLite DATABASE_URL outside development: row locks on leave credits are not enforced.")
