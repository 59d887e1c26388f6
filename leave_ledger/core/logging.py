"""
JSON log lines for the API and the accrual runner.

Records emitted while serving a request carry the id bound by
CorrelationIdMiddleware; records from scripts carry none.
"""
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_FORMAT = "%(timestamp) %(level) %(name) %(message)"

# Libraries whose INFO output drowns the ledger's own records
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        request_id = request_id_var.get()
        if request_id:
            log_record["request_id"] = request_id

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = (log_record.get("level") or record.levelname).upper()


def setup_logging(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    # main.py runs this at import; tests and reloads import it repeatedly
    if any(isinstance(h.formatter, CustomJsonFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(CustomJsonFormatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
