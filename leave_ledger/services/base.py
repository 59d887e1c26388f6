import logging
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session


class BaseService:
    """
    Common plumbing for service classes: the session, a class-named logger
    and the commit/rollback discipline used by every write path.
    """

    def __init__(self, db: Session):
        self.db = db
        self._logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def resolve_today(today: Optional[date]) -> date:
        return today or date.today()
