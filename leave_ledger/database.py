"""
Engine and session factory.

PostgreSQL is the deployment target: the ledger serializes balance changes
with SELECT ... FOR UPDATE and the workflows guard transitions with
savepoints. SQLite is accepted for local runs, where row locks are no-ops.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from leave_ledger.core.config import settings


def _build_engine(url: str):
    if url.startswith("postgresql"):
        return create_engine(url, pool_pre_ping=True)
    return create_engine(url, connect_args={"check_same_thread": False})


engine = _build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    One session per request. Services commit their own unit of work; anything
    left uncommitted when a route raises is rolled back by close().
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create the ledger, workflow and directory tables. Called from the app lifespan and the scripts."""
    from leave_ledger.models import (  # noqa: F401
        user, leave_type, leave_credit, leave_request,
        leave_recall, delegation, credit_conversion, notification
    )
    Base.metadata.create_all(bind=engine)
