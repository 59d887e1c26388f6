import pytest
import os
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from leave_ledger.core.config import settings
from leave_ledger.database import Base, get_db
from leave_ledger.main import app
from leave_ledger.models.leave_credit import LeaveCredit
from leave_ledger.models.leave_type import LeaveType
from leave_ledger.models.user import User, UserRole
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Session joined to an outer transaction that is rolled back after the test.
    Service commits land inside that transaction.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def leave_types(db_session):
    types = {
        "SL": LeaveType(code="SL", name="Sick Leave", credit_type="SL"),
        "VL": LeaveType(code="VL", name="Vacation Leave", credit_type="VL"),
        "ML": LeaveType(code="ML", name="Maternity Leave", credit_type=None),
    }
    db_session.add_all(types.values())
    db_session.commit()
    return types


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory for directory users."""
    counter = {"n": 0}

    def _make_user(role=UserRole.EMPLOYEE, is_primary=False, salary="22000.00", **kwargs):
        counter["n"] += 1
        user = User(
            email=f"{role.value}{counter['n']}@example.com",
            full_name=f"{role.value.title()} {counter['n']}",
            role=role,
            is_primary=is_primary,
            monthly_salary=Decimal(salary),
            **kwargs
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture(scope="function")
def employee(make_user):
    return make_user(UserRole.EMPLOYEE)


@pytest.fixture(scope="function")
def hr_user(make_user):
    return make_user(UserRole.HR)


@pytest.fixture(scope="function")
def dept_head(make_user):
    return make_user(UserRole.DEPT_HEAD)


@pytest.fixture(scope="function")
def primary_admin(make_user):
    return make_user(UserRole.ADMIN, is_primary=True)


@pytest.fixture(scope="function")
def second_admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture(scope="function")
def set_balance(db_session):
    """Seed an opening balance directly, as a migrated system would."""
    def _set_balance(user, sl="0", vl="0", last_updated=None):
        credit = db_session.query(LeaveCredit).filter(LeaveCredit.employee_id == user.id).first()
        if credit is None:
            credit = LeaveCredit(employee_id=user.id)
            db_session.add(credit)
        credit.sl_balance = Decimal(sl)
        credit.vl_balance = Decimal(vl)
        credit.last_updated = last_updated
        db_session.commit()
        return credit
    return _set_balance


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def as_user():
    """Headers carrying the acting user."""
    def _as_user(user):
        return {settings.actor_header: str(user.id)}
    return _as_user
