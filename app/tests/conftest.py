"""
Pytest configuration and fixtures
"""
from datetime import date, datetime, time
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.core.deps import get_clock, get_db
from app.core.security import hash_password
from app.models import Employee, Role  # noqa: F401  (registers all tables)
from app.utils.datetime_utils import OrgClock, combine_civil


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_DAY = date(2026, 3, 2)
DEFAULT_PASSWORD = "testpass123"


class FixedClock(OrgClock):
    """Clock pinned to a wall-clock time on a civil date in the organization timezone."""

    def __init__(self, on_date: date = TEST_DAY, at: time = time(8, 55)):
        self._now = combine_civil(on_date, at)

    def set(self, at: time, on_date: date = None) -> None:
        self._now = combine_civil(on_date or self._now.date(), at)

    def now(self) -> datetime:
        return self._now


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def clock():
    """Pinned clock; tests move it with clock.set(time(...))"""
    return FixedClock()


@pytest.fixture(scope="function")
def client(db, clock):
    """Test client fixture with database and clock overrides"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_employee(db, emp_code, role=Role.EMPLOYEE, name=None, wage=None, overtime_rate=None, active=True):
    employee = Employee(
        emp_code=emp_code,
        name=name or f"Employee {emp_code}",
        department="Production",
        position="Operator",
        role=role.value,
        password_hash=hash_password(DEFAULT_PASSWORD),
        wage=wage,
        overtime_rate=overtime_rate,
        join_date=date(2025, 1, 6),
        active=active,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def employee_factory(db):
    """Factory for extra employees: employee_factory("EMP002", role=Role.MANAGER)"""
    def factory(emp_code, **kwargs):
        return _create_employee(db, emp_code, **kwargs)
    return factory


@pytest.fixture
def test_employee(db):
    return _create_employee(db, "EMP001", name="Test Employee", wage=Decimal("20.00"), overtime_rate=Decimal("1.5"))


@pytest.fixture
def test_manager(db):
    return _create_employee(db, "MGR001", role=Role.MANAGER, name="Test Manager")


@pytest.fixture
def test_admin(db):
    return _create_employee(db, "ADM001", role=Role.ADMIN, name="Test Admin")


def get_auth_token(client, emp_code, password=DEFAULT_PASSWORD):
    """Helper to get auth token"""
    response = client.post(
        "/api/v1/auth/login",
        json={"emp_code": emp_code, "password": password}
    )
    return response.json()["access_token"]


@pytest.fixture
def auth_headers(client):
    """Bearer headers for an employee code: auth_headers("EMP001")"""
    def build(emp_code, password=DEFAULT_PASSWORD):
        return {"Authorization": f"Bearer {get_auth_token(client, emp_code, password)}"}
    return build
