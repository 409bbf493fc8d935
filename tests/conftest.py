"""
Test configuration and fixtures.

Every test gets its own InMemoryDatabase; the API client is wired to it
through dependency overrides.
"""
import os

# The MCP mount is not needed under test.
os.environ["MCP_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from api import app, get_publisher, get_uow
from infrastructure import InMemoryDatabase, InMemoryNotificationPublisher, InMemoryUnitOfWork
from model import Department, Sex, StaffCategory, StaffRecord, UserAccount, UserRole


@pytest.fixture
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def uow(db) -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork(db)


@pytest.fixture
def publisher(db) -> InMemoryNotificationPublisher:
    return InMemoryNotificationPublisher(db)


# ---------------------------------------------------------------------------
# Registry fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def dept_a(db) -> Department:
    dept = Department(code="CSE", name="Computer Science", college_name="College of Engineering")
    db.departments.put(dept)
    return dept


@pytest.fixture
def dept_b(db) -> Department:
    dept = Department(code="EEE", name="Electrical Engineering", college_name="College of Engineering")
    db.departments.put(dept)
    return dept


def _user(db, role, department=None, name=None) -> UserAccount:
    user = UserAccount(
        full_name=name or role.value.replace("_", " ").title(),
        email=f"{role.value}.{department.code.lower() if department else 'college'}@college.test",
        role=role,
        department_id=department.id if department else None,
    )
    db.users.put(user)
    return user


@pytest.fixture
def admin(db) -> UserAccount:
    return _user(db, UserRole.SYSTEM_ADMIN)


@pytest.fixture
def avd(db) -> UserAccount:
    return _user(db, UserRole.AVD)


@pytest.fixture
def management(db) -> UserAccount:
    return _user(db, UserRole.MANAGEMENT)


@pytest.fixture
def head_a(db, dept_a) -> UserAccount:
    return _user(db, UserRole.DEPARTMENT_HEAD, dept_a)


@pytest.fixture
def head_b(db, dept_b) -> UserAccount:
    return _user(db, UserRole.DEPARTMENT_HEAD, dept_b)


@pytest.fixture
def add_staff(db):
    """Factory: add `count` staff members to a department and return them."""
    def _add(department, count=1, category=StaffCategory.LOCAL_INSTRUCTORS,
             sex=Sex.MALE, current_status="On Duty", prefix=None):
        created = []
        start = len(db.staff)
        for i in range(count):
            n = start + i + 1
            staff = StaffRecord(
                staff_code=f"{prefix or department.code}/{n:04d}",
                full_name=f"Staff Member {n:03d}",
                sex=sex,
                education_level="MSc",
                academic_rank="Lecturer",
                category=category,
                current_status=current_status,
                department_id=department.id,
                college_name=department.college_name,
            )
            db.staff.put(staff)
            created.append(staff)
        return created
    return _add


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture
def client(db):
    app.dependency_overrides[get_uow] = lambda: InMemoryUnitOfWork(db)
    app.dependency_overrides[get_publisher] = lambda: InMemoryNotificationPublisher(db)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def _headers(user: UserAccount) -> dict:
        return {"Authorization": f"Bearer {user.id}"}
    return _headers
