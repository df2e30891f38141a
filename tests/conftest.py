import os
import tempfile
from datetime import date, timedelta

# 앱을 불러오기 전에 테스트용 설정 주입
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="vms-uploads-")
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vms.database import get_db, init_db
from vms.main import app
from vms.models.user import UserRole, DepartmentType, Location
from vms.schemas.user import UserCreate
from vms.security.auth import create_access_token
from vms.services.user_service import UserService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role=UserRole.DEPARTMENT_USER, department_type=DepartmentType.DIVISION, department=None, **kwargs):
        counter["n"] += 1
        username = kwargs.pop("username", f"{role.value.replace('_', '')}{counter['n']}")
        if role == UserRole.DEPARTMENT_USER and department is None:
            department = "Logistics"
        data = UserCreate(
            username=username,
            email=f"{username}@example.com",
            password="password123",
            full_name=kwargs.pop("full_name", username.title()),
            role=role,
            department=department,
            department_type=department_type,
            location=kwargs.pop("location", Location.WOLLO_SEFER),
        )
        return UserService.create_user(db, data)

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, username="admin")


@pytest.fixture
def submitter(make_user):
    return make_user(UserRole.DEPARTMENT_USER, username="submitter")


@pytest.fixture
def reviewer(make_user):
    return make_user(UserRole.SECURITY, username="reviewer")


@pytest.fixture
def gate_officer(make_user):
    return make_user(UserRole.GATE, username="gateofficer")


def auth_header(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}


def request_payload(**overrides) -> dict:
    payload = {
        "visitor_name": "Abebe Kebede",
        "visitor_id": "V-1001",
        "national_id": "NID-1001",
        "visitor_phone": "+251911223344",
        "visitor_email": "abebe@example.com",
        "purpose": "Supplier meeting",
        "items_brought": ["laptop"],
        "department_type": "division",
        "scheduled_date": (date.today() + timedelta(days=1)).isoformat(),
        "scheduled_time": "10:30",
    }
    payload.update(overrides)
    return payload
