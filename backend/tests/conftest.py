import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["ADMIN_EMAIL"] = "admin@medicore.org"
os.environ.setdefault("SECRET_KEY", "medicore-test-secret-key-0123456789abcdef")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from medicore.core.security import create_access_token
from medicore.core.settings import settings
from medicore.db.session import SessionLocal, engine
from medicore.main import app
from medicore.models import Base
from medicore.models.user import Role, User
from medicore.services.users import create_user


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def api_client():
    with TestClient(app) as client:
        yield client


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def token_headers(user: User) -> dict[str, str]:
    token = create_access_token(
        subject=str(user.id),
        secret=settings.secret_key,
        alg=settings.jwt_alg,
        expires_minutes=30,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return token_headers


@pytest.fixture
def make_user(api_client, db_session):
    counter = {"n": 0}

    def _make(role: Role = Role.doctor, *, name: str | None = None, department: str | None = None,
              is_active: bool = True) -> User:
        counter["n"] += 1
        return create_user(
            db_session,
            email=f"{role.value}{counter['n']}@medicore.org",
            name=name or f"{role.value.title()} {counter['n']}",
            role=role,
            department=department,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def admin_user(api_client, db_session):
    user = db_session.scalar(select(User).where(User.email == str(settings.admin_email)))
    assert user is not None, "Initial admin was not seeded"
    return user


@pytest.fixture
def auth_headers(admin_user):
    return token_headers(admin_user)


@pytest.fixture
def doctor(make_user):
    return make_user(Role.doctor, name="Dr. Sarah Smith", department="Cardiology")


@pytest.fixture
def doctor_headers(doctor):
    return token_headers(doctor)


@pytest.fixture
def receptionist_headers(make_user):
    return token_headers(make_user(Role.receptionist, name="Front Desk"))


@pytest.fixture
def patient_payload():
    counter = {"n": 0}

    def _payload(**overrides):
        counter["n"] += 1
        payload = {
            "name": f"Patient {counter['n']}",
            "age": 42,
            "gender": "Female",
            "bloodGroup": "O+",
            "phone": "+1-555-0100",
            "email": f"patient{counter['n']}@medicore.org",
            "address": "12 Harbour Road",
            "emergencyContact": "Jordan Lee +1-555-0199",
            "medicalHistory": ["Hypertension"],
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def create_patient(api_client, auth_headers, patient_payload):
    def _create(**overrides) -> dict:
        res = api_client.post("/api/patients", json=patient_payload(**overrides), headers=auth_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _create


@pytest.fixture
def book(api_client, auth_headers):
    def _book(patient_id: str, doctor_id: int, *, date: str = "2026-03-02", time: str = "09:00",
              duration: int = 30, reason: str = "Check-up", headers=None):
        return api_client.post(
            "/api/appointments",
            json={
                "patientId": patient_id,
                "doctorId": doctor_id,
                "date": date,
                "time": time,
                "duration": duration,
                "reason": reason,
            },
            headers=headers or auth_headers,
        )

    return _book


@pytest.fixture
def create_invoice(api_client, auth_headers):
    def _create(patient_id: str, items: list[dict] | None = None, **overrides) -> dict:
        payload = {
            "patientId": patient_id,
            "dueDate": "2026-04-01",
            "items": items or [{"description": "Consultation", "quantity": 1, "price": 300}],
        }
        payload.update(overrides)
        res = api_client.post("/api/invoices", json=payload, headers=auth_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    return _create
