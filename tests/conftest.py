import os
import tempfile
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Settings are read at import time, so they must be in place before the app is imported
_tmp_dir = tempfile.mkdtemp(prefix="event-booking-tests-")
os.environ["JWT_SECRET_KEY"] = "test-secret-key-long-enough-for-hs256-signing"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EXPIRED_STATE_CLEANUP_INTERVAL_SECONDS"] = "0"
os.environ["SEED_DEMO_DATA"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel

from database import Event, Service, User, engine, get_session
from main import app, get_notifier
from services.credentials import hash_password

API = "/api/v1"


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def fresh_database():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def db_session():
    with get_session() as session:
        yield session


@pytest.fixture
def outbox():
    return []


@pytest.fixture
def client(outbox):
    def capture(email, otp, purpose):
        outbox.append({"email": email, "otp": otp, "purpose": purpose})
        return {"MessageId": "test-message"}

    app.dependency_overrides[get_notifier] = lambda: capture
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user():
    def _make(email="user@example.com", password="secret123", username=None, role="user"):
        user = User(
            username=username or email.split("@")[0],
            email=email,
            password=hash_password(password),
            role=role,
            full_name="Test User",
        )
        with get_session() as session:
            session.add(user)
            session.commit()
            session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_event():
    def _make(price="100.00", title="Gala Night", location="Main Hall", **fields):
        event = Event(
            title=title,
            location=location,
            price=Decimal(price) if price is not None else None,
            **fields,
        )
        with get_session() as session:
            session.add(event)
            session.commit()
            session.refresh(event)
        return event

    return _make


@pytest.fixture
def make_service():
    def _make(price, name="Catering", service_id=None, category=None):
        service = Service(id=service_id, name=name, price=Decimal(price), category=category)
        with get_session() as session:
            session.add(service)
            session.commit()
            session.refresh(service)
        return service

    return _make


@pytest.fixture
def login_headers(client):
    """Log in through the API and return the bearer header."""

    def _login(email="user@example.com", password="secret123"):
        resp = client.post(f"{API}/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['jwt']}"}

    return _login
