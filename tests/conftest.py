import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).resolve().parents[1]))
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

from tucancha.api.deps import get_notification_dispatcher
from tucancha.core.rate_limiter import rate_limiter
from tucancha.db import models  # noqa: F401
from tucancha.db.base import Base
from tucancha.db.session import get_db
from tucancha.main import app

TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "StrongPass123"


class RecordingDispatcher:
    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def booking_created(self, booking) -> None:
        self.events.append(("booking_created", booking.id))

    def booking_cancelled(self, booking) -> None:
        self.events.append(("booking_cancelled", booking.id))


@pytest.fixture(autouse=True)
def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()


@pytest.fixture()
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def client(dispatcher) -> TestClient:
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def register_and_login(client):
    """Register a user through the API and return (auth headers, user id)."""

    def _register(email: str, role: str = "PLAYER", full_name: str = "Test User") -> tuple[dict[str, str], str]:
        registered = client.post(
            "/auth/register",
            json={"email": email, "password": PASSWORD, "full_name": full_name, "role": role},
        )
        assert registered.status_code == 201, registered.text
        login = client.post("/auth/login", json={"email": email, "password": PASSWORD})
        token = login.json()["access_token"]
        return {"Authorization": f"Bearer {token}"}, registered.json()["id"]

    return _register


@pytest.fixture()
def venue_with_court(client, register_and_login) -> dict:
    owner_headers, owner_id = register_and_login("owner@example.com", role="OWNER", full_name="Dueño Complejo")
    response = client.post(
        "/venues",
        headers=owner_headers,
        json={
            "name": "Complejo Central",
            "address": "Av. España 1234, Asunción",
            "opening_hours": "07:00-23:00",
            "amenities": ["Vestuarios", "Estacionamiento"],
            "courts": [{"name": "Cancha 1", "type": "Padel", "price_per_hour": 120000}],
        },
    )
    assert response.status_code == 201, response.text
    venue = response.json()
    return {
        "owner_headers": owner_headers,
        "owner_id": owner_id,
        "venue_id": venue["id"],
        "court_id": venue["courts"][0]["id"],
    }
