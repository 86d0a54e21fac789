from tucancha.core.config import settings
from tucancha.core.rate_limiter import rate_limiter


def _register(client, email: str):
    return client.post(
        "/auth/register",
        json={"email": email, "password": "StrongPass123", "full_name": "Rate Limited"},
    )


def test_register_rate_limit_returns_429(client):
    original_limit = settings.auth_register_max_attempts
    original_window = settings.auth_rate_limit_window_seconds
    settings.auth_register_max_attempts = 2
    settings.auth_rate_limit_window_seconds = 60
    rate_limiter.reset()
    try:
        first = _register(client, "limit1@example.com")
        second = _register(client, "limit2@example.com")
        third = _register(client, "limit3@example.com")

        assert first.status_code == 201
        assert second.status_code == 201
        assert third.status_code == 429
        assert "error" in third.json()
        assert third.headers.get("Retry-After")
    finally:
        settings.auth_register_max_attempts = original_limit
        settings.auth_rate_limit_window_seconds = original_window
        rate_limiter.reset()


def test_login_rate_limit_returns_429(client):
    original_limit = settings.auth_login_max_attempts
    original_window = settings.auth_rate_limit_window_seconds
    settings.auth_login_max_attempts = 2
    settings.auth_rate_limit_window_seconds = 60
    rate_limiter.reset()
    try:
        _register(client, "loglimit@example.com")

        first = client.post("/auth/login", json={"email": "loglimit@example.com", "password": "WrongPass123"})
        second = client.post("/auth/login", json={"email": "loglimit@example.com", "password": "WrongPass123"})
        third = client.post("/auth/login", json={"email": "loglimit@example.com", "password": "WrongPass123"})

        assert first.status_code == 401
        assert second.status_code == 401
        assert third.status_code == 429
        assert third.json()["error"]["code"] == "http_429"
    finally:
        settings.auth_login_max_attempts = original_limit
        settings.auth_rate_limit_window_seconds = original_window
        rate_limiter.reset()


def test_booking_create_rate_limit_returns_429(client, register_and_login, venue_with_court):
    headers, player_id = register_and_login("booking-limit@example.com")
    original_limit = settings.booking_create_max_attempts
    settings.booking_create_max_attempts = 1
    rate_limiter.reset()
    try:
        payload = {
            "venue_id": venue_with_court["venue_id"],
            "court_id": venue_with_court["court_id"],
            "player_id": player_id,
            "date": "2026-11-02",
            "price": 120000,
        }
        first = client.post("/bookings", headers=headers, json={**payload, "start_time": "10:00"})
        second = client.post("/bookings", headers=headers, json={**payload, "start_time": "11:00"})

        assert first.status_code == 201
        assert second.status_code == 429
    finally:
        settings.booking_create_max_attempts = original_limit
        rate_limiter.reset()
