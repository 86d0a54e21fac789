def test_register_success(client):
    payload = {
        "email": "user1@example.com",
        "password": "StrongPass123",
        "full_name": "Lucía Benítez",
        "role": "PLAYER",
    }

    response = client.post("/auth/register", json=payload)

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == payload["email"]
    assert data["role"] == payload["role"]
    assert data["full_name"] == payload["full_name"]
    assert data["is_active"] is True
    assert "id" in data


def test_register_defaults_to_player(client):
    response = client.post(
        "/auth/register",
        json={"email": "default@example.com", "password": "StrongPass123", "full_name": "Sin Rol"},
    )

    assert response.status_code == 201
    assert response.json()["role"] == "PLAYER"


def test_register_duplicate_email(client):
    payload = {
        "email": "duplicate@example.com",
        "password": "StrongPass123",
        "full_name": "Repetido",
    }

    first = client.post("/auth/register", json=payload)
    second = client.post("/auth/register", json={**payload, "email": "DUPLICATE@example.com"})

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["detail"] == "User with this email already exists"


def test_register_cannot_self_assign_admin(client):
    response = client.post(
        "/auth/register",
        json={"email": "admin@example.com", "password": "StrongPass123", "full_name": "Admin", "role": "ADMIN"},
    )

    assert response.status_code == 403


def test_login_success(client):
    payload = {"email": "login@example.com", "password": "StrongPass123", "full_name": "Login User"}
    client.post("/auth/register", json=payload)

    response = client.post(
        "/auth/login",
        json={"email": payload["email"], "password": payload["password"]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert isinstance(data["access_token"], str)
    assert len(data["access_token"]) > 20


def test_login_wrong_password(client):
    client.post(
        "/auth/register",
        json={"email": "wrongpass@example.com", "password": "StrongPass123", "full_name": "Wrong Pass"},
    )

    response = client.post("/auth/login", json={"email": "wrongpass@example.com", "password": "WrongPass123"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_users_me_with_token(client, register_and_login):
    headers, user_id = register_and_login("me@example.com", role="OWNER")

    response = client.get("/users/me", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == user_id
    assert data["email"] == "me@example.com"
    assert data["role"] == "OWNER"


def test_users_me_without_token(client):
    response = client.get("/users/me")
    assert response.status_code == 401


def test_users_me_with_garbage_token(client):
    response = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_list_users_requires_admin(client, register_and_login):
    headers, _ = register_and_login("player@example.com")

    response = client.get("/users", headers=headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Not enough permissions"
