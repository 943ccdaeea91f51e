"""
Tests for registration, login and the current-user endpoint.
"""

from uuid import uuid4

import pytest

from app.core.rate_limiting import login_rate_limiter
from app.core.security import decode_access_token, hash_password

REGISTRATION = {
    "username": "jbrown",
    "email": "JBrown@Example.com",
    "password": "Observe!2025",
    "first_name": "Janet",
    "last_name": "Brown",
    "trn": "123-456-789",
}


@pytest.fixture(autouse=True)
def reset_rate_limits():
    yield
    login_rate_limiter.record_successful_login("jbrown", "127.0.0.1")


async def test_register_creates_pending_observer(make_client, mocker, user_factory):
    mocker.patch("app.api.routes.auth.username_or_email_taken", return_value=None)
    mocker.patch("app.api.routes.auth.generate_observer_id", return_value="004217")
    create_user = mocker.patch(
        "app.api.routes.auth.create_user",
        return_value=user_factory("observer", status="pending", observer_id="004217"),
    )
    mocker.patch("app.api.routes.auth.create_audit_log")
    client = make_client(None)

    response = await client.post("/api/v1/auth/register", json=REGISTRATION)

    assert response.status_code == 201
    assert response.json()["data"]["observer_id"] == "004217"
    kwargs = create_user.call_args.kwargs
    assert kwargs["email"] == "jbrown@example.com"
    assert kwargs["trn"] == "123456789"
    assert kwargs["password_hash"].startswith("$argon2id$")


async def test_register_duplicate_username(make_client, mocker):
    mocker.patch("app.api.routes.auth.username_or_email_taken", return_value="username")
    client = make_client(None)

    response = await client.post("/api/v1/auth/register", json=REGISTRATION)

    assert response.status_code == 400
    assert response.json()["message"] == "Username already exists"


@pytest.mark.parametrize("password", ["weak", "password", "12345678", "Abcd1234"])
async def test_register_weak_password(make_client, password):
    client = make_client(None)

    response = await client.post(
        "/api/v1/auth/register", json={**REGISTRATION, "password": password}
    )

    assert response.status_code == 422
    assert response.json()["success"] is False


async def test_register_invalid_trn(make_client):
    client = make_client(None)

    response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "trn": "12345"})

    assert response.status_code == 422


async def test_login(make_client, mock_conn, mocker, user_factory):
    user = user_factory(
        "observer", username="jbrown", password_hash=hash_password("Observe!2025")
    )
    mock_conn.fetchrow.return_value = user
    mocker.patch("app.api.routes.auth.create_audit_log")
    client = make_client(None)

    response = await client.post(
        "/api/v1/auth/login", json={"username": "jbrown", "password": "Observe!2025"}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert "password_hash" not in data["user"]
    assert decode_access_token(data["access_token"])["sub"] == user["id"]


async def test_login_unknown_user(make_client, mocker):
    mocker.patch("app.api.routes.auth.create_audit_log")
    client = make_client(None)

    response = await client.post(
        "/api/v1/auth/login", json={"username": "jbrown", "password": "Observe!2025"}
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid username or password"


async def test_login_rate_limited(make_client, mocker):
    mocker.patch("app.api.routes.auth.create_audit_log")
    client = make_client(None)

    for _ in range(5):
        response = await client.post(
            "/api/v1/auth/login", json={"username": "jbrown", "password": "wrongpass"}
        )
        assert response.status_code == 401

    response = await client.post(
        "/api/v1/auth/login", json={"username": "jbrown", "password": "wrongpass"}
    )
    assert response.status_code == 429


async def test_login_suspended(make_client, mock_conn, mocker, user_factory):
    mock_conn.fetchrow.return_value = user_factory(
        "observer",
        username="jbrown",
        status="suspended",
        password_hash=hash_password("Observe!2025"),
    )
    mocker.patch("app.api.routes.auth.create_audit_log")
    client = make_client(None)

    response = await client.post(
        "/api/v1/auth/login", json={"username": "jbrown", "password": "Observe!2025"}
    )

    assert response.status_code == 403


async def test_me(make_client, observer_user):
    client = make_client(observer_user)

    response = await client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["data"]["username"] == observer_user["username"]


async def test_me_requires_token(make_client):
    client = make_client(None)

    response = await client.get("/api/v1/auth/me")

    assert response.status_code in (401, 403)


async def test_me_rejects_invalid_token(make_client):
    client = make_client(None)

    response = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {uuid4()}"}
    )

    assert response.status_code == 401
