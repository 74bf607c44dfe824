import logging
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app import main
from app.api.dependencies import get_session_manager, get_user_repo
from app.config import Settings
from app.errors import StorageError
from app.main import app
from app.models import User
from app.services.auth_service import SessionManager


def _sign_up(client, email="a@b.com", password="Secret123", **extra):
    return client.post("/api/auth/sign-up", json={"email": email, "password": password, **extra})


def test_sign_up_returns_user_and_http_only_cookie(client, user_repo):
    response = _sign_up(client)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User registered"
    assert body["user"]["email"] == "a@b.com"
    assert body["user"]["role"] == "user"
    assert "password_hash" not in body["user"]
    assert "password" not in body["user"]

    set_cookie = response.headers["set-cookie"].lower()
    assert set_cookie.startswith("token=")
    assert "httponly" in set_cookie
    assert len(user_repo.store) == 1


def test_sign_up_duplicate_email_returns_409(client, user_repo):
    assert _sign_up(client).status_code == 201

    response = _sign_up(client, email="A@B.COM", password="Another123")

    assert response.status_code == 409
    assert response.json() == {"error": "User with this email already exists"}
    assert len(user_repo.store) == 1


def test_sign_up_validation_errors_return_400(client, user_repo):
    response = _sign_up(client, email="not-an-email", password="123")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    fields = {d["field"] for d in body["details"]}
    assert {"email", "password"} <= fields
    assert user_repo.store == {}


def test_sign_up_ignores_requested_role(make_client, user_repo):
    _sign_up(make_client(), email="victim@b.com")
    client = make_client()

    response = _sign_up(client, email="mallory@b.com", role="admin")

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "user"
    mallory_id = response.json()["user"]["id"]
    assert user_repo.store[mallory_id].role == "user"
    assert client.delete("/api/users/1").status_code == 403
    assert 1 in user_repo.store


def test_sign_in_after_sign_up_issues_fresh_token(make_client, app_manager):
    _sign_up(make_client(), name="Buyer")

    client = make_client()
    response = client.post("/api/auth/sign-in", json={"email": "A@b.com", "password": "Secret123"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "User signed in successfully"
    assert body["user"]["name"] == "Buyer"
    assert "password_hash" not in body["user"]

    token = client.cookies.get("token")
    claims = app_manager.verify_token(token)
    assert claims.user_id == body["user"]["id"]


def test_sign_in_wrong_password_is_generic_401(client):
    _sign_up(client)

    wrong_password = client.post("/api/auth/sign-in", json={"email": "a@b.com", "password": "Wrong123"})
    unknown_email = client.post("/api/auth/sign-in", json={"email": "ghost@b.com", "password": "Secret123"})

    assert wrong_password.status_code == 401
    assert unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"error": "Invalid email or password"}
    assert "set-cookie" not in wrong_password.headers


def test_sign_out_without_session_still_succeeds(client):
    response = client.post("/api/auth/sign-out")

    assert response.status_code == 200
    assert response.json() == {"message": "User signed out successfully"}
    assert "max-age=0" in response.headers["set-cookie"].lower()


def test_sign_out_is_idempotent(client):
    _sign_up(client)

    assert client.post("/api/auth/sign-out").status_code == 200
    assert client.post("/api/auth/sign-out").status_code == 200


def test_session_lifecycle(client):
    assert client.get("/api/auth/me").status_code == 401

    _sign_up(client)
    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "a@b.com"

    client.post("/api/auth/sign-out")
    assert client.get("/api/auth/me").status_code == 401


def test_expired_token_is_treated_as_anonymous(make_client, user_repo, settings):
    _sign_up(make_client())
    client = make_client()
    user = user_repo.store[1]
    past = SessionManager(settings, clock=lambda: datetime.now(timezone.utc) - timedelta(days=2))
    client.cookies.set("token", past.issue_token(user))

    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}


def test_garbage_token_is_treated_as_anonymous(client):
    client.cookies.set("token", "not.a.token")

    assert client.get("/api/auth/me").status_code == 401
    assert client.post("/api/auth/sign-out").status_code == 200


def test_storage_failure_returns_sanitized_500(client, user_repo, monkeypatch):
    async def broken(email):
        raise StorageError("connection refused by db-internal-host:5432")

    monkeypatch.setattr(user_repo, "find_by_email", broken)

    response = _sign_up(client)

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"
    # 운영 환경이 아니면 원인 메시지를 detail 로 노출
    assert "db-internal-host" in response.json()["detail"]


def test_malformed_stored_hash_returns_500(client, user_repo):
    user_repo.store[1] = User(id=1, email="a@b.com", password_hash="corrupted", role="user")

    response = client.post("/api/auth/sign-in", json={"email": "a@b.com", "password": "Secret123"})

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"


def test_service_endpoints(client):
    assert client.get("/").status_code == 200
    assert client.get("/api").json() == {"message": "Acquisitions API is running!"}

    health = client.get("/health").json()
    assert health["status"] == "OK"
    assert health["uptime"] >= 0


def test_storage_failure_hides_detail_in_production(client, user_repo, monkeypatch):
    async def broken(email):
        raise StorageError("connection refused by db-internal-host:5432")

    monkeypatch.setattr(user_repo, "find_by_email", broken)
    monkeypatch.setattr(main, "settings", Settings(environment="production", jwt_secret="test-secret"))

    response = _sign_up(client)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert "db-internal-host" not in response.text


@pytest.fixture
def production_client(make_client):
    prod_manager = SessionManager(
        Settings(environment="production", jwt_secret="test-secret", password_hash_rounds=1000)
    )
    app.dependency_overrides[get_session_manager] = lambda: prod_manager
    return make_client()


def _assert_secure_session_cookie(response):
    set_cookie = response.headers["set-cookie"].lower()
    assert set_cookie.startswith("token=")
    assert "secure" in set_cookie
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie


def test_production_sign_up_cookie_is_secure(production_client):
    response = _sign_up(production_client)

    assert response.status_code == 201
    _assert_secure_session_cookie(response)


def test_production_sign_in_cookie_is_secure(production_client):
    _sign_up(production_client)

    response = production_client.post("/api/auth/sign-in", json={"email": "a@b.com", "password": "Secret123"})

    assert response.status_code == 200
    _assert_secure_session_cookie(response)


def test_unhandled_error_is_logged_in_access_log(user_repo, caplog):
    async def crash(email):
        raise RuntimeError("boom")

    user_repo.find_by_email = crash
    app.dependency_overrides[get_user_repo] = lambda: user_repo
    caplog.set_level(logging.INFO, logger="app.main")
    client = TestClient(app, raise_server_exceptions=False)
    try:
        response = _sign_up(client)
    finally:
        client.close()
        app.dependency_overrides.clear()

    assert response.status_code == 500
    access = [r for r in caplog.records if r.name == "app.main" and hasattr(r, "duration_ms")]
    assert [(r.path, r.status) for r in access] == [("/api/auth/sign-up", 500)]
