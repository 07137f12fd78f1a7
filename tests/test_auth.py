"""Tests for admin credentials, JWT tokens and the admin guard."""

from datetime import timedelta

import pytest
from jose import jwt

from vxschool.auth.jwt import (
    create_access_token,
    hash_password,
    verify_credentials,
    verify_token,
)

ADMIN_ROUTES = [
    ("GET", "/admin/dashboard"),
    ("GET", "/admin/contacts"),
    ("DELETE", "/admin/contacts/clear"),
    ("DELETE", "/admin/contacts/abc123"),
    ("GET", "/admin/settings"),
    ("POST", "/admin/settings"),
    ("GET", "/admin/analytics"),
    ("POST", "/admin/toggle-discount"),
    ("POST", "/admin/toggle-package"),
]


def call(client, method, path, headers=None):
    kwargs = {"headers": headers or {}}
    if method == "POST":
        kwargs["json"] = {}
    return client.request(method, path, **kwargs)


# ─────────────────────────────── Credentials ─────────────────────────────────


def test_valid_credentials_accepted(settings):
    assert verify_credentials("admin", "s3cret-pass", settings)


@pytest.mark.parametrize(
    "username, password",
    [
        ("admin", "wrong"),
        ("admin", ""),
        ("admin", "s3cret-pass "),
        ("root", "s3cret-pass"),
        ("", ""),
    ],
)
def test_invalid_credentials_rejected(settings, username, password):
    assert not verify_credentials(username, password, settings)


def test_hashed_admin_password(make_settings):
    settings = make_settings(ADMIN_PASSWORD=hash_password("hashed-pass"))

    assert settings.ADMIN_PASSWORD.startswith("$pbkdf2-sha256$")
    assert verify_credentials("admin", "hashed-pass", settings)
    assert not verify_credentials("admin", "other-pass", settings)


# ─────────────────────────────── Tokens ──────────────────────────────────────


def test_token_carries_admin_identity(settings):
    payload = verify_token(create_access_token(settings), settings)

    assert payload["username"] == "admin"
    assert payload["role"] == "admin"
    assert payload["exp"] - payload["iat"] == 24 * 3600


def test_token_signed_with_other_secret_rejected(settings, make_settings):
    foreign = create_access_token(make_settings(JWT_SECRET="another-secret"))
    assert verify_token(foreign, settings) is None


def test_token_for_other_username_rejected(settings, make_settings):
    stale = create_access_token(make_settings(ADMIN_USERNAME="old-admin"))
    assert verify_token(stale, settings) is None


def test_expired_token_rejected(settings):
    expired = create_access_token(settings, expires_delta=timedelta(seconds=-5))
    assert verify_token(expired, settings) is None


def test_garbage_token_rejected(settings):
    assert verify_token("not.a.token", settings) is None


def test_token_without_username_rejected(settings):
    token = jwt.encode({"role": "admin"}, settings.JWT_SECRET, algorithm="HS256")
    assert verify_token(token, settings) is None


# ─────────────────────────────── Endpoints ───────────────────────────────────


def test_login_returns_usable_token(client):
    response = client.post("/admin/login", json={"username": "admin", "password": "s3cret-pass"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["user"] == {"username": "admin"}

    verify = client.post("/admin/verify", headers={"Authorization": f"Bearer {body['token']}"})
    assert verify.status_code == 200
    assert verify.json() == {"ok": True, "user": {"username": "admin"}}


def test_login_sets_development_session(client):
    response = client.post("/admin/login", json={"username": "admin", "password": "s3cret-pass"})

    assert response.status_code == 200
    assert "session" in response.cookies


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"username": "admin"},
        {"username": "", "password": "x"},
        {"username": 123, "password": "s3cret-pass"},
    ],
)
def test_login_requires_both_fields(client, payload):
    response = client.post("/admin/login", json=payload)

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Логин и пароль обязательны"}


def test_login_with_wrong_password(client):
    response = client.post("/admin/login", json={"username": "admin", "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Неверный логин или пароль"}


@pytest.mark.parametrize("method, path", ADMIN_ROUTES)
def test_admin_routes_require_token(client, method, path):
    response = call(client, method, path)

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Токен доступа отсутствует"}


@pytest.mark.parametrize("method, path", ADMIN_ROUTES)
def test_admin_routes_reject_foreign_secret(client, make_settings, method, path):
    token = create_access_token(make_settings(JWT_SECRET="another-secret"))

    response = call(client, method, path, {"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.json() == {"ok": False, "error": "Недействительный токен"}


@pytest.mark.parametrize("method, path", ADMIN_ROUTES)
def test_admin_routes_reject_other_username(client, make_settings, method, path):
    token = create_access_token(make_settings(ADMIN_USERNAME="intruder"))

    response = call(client, method, path, {"Authorization": f"Bearer {token}"})

    assert response.status_code == 403


def test_verify_without_token(client):
    response = client.post("/admin/verify")

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Токен отсутствует"}


def test_admin_route_accepts_valid_token(client, auth_headers):
    assert client.get("/admin/contacts", headers=auth_headers).status_code == 200
