"""Tests for HTTP hardening, error mapping and static pages."""

import json

import pytest
from fastapi.testclient import TestClient

from vxschool.main import create_app


def test_security_headers(client):
    response = client.get("/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "X-XSS-Protection" in response.headers
    assert "Referrer-Policy" in response.headers
    assert "Permissions-Policy" in response.headers
    assert "default-src 'self'" in response.headers["Content-Security-Policy"]
    assert "server" not in response.headers


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "version": "1.0.0"}


def test_unknown_route(client):
    response = client.get("/no-such-page")

    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "Страница не найдена."}


def test_body_too_large(make_client, valid_contact):
    client = make_client(MAX_BODY_SIZE_KB=1)

    response = client.post("/contact", json={**valid_contact, "message": "x" * 2048})

    assert response.status_code == 413
    assert response.json() == {
        "ok": False,
        "error": "Отправленные данные слишком большие. Сократите сообщение.",
    }


def test_chunked_body_too_large(make_client, valid_contact, settings):
    client = make_client(MAX_BODY_SIZE_KB=1)
    payload = json.dumps({**valid_contact, "message": "x" * 2048}).encode("utf-8")

    def chunks():
        for start in range(0, len(payload), 512):
            yield payload[start:start + 512]

    response = client.post("/contact", content=chunks(), headers={"Content-Type": "application/json"})

    assert response.status_code == 413
    assert response.json() == {
        "ok": False,
        "error": "Отправленные данные слишком большие. Сократите сообщение.",
    }
    assert response.headers["X-Frame-Options"] == "DENY"
    assert not (settings.data_path / "contacts.json").exists()


def test_chunked_body_within_limit(make_client, valid_contact):
    client = make_client(MAX_BODY_SIZE_KB=1)
    payload = json.dumps(valid_contact).encode("utf-8")

    response = client.post(
        "/contact", content=iter([payload]), headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_malformed_json(client):
    response = client.post(
        "/contact",
        content=b"{name: broken",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {
        "ok": False,
        "error": "Ошибка в формате данных. Обновите страницу и попробуйте снова.",
    }


def test_unexpected_error_is_reported_as_500(make_settings, sink, valid_contact):
    app = create_app(make_settings(), sinks=[sink])

    async def explode(*args, **kwargs):
        raise RuntimeError("disk on fire")

    app.state.contact_service.submit = explode
    client = TestClient(app, raise_server_exceptions=False)

    response = client.post("/contact", json=valid_contact)

    assert response.status_code == 500
    assert response.json() == {
        "ok": False,
        "error": "Произошла техническая ошибка. Попробуйте отправить заявку позже.",
    }


def test_index_fallback_without_public_dir(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"name": "VX School", "version": "1.0.0"}


@pytest.fixture
def public_dir(settings):
    public = settings.public_path
    public.mkdir(parents=True)
    (public / "index.html").write_text("<h1>VX School</h1>", encoding="utf-8")
    (public / "styles.css").write_text("body { color: black; }", encoding="utf-8")
    return public


def test_static_files_cached_in_production(make_client, public_dir):
    client = make_client(DEVELOPMENT=False, TELEGRAM_BOT_TOKEN="123456:TEST", TELEGRAM_CHAT_ID="1")

    index = client.get("/")
    css = client.get("/styles.css")

    assert "VX School" in index.text
    assert index.headers["Cache-Control"] == "public, max-age=86400"
    assert css.status_code == 200
    assert css.headers["Cache-Control"] == "public, max-age=86400"


def test_static_files_not_cached_in_development(public_dir, client):
    assert client.get("/styles.css").headers["Cache-Control"] == "no-cache"


def test_missing_static_file(client, public_dir):
    response = client.get("/missing.js")

    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "Страница не найдена."}


def test_cors_disabled_by_default(client):
    response = client.get("/health", headers={"Origin": "https://evil.example"})

    assert "access-control-allow-origin" not in response.headers


def test_cors_allowed_origin(make_client):
    client = make_client(CORS_ORIGINS="https://vxschool.ru")

    response = client.get("/health", headers={"Origin": "https://vxschool.ru"})

    assert response.headers["access-control-allow-origin"] == "https://vxschool.ru"
