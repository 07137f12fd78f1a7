"""Pytest fixtures for the VX School app."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from vxschool.auth.jwt import create_access_token
from vxschool.config import AppSettings
from vxschool.main import create_app
from vxschool.services.notifications import NotificationSink, TelegramNotifier
from vxschool.storage import FileStore

START = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable UTC clock shared by services and limiters."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeSink(NotificationSink):
    """Collects notifications instead of sending them."""

    name = "fake"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent = []

    async def notify_contact(self, contact, admin_url):
        if self.fail:
            raise RuntimeError("sink is down")
        self.sent.append((contact, admin_url))


def make_fake_bot() -> SimpleNamespace:
    return SimpleNamespace(
        send_message=AsyncMock(),
        edit_message_text=AsyncMock(),
        edit_message_reply_markup=AsyncMock(),
        session=SimpleNamespace(close=AsyncMock()),
    )


def read_document(settings: AppSettings, name: str):
    return json.loads((Path(settings.DATA_DIR) / f"{name}.json").read_text(encoding="utf-8"))


def write_document(settings: AppSettings, name: str, document) -> None:
    path = Path(settings.DATA_DIR) / f"{name}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")


@pytest.fixture
def make_settings(tmp_path):
    def factory(**overrides) -> AppSettings:
        values = {
            "ADMIN_USERNAME": "admin",
            "ADMIN_PASSWORD": "s3cret-pass",
            "JWT_SECRET": "jwt-secret-for-tests",
            "ADMIN_SESSION_SECRET": "session-secret-for-tests",
            "DEVELOPMENT": True,
            "DATA_DIR": str(tmp_path / "data"),
            "PUBLIC_DIR": str(tmp_path / "public"),
            "LOG_DIR": str(tmp_path / "logs"),
        }
        values.update(overrides)
        return AppSettings(_env_file=None, **values)

    return factory


@pytest.fixture
def settings(make_settings) -> AppSettings:
    return make_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def store(settings) -> FileStore:
    return FileStore(settings.DATA_DIR)


@pytest.fixture
def make_client(make_settings, clock, sink):
    def factory(sinks=None, **overrides) -> TestClient:
        app = create_app(
            make_settings(**overrides),
            sinks=[sink] if sinks is None else sinks,
            clock=clock,
        )
        return TestClient(app)

    return factory


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def fake_bot() -> SimpleNamespace:
    return make_fake_bot()


@pytest.fixture
def telegram(fake_bot) -> TelegramNotifier:
    return TelegramNotifier("123456:TEST", "-100500", bot=fake_bot)


@pytest.fixture
def auth_headers(settings) -> dict:
    return {"Authorization": f"Bearer {create_access_token(settings)}"}


@pytest.fixture
def valid_contact() -> dict:
    return {
        "name": "Анна Петрова",
        "telegram": "@anna_petrova",
        "message": "Хочу записаться на курс битмейкинга",
        "tariff": "Групповой",
    }
