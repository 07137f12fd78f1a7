"""Tests for contact validation, submission and notifications."""

import re

import pytest
from conftest import FakeSink, read_document

from vxschool.models.contact import ContactRequest
from vxschool.services.contacts import (
    ContactNotFoundError,
    ContactService,
    ContactValidationError,
    generate_contact_id,
    to_base36,
    validate_contact,
)
from vxschool.storage import DocumentKind, DocumentWriteError

VALID = {
    "name": "Анна Петрова",
    "telegram": "@anna_petrova",
    "message": "Хочу записаться на курс битмейкинга",
    "tariff": "Групповой",
}


def payload(**overrides) -> ContactRequest:
    return ContactRequest(**{**VALID, **overrides})


# ─────────────────────────────── Validation ──────────────────────────────────


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "Пожалуйста, укажите ваше имя."),
        ({"name": "   "}, "Пожалуйста, укажите ваше имя."),
        ({"name": 42}, "Пожалуйста, укажите ваше имя."),
        ({"telegram": ""}, "Пожалуйста, укажите ваш Telegram."),
        ({"name": "А"}, "Имя должно содержать от 2 до 50 символов и состоять только из букв."),
        ({"name": "Anna2"}, "Имя должно содержать от 2 до 50 символов и состоять только из букв."),
        ({"name": "<b>Anna</b>"}, "Имя должно содержать от 2 до 50 символов и состоять только из букв."),
        ({"name": "a" * 51}, "Имя должно содержать от 2 до 50 символов и состоять только из букв."),
        (
            {"telegram": "@abcd"},
            "Telegram username должен содержать от 5 до 32 символов (буквы, цифры, подчеркивания).",
        ),
        (
            {"telegram": "anna-petrova"},
            "Telegram username должен содержать от 5 до 32 символов (буквы, цифры, подчеркивания).",
        ),
        (
            {"telegram": "a" * 33},
            "Telegram username должен содержать от 5 до 32 символов (буквы, цифры, подчеркивания).",
        ),
        ({"message": "коротко"}, "Сообщение слишком короткое. Напишите хотя бы 10 символов."),
        ({"tariff": "Премиум"}, "Выберите корректный тариф из списка."),
    ],
)
def test_validation_messages(overrides, message):
    with pytest.raises(ContactValidationError) as exc_info:
        validate_contact(payload(**overrides))
    assert exc_info.value.message == message


def test_first_failure_wins():
    with pytest.raises(ContactValidationError) as exc_info:
        validate_contact(payload(name="", telegram="", tariff="Премиум"))
    assert exc_info.value.message == "Пожалуйста, укажите ваше имя."


@pytest.mark.parametrize("handle", ["anna_petrova", "@anna_petrova", "  @anna_petrova  ", "a" * 32, "@" + "a" * 32])
def test_telegram_handle_with_or_without_at(handle):
    assert validate_contact(payload(telegram=handle)).telegram == handle.strip()


def test_boundary_lengths_accepted():
    fields = validate_contact(payload(name="Ян", message="1234567890", telegram="abcde"))
    assert fields.name == "Ян"

    fields = validate_contact(payload(name="a" * 50, message="x" * 1000))
    assert len(fields.message) == 1000


def test_overlong_message_is_capped():
    fields = validate_contact(payload(message="x" * 1001))
    assert len(fields.message) == 1000


def test_optional_fields_may_be_missing():
    fields = validate_contact(ContactRequest(name="Anna O'Neil", telegram="anna_oneil"))
    assert fields.message == ""
    assert fields.tariff is None


def test_fields_are_trimmed():
    fields = validate_contact(payload(name="  Анна  ", message="  Хочу на курс, спасибо  "))
    assert fields.name == "Анна"
    assert fields.message == "Хочу на курс, спасибо"


# ─────────────────────────────── Ids ─────────────────────────────────────────


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"


def test_ids_in_same_millisecond_differ(clock):
    ids = {generate_contact_id(clock()) for _ in range(50)}
    assert len(ids) == 50
    assert all(i.startswith(to_base36(int(clock().timestamp() * 1000))) for i in ids)


# ─────────────────────────────── Service ─────────────────────────────────────


async def test_submit_stores_contact_and_notifies(store, clock, sink):
    service = ContactService(store, [sink], clock=clock)

    contact = await service.submit(payload(), ip="1.2.3.4", admin_url="https://vx.school/admin/")

    stored = await store.load(DocumentKind.CONTACTS)
    assert stored == [contact.to_document()]
    assert stored[0]["createdAt"] == "2026-10-19T12:00:00.000Z"
    assert stored[0]["ip"] == "1.2.3.4"
    assert "status" not in stored[0]
    assert sink.sent == [(contact, "https://vx.school/admin/")]


async def test_failed_sink_does_not_fail_submission(store, clock):
    broken, healthy = FakeSink(fail=True), FakeSink()
    service = ContactService(store, [broken, healthy], clock=clock)

    contact = await service.submit(payload(), ip="1.2.3.4", admin_url="")

    assert len(await store.load(DocumentKind.CONTACTS)) == 1
    assert healthy.sent == [(contact, "")]


async def test_invalid_submission_is_not_stored(store, clock, sink):
    service = ContactService(store, [sink], clock=clock)

    with pytest.raises(ContactValidationError):
        await service.submit(payload(name=""), ip="1.2.3.4", admin_url="")

    assert await store.load(DocumentKind.CONTACTS) == []
    assert sink.sent == []


async def test_list_contacts_newest_first(store, clock):
    service = ContactService(store, clock=clock)
    first = await service.submit(payload(), ip="1.1.1.1", admin_url="")
    clock.advance(minutes=5)
    second = await service.submit(payload(), ip="2.2.2.2", admin_url="")

    assert [c["id"] for c in await service.list_contacts()] == [second.id, first.id]


async def test_delete_unknown_contact(store, clock):
    service = ContactService(store, clock=clock)
    with pytest.raises(ContactNotFoundError):
        await service.delete_contact("missing")


async def test_mark_processed(store, clock):
    service = ContactService(store, clock=clock)
    contact = await service.submit(payload(), ip="1.1.1.1", admin_url="")
    clock.advance(hours=1)

    assert await service.mark_processed(contact.id)
    assert not await service.mark_processed("missing")

    stored = (await store.load(DocumentKind.CONTACTS))[0]
    assert stored["status"] == "processed"
    assert stored["processedAt"] == "2026-10-19T13:00:00.000Z"


async def test_mark_spam_moves_contact(store, clock):
    service = ContactService(store, clock=clock)
    keep = await service.submit(payload(), ip="1.1.1.1", admin_url="")
    spam = await service.submit(payload(name="Spam Bot"), ip="6.6.6.6", admin_url="")

    assert await service.mark_spam(spam.id)
    assert not await service.mark_spam("missing")

    assert [c["id"] for c in await store.load(DocumentKind.CONTACTS)] == [keep.id]
    spam_docs = await store.load(DocumentKind.SPAM_CONTACTS)
    assert [c["id"] for c in spam_docs] == [spam.id]
    assert spam_docs[0]["status"] == "spam"


def fail_writes_of(store, monkeypatch, failing_kind):
    real_write = store._write

    def write(kind, document):
        if kind is failing_kind:
            raise DocumentWriteError(kind, "диск заполнен")
        real_write(kind, document)

    monkeypatch.setattr(store, "_write", write)


async def test_mark_spam_keeps_contact_when_contacts_write_fails(store, clock, monkeypatch):
    service = ContactService(store, clock=clock)
    contact = await service.submit(payload(), ip="6.6.6.6", admin_url="")
    fail_writes_of(store, monkeypatch, DocumentKind.CONTACTS)

    with pytest.raises(DocumentWriteError):
        await service.mark_spam(contact.id)

    assert [c["id"] for c in await store.load(DocumentKind.CONTACTS)] == [contact.id]
    assert await store.load(DocumentKind.SPAM_CONTACTS) == []


async def test_mark_spam_propagates_failed_spam_write(store, clock, monkeypatch):
    service = ContactService(store, clock=clock)
    contact = await service.submit(payload(), ip="6.6.6.6", admin_url="")
    fail_writes_of(store, monkeypatch, DocumentKind.SPAM_CONTACTS)

    with pytest.raises(DocumentWriteError):
        await service.mark_spam(contact.id)

    assert await store.load(DocumentKind.CONTACTS) == []


def test_count_recent(store, clock):
    service = ContactService(store, clock=clock)
    contacts = [
        {"createdAt": "2026-10-19T01:00:00.000Z"},
        {"createdAt": "2026-10-15T12:00:00.000Z"},
        {"createdAt": "2026-10-01T12:00:00.000Z"},
        {"createdAt": "broken"},
    ]
    assert service.count_recent(contacts) == (1, 2)


# ─────────────────────────────── Endpoint ────────────────────────────────────


def test_contact_endpoint_accepts_valid_submission(client, settings, sink, valid_contact):
    response = client.post("/contact", json=valid_contact)

    assert response.status_code == 200
    assert response.json() == {"ok": True}

    stored = read_document(settings, "contacts")
    assert len(stored) == 1
    assert stored[0]["name"] == "Анна Петрова"
    assert stored[0]["ip"] == "testclient"
    assert re.fullmatch(r"[0-9a-z]+", stored[0]["id"])

    contact, admin_url = sink.sent[0]
    assert contact.id == stored[0]["id"]
    assert admin_url == "https://testserver/admin/"


def test_contact_endpoint_uses_site_url_for_admin_link(make_client, sink, valid_contact):
    client = make_client(SITE_URL="https://vxschool.ru/")
    client.post("/contact", json=valid_contact)

    assert sink.sent[0][1] == "https://vxschool.ru/admin/"


def test_contact_endpoint_reports_validation_error(client, auth_headers, valid_contact):
    response = client.post("/contact", json={**valid_contact, "tariff": "Премиум"})

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Выберите корректный тариф из списка."}
    assert client.get("/admin/contacts", headers=auth_headers).json() == []


def test_contact_endpoint_survives_broken_sink(make_client, settings, valid_contact):
    client = make_client(sinks=[FakeSink(fail=True)])

    response = client.post("/contact", json=valid_contact)

    assert response.status_code == 200
    assert len(read_document(settings, "contacts")) == 1


def test_contact_ip_taken_from_proxy_header(client, settings, valid_contact):
    client.post("/contact", json=valid_contact, headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"})

    assert read_document(settings, "contacts")[0]["ip"] == "10.0.0.1"
