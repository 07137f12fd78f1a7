"""
Заявки с сайта: валидация, сохранение, уведомления, операции админки.
"""

from __future__ import annotations

import json
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from vxschool.models.contact import TARIFFS, Contact, ContactRequest
from vxschool.services.notifications import NotificationSink, parse_timestamp
from vxschool.storage import DocumentKind, FileStore, StorageError
from vxschool.utils.security import sanitize_input

logger = logging.getLogger("vxschool.contacts")

NAME_PATTERN = re.compile(r"^[a-zA-Zа-яА-ЯёЁ\s\-']+$")
TELEGRAM_PATTERN = re.compile(r"^@?[a-zA-Z0-9_]{5,32}$")

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
MESSAGE_MIN_LENGTH = 10
MESSAGE_MAX_LENGTH = 1000

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


class ContactValidationError(Exception):
    """Заявка не прошла проверку; message показывается посетителю."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ContactNotFoundError(Exception):
    """Заявка с таким ID не найдена."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_contact_id(now: datetime) -> str:
    """
    ID заявки: время в миллисекундах (base36) плюс случайный суффикс.

    Суффикс исключает совпадения у заявок, пришедших в одну миллисекунду.
    """
    millis = int(now.timestamp() * 1000)
    return f"{to_base36(millis)}{secrets.token_hex(3)}"


def format_created_at(now: datetime) -> str:
    """ISO 8601 в UTC с миллисекундами и суффиксом Z."""
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_valid_name(name: str) -> bool:
    return NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH and bool(NAME_PATTERN.match(name))


def is_valid_telegram(handle: str) -> bool:
    """Ник Telegram: первый @ отбрасывается, дальше 5-32 символа [a-zA-Z0-9_]."""
    if handle.startswith("@"):
        handle = handle[1:]
    return bool(TELEGRAM_PATTERN.match(handle))


@dataclass
class ContactFields:
    name: str
    telegram: str
    message: str
    tariff: Optional[str]


def validate_contact(payload: ContactRequest) -> ContactFields:
    """
    Проверяет заявку. Первая же ошибка прерывает проверку.

    Raises:
        ContactValidationError: с сообщением для посетителя
    """
    name = sanitize_input(payload.name)
    telegram = sanitize_input(payload.telegram)
    message = sanitize_input(payload.message)
    tariff = sanitize_input(payload.tariff)

    if not name:
        raise ContactValidationError("Пожалуйста, укажите ваше имя.")
    if not telegram:
        raise ContactValidationError("Пожалуйста, укажите ваш Telegram.")

    if not is_valid_name(name):
        raise ContactValidationError(
            "Имя должно содержать от 2 до 50 символов и состоять только из букв."
        )

    if not is_valid_telegram(telegram):
        raise ContactValidationError(
            "Telegram username должен содержать от 5 до 32 символов (буквы, цифры, подчеркивания)."
        )

    if message and len(message) < MESSAGE_MIN_LENGTH:
        raise ContactValidationError("Сообщение слишком короткое. Напишите хотя бы 10 символов.")
    if len(message) > MESSAGE_MAX_LENGTH:
        raise ContactValidationError("Сообщение слишком длинное. Максимум 1000 символов.")

    if tariff and tariff not in TARIFFS:
        raise ContactValidationError("Выберите корректный тариф из списка.")

    return ContactFields(name=name, telegram=telegram, message=message, tariff=tariff or None)


class ContactService:
    """
    Приём заявок и операции над коллекцией заявок.

    Args:
        store: Хранилище документов
        sinks: Каналы уведомлений
        clock: Текущее время (UTC), подменяется в тестах
    """

    def __init__(
        self,
        store: FileStore,
        sinks: Sequence[NotificationSink] = (),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.store = store
        self.sinks = list(sinks)
        self.clock = clock

    async def submit(self, payload: ContactRequest, ip: str, admin_url: str) -> Contact:
        """
        Проверяет, сохраняет заявку и рассылает уведомления.

        Raises:
            ContactValidationError: заявка не прошла проверку
            StorageError: не удалось сохранить заявку
        """
        fields = validate_contact(payload)
        now = self.clock()

        contact = Contact(
            id=generate_contact_id(now),
            name=fields.name,
            telegram=fields.telegram,
            message=fields.message,
            tariff=fields.tariff,
            ip=ip,
            created_at=format_created_at(now),
        )

        async with self.store.mutate(DocumentKind.CONTACTS) as contacts:
            contacts.append(contact.to_document())

        logger.info(f"Новая заявка {contact.id} от {contact.telegram}, IP: {ip}")
        await self.notify(contact, admin_url)
        return contact

    async def notify(self, contact: Contact, admin_url: str) -> None:
        """Рассылает уведомление во все каналы; ошибки только логируются."""
        for sink in self.sinks:
            try:
                await sink.notify_contact(contact, admin_url)
            except Exception as e:
                logger.error(f"Не удалось отправить уведомление ({sink.name}) о заявке {contact.id}: {e}")

    async def list_contacts(self) -> List[dict]:
        """Все заявки, новые сверху."""
        contacts = await self.store.load(DocumentKind.CONTACTS)
        return sorted(contacts, key=lambda c: c.get("createdAt", ""), reverse=True)

    async def delete_contact(self, contact_id: str) -> dict:
        """
        Удаляет одну заявку.

        Raises:
            ContactNotFoundError: если заявки нет
        """
        async with self.store.mutate(DocumentKind.CONTACTS) as contacts:
            index = next((i for i, c in enumerate(contacts) if c.get("id") == contact_id), None)
            if index is None:
                raise ContactNotFoundError(contact_id)
            deleted = contacts.pop(index)

        logger.info(f"Удалена заявка: {deleted.get('name')} ({deleted.get('telegram')})")
        return deleted

    async def clear_contacts(self) -> Path:
        """Удаляет все заявки, предварительно сохранив резервную копию."""
        backup_path = await self.store.clear(DocumentKind.CONTACTS)
        logger.info(f"Все заявки удалены. Резервная копия: {backup_path}")
        return backup_path

    async def mark_processed(self, contact_id: str) -> bool:
        """Помечает заявку обработанной. Возвращает False, если заявки нет."""
        async with self.store.mutate(DocumentKind.CONTACTS) as contacts:
            contact = next((c for c in contacts if c.get("id") == contact_id), None)
            if contact is not None:
                contact["status"] = "processed"
                contact["processedAt"] = format_created_at(self.clock())
        return contact is not None

    async def mark_spam(self, contact_id: str) -> bool:
        """
        Переносит заявку в документ спама.

        В spam_contacts заявка попадает только после успешной записи contacts.

        Возвращает False, если заявки нет.
        """
        async with self.store.mutate(DocumentKind.CONTACTS) as contacts:
            index = next((i for i, c in enumerate(contacts) if c.get("id") == contact_id), None)
            if index is None:
                return False
            spam_contact = contacts.pop(index)

        spam_contact["status"] = "spam"
        spam_contact["markedSpamAt"] = format_created_at(self.clock())
        try:
            async with self.store.mutate(DocumentKind.SPAM_CONTACTS) as spam:
                spam.append(spam_contact)
        except StorageError:
            logger.error(
                f"Заявка {contact_id} удалена, но не записана в спам: "
                f"{json.dumps(spam_contact, ensure_ascii=False)}"
            )
            raise

        logger.info(f"Заявка {contact_id} помечена как спам")
        return True

    def count_recent(self, contacts: List[dict]) -> tuple[int, int]:
        """Количество заявок за сегодня (UTC) и за последние 7 дней."""
        now = self.clock()
        today = now.astimezone(timezone.utc).date()
        week_ago = now - timedelta(days=7)

        today_count = 0
        week_count = 0
        for contact in contacts:
            created = parse_timestamp(contact.get("createdAt", ""))
            if created is None:
                continue
            if created.astimezone(timezone.utc).date() == today:
                today_count += 1
            if created >= week_ago:
                week_count += 1
        return today_count, week_count
