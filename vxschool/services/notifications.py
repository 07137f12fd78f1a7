"""
Уведомления о новых заявках.

Каждый канал реализует NotificationSink:
- TelegramNotifier - сообщение в чат через Bot API (aiogram) с кнопками
- WebhookNotifier - JSON POST на произвольный URL (httpx)

Ошибки каналов обрабатывает ContactService: они логируются
и не влияют на ответ посетителю.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from aiogram import Bot
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from vxschool.config import AppSettings
from vxschool.models.contact import Contact
from vxschool.utils.security import escape_html

logger = logging.getLogger("vxschool.notifications")

try:
    MSK = ZoneInfo("Europe/Moscow")
except ZoneInfoNotFoundError:
    # Fallback для окружений без tzdata (Windows). Смещение +3.
    MSK = timezone(timedelta(hours=3))

# callback_data кнопок под уведомлением
CALLBACK_VIEW_CONTACTS = "view_contacts"
CALLBACK_PROCESSED_PREFIX = "mark_processed_"
CALLBACK_SPAM_PREFIX = "mark_spam_"


def parse_timestamp(value: str) -> Optional[datetime]:
    """Разбирает createdAt заявки (ISO 8601, допускается суффикс Z)."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_msk(value: str) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return value
    return parsed.astimezone(MSK).strftime("%d.%m.%Y, %H:%M:%S")


def format_contact_message(contact: Contact) -> str:
    """Текст уведомления о заявке (parse_mode=HTML)."""
    lines = [
        "🎵 <b>Новая заявка VX School</b>",
        "",
        f"👤 <b>Имя:</b> {escape_html(contact.name)}",
        f"📱 <b>Telegram:</b> {escape_html(contact.telegram)}",
    ]
    if contact.tariff:
        lines.append(f"📋 <b>Тариф:</b> {escape_html(contact.tariff)}")
    if contact.message:
        lines += ["", "💬 <b>Сообщение:</b>", f"<i>{escape_html(contact.message)}</i>"]
    lines += [
        "",
        f"🌐 <b>IP:</b> <code>{escape_html(contact.ip)}</code>",
        f"⏰ <b>Время:</b> {format_msk(contact.created_at)}",
        "",
        f"<b>ID заявки:</b> <code>{escape_html(contact.id)}</code>",
    ]
    return "\n".join(lines)


def build_contact_keyboard(contact: Contact, admin_url: str) -> InlineKeyboardMarkup:
    """Кнопки быстрых действий под уведомлением."""
    handle = contact.telegram.lstrip("@")
    rows = [
        [InlineKeyboardButton(text="💬 Написать в Telegram", url=f"https://t.me/{handle}")],
    ]

    second_row = [InlineKeyboardButton(text="📋 Все заявки", callback_data=CALLBACK_VIEW_CONTACTS)]
    # Telegram принимает в кнопках только публичные https-ссылки
    if admin_url.startswith("https://"):
        second_row.insert(0, InlineKeyboardButton(text="📊 Админ панель", url=admin_url))
    rows.append(second_row)

    rows.append([
        InlineKeyboardButton(text="✅ Обработано", callback_data=f"{CALLBACK_PROCESSED_PREFIX}{contact.id}"),
        InlineKeyboardButton(text="❌ Спам", callback_data=f"{CALLBACK_SPAM_PREFIX}{contact.id}"),
    ])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def format_contacts_summary(contacts: List[dict], now: Optional[datetime] = None) -> str:
    """Сводка по заявкам для кнопки «Все заявки»."""
    now = now or datetime.now(timezone.utc)
    today = now.astimezone(MSK).date()
    week_ago = now - timedelta(days=7)

    today_count = 0
    week_count = 0
    for contact in contacts:
        created = parse_timestamp(contact.get("createdAt", ""))
        if created is None:
            continue
        if created.astimezone(MSK).date() == today:
            today_count += 1
        if created >= week_ago:
            week_count += 1

    latest = sorted(contacts, key=lambda c: c.get("createdAt", ""), reverse=True)[:5]
    latest_lines = [
        f"• {escape_html(c.get('name', ''))} (@{escape_html(str(c.get('telegram', '')).lstrip('@'))})"
        f" - {escape_html(c.get('tariff') or 'Без тарифа')}"
        for c in latest
    ]

    return "\n".join([
        "📊 <b>Статистика заявок</b>",
        "",
        f"📅 <b>Сегодня:</b> {today_count}",
        f"📈 <b>За неделю:</b> {week_count}",
        f"📋 <b>Всего:</b> {len(contacts)}",
        "",
        "<b>Последние 5 заявок:</b>",
        *latest_lines,
    ])


class NotificationSink(ABC):
    """Канал уведомлений о заявках."""

    name = "sink"

    @abstractmethod
    async def notify_contact(self, contact: Contact, admin_url: str) -> None:
        """Отправляет уведомление о новой заявке."""

    async def close(self) -> None:
        return None


class TelegramNotifier(NotificationSink):
    """
    Уведомления в Telegram-чат администраторов.

    Кроме отправки заявок умеет редактировать сообщения,
    это нужно обработчику кнопок (POST /webhook/telegram).
    """

    name = "telegram"

    def __init__(self, bot_token: str, chat_id: str, bot: Optional[Bot] = None) -> None:
        self.chat_id = chat_id
        self.bot = bot or Bot(token=bot_token)

    async def notify_contact(self, contact: Contact, admin_url: str) -> None:
        await self.bot.send_message(
            chat_id=self.chat_id,
            text=format_contact_message(contact),
            parse_mode="HTML",
            reply_markup=build_contact_keyboard(contact, admin_url),
        )

    async def show_contacts_summary(
        self,
        chat_id: int,
        message_id: int,
        contacts: List[dict],
        admin_url: str,
    ) -> None:
        keyboard = None
        if admin_url.startswith("https://"):
            keyboard = InlineKeyboardMarkup(inline_keyboard=[
                [InlineKeyboardButton(text="🔗 Открыть админ панель", url=admin_url)],
            ])
        await self.bot.edit_message_text(
            text=format_contacts_summary(contacts),
            chat_id=chat_id,
            message_id=message_id,
            parse_mode="HTML",
            reply_markup=keyboard,
        )

    async def replace_keyboard(self, chat_id: int, message_id: int, text: str, callback_data: str) -> None:
        """Заменяет кнопки под сообщением одной «статусной» кнопкой."""
        await self.bot.edit_message_reply_markup(
            chat_id=chat_id,
            message_id=message_id,
            reply_markup=InlineKeyboardMarkup(inline_keyboard=[
                [InlineKeyboardButton(text=text, callback_data=callback_data)],
            ]),
        )

    async def close(self) -> None:
        await self.bot.session.close()


class WebhookNotifier(NotificationSink):
    """JSON POST на внешний URL (CRM, Slack-совместимые хуки и т.п.)."""

    name = "webhook"

    def __init__(self, url: str) -> None:
        self.url = url

    async def notify_contact(self, contact: Contact, admin_url: str) -> None:
        payload = {
            "event": "contact.created",
            "contact": contact.to_document(),
            "adminUrl": admin_url,
        }
        async with httpx.AsyncClient() as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()


def build_notifiers(settings: AppSettings) -> List[NotificationSink]:
    """Создаёт каналы уведомлений по настройкам."""
    sinks: List[NotificationSink] = []
    if settings.telegram_enabled:
        sinks.append(TelegramNotifier(settings.TELEGRAM_BOT_TOKEN, settings.TELEGRAM_CHAT_ID))
    if settings.NOTIFY_WEBHOOK_URL:
        sinks.append(WebhookNotifier(settings.NOTIFY_WEBHOOK_URL))

    if not sinks:
        logger.warning("Уведомления о заявках отключены: не настроен ни один канал")
    return sinks


def find_telegram(sinks: Iterable[NotificationSink]) -> Optional[TelegramNotifier]:
    return next((s for s in sinks if isinstance(s, TelegramNotifier)), None)
