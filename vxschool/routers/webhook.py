# -*- coding: utf-8 -*-
"""
Webhook Telegram-бота: обработка кнопок под уведомлениями о заявках.

Эндпоинты:
- POST /webhook/telegram - Update от Bot API
"""

import hmac
import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status

from vxschool.config import AppSettings
from vxschool.dependencies import get_admin_url, get_app_settings, get_contact_service, get_telegram
from vxschool.services.contacts import ContactService
from vxschool.services.notifications import (
    CALLBACK_PROCESSED_PREFIX,
    CALLBACK_SPAM_PREFIX,
    CALLBACK_VIEW_CONTACTS,
    TelegramNotifier,
)
from vxschool.utils.security import get_client_ip

router = APIRouter()
logger = logging.getLogger("vxschool.routers.webhook")


def _check_secret(settings: AppSettings, received: Optional[str]) -> bool:
    """
    Проверяет заголовок X-Telegram-Bot-Api-Secret-Token.

    Без настроенного секрета webhook открыт только в режиме разработки.
    """
    if not settings.TELEGRAM_WEBHOOK_SECRET:
        return settings.DEVELOPMENT
    return hmac.compare_digest(
        (received or "").encode("utf-8"),
        settings.TELEGRAM_WEBHOOK_SECRET.encode("utf-8"),
    )


async def handle_callback(
    callback_data: str,
    chat_id: int,
    message_id: int,
    telegram: TelegramNotifier,
    service: ContactService,
    admin_url: str,
) -> None:
    """Выполняет действие кнопки и обновляет сообщение в чате."""
    if callback_data == CALLBACK_VIEW_CONTACTS:
        contacts = await service.list_contacts()
        await telegram.show_contacts_summary(chat_id, message_id, contacts, admin_url)

    elif callback_data.startswith(CALLBACK_PROCESSED_PREFIX):
        contact_id = callback_data[len(CALLBACK_PROCESSED_PREFIX):]
        if not await service.mark_processed(contact_id):
            logger.warning(f"Заявка {contact_id} не найдена (processed)")
        await telegram.replace_keyboard(chat_id, message_id, "✅ Заявка обработана", "processed")

    elif callback_data.startswith(CALLBACK_SPAM_PREFIX):
        contact_id = callback_data[len(CALLBACK_SPAM_PREFIX):]
        if not await service.mark_spam(contact_id):
            logger.warning(f"Заявка {contact_id} не найдена (spam)")
        await telegram.replace_keyboard(chat_id, message_id, "🗑️ Помечено как спам", "spam")


@router.post("/telegram")
async def telegram_webhook(
    request: Request,
    update: dict[str, Any] = Body(default_factory=dict),
    secret_token: Optional[str] = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
    settings: AppSettings = Depends(get_app_settings),
    telegram: Optional[TelegramNotifier] = Depends(get_telegram),
    service: ContactService = Depends(get_contact_service),
):
    """
    Принимает Update от Telegram.

    Всегда отвечает {"ok": true}, чтобы Telegram не повторял доставку;
    ошибки обработки только логируются.
    """
    if not _check_secret(settings, secret_token):
        if settings.TELEGRAM_WEBHOOK_SECRET:
            logger.warning(f"Webhook Telegram с неверным секретом, IP: {get_client_ip(request)}")
        else:
            logger.warning("Webhook Telegram отклонён: TELEGRAM_WEBHOOK_SECRET не задан")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Доступ запрещен")

    callback = update.get("callback_query")
    if telegram is None or not isinstance(callback, dict):
        return {"ok": True}

    try:
        callback_data = str(callback.get("data") or "")
        message = callback["message"]
        chat_id = message["chat"]["id"]
        message_id = message["message_id"]
    except (KeyError, TypeError):
        logger.warning("Webhook Telegram: callback_query без сообщения")
        return {"ok": True}

    try:
        await handle_callback(
            callback_data,
            chat_id,
            message_id,
            telegram,
            service,
            get_admin_url(request),
        )
    except Exception as e:
        logger.error(f"Ошибка обработки webhook Telegram ({callback_data}): {e}")

    return {"ok": True}
