# -*- coding: utf-8 -*-
"""
Утилиты безопасности.

Содержит функции для:
- Санитизации пользовательского ввода
- Определения IP клиента за прокси
- Генерации ключей для rate limiting
- Маскировки данных в логах
"""

import html
import re
from typing import Any

from starlette.requests import Request

# Максимальная длина любого текстового поля формы
MAX_INPUT_LENGTH = 1000


def sanitize_input(value: Any, max_length: int = MAX_INPUT_LENGTH) -> str:
    """
    Приводит значение из формы к строке.

    - Нестроковые значения превращаются в пустую строку
    - Пробелы по краям обрезаются
    - Результат обрезается до max_length символов

    HTML здесь не экранируется: заявка хранится как есть,
    экранирование делается при выводе (см. escape_html).
    """
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def escape_html(text: str) -> str:
    """Экранирует текст для parse_mode=HTML в Telegram."""
    return html.escape(text or "", quote=False)


def get_client_ip(request: Request) -> str:
    """
    Возвращает IP клиента.

    За reverse proxy доверяем только одному хопу: берём последний адрес
    из X-Forwarded-For, который дописал наш прокси. Первые адреса
    клиент может подставить сам.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
        if hops:
            return hops[-1]
    return request.client.host if request.client else "unknown"


def rate_limit_key(prefix: str, identifier: str) -> str:
    """
    Генерирует ключ для rate limiting.

    Args:
        prefix: Префикс ключа (например, "login", "contact")
        identifier: Идентификатор (IP)

    Returns:
        Ключ для хранилища счётчиков
    """
    # Очищаем идентификатор от спецсимволов
    safe_id = re.sub(r'[^a-zA-Z0-9:._-]', '', str(identifier))
    return f"ratelimit:{prefix}:{safe_id}"


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """
    Маскирует чувствительные данные для логирования.

    Args:
        data: Данные для маскировки
        visible_chars: Количество видимых символов в начале и конце

    Returns:
        Замаскированная строка
    """
    if not data or len(data) <= visible_chars * 2:
        return "*" * len(data) if data else ""

    return f"{data[:visible_chars]}{'*' * (len(data) - visible_chars * 2)}{data[-visible_chars:]}"
