# -*- coding: utf-8 -*-
"""
JWT токены и проверка учётных данных администратора.

Реализует:
- Генерация access токена (24 часа по умолчанию)
- Валидация токена (подпись, срок, имя администратора)
- Проверка логина/пароля без раннего выхода
- Хэширование пароля (PBKDF2-SHA256) для ADMIN_PASSWORD
"""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from vxschool.config import AppSettings

ROLE_ADMIN = "admin"

# Префикс хэша passlib; по нему отличаем хэш от пароля в открытом виде
PBKDF2_PREFIX = "$pbkdf2-sha256$"

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__default_rounds=310_000,
)


def hash_password(password: str) -> str:
    """
    Хэширует пароль для ADMIN_PASSWORD.

    Args:
        password: Пароль в открытом виде

    Returns:
        Хэш вида $pbkdf2-sha256$...
    """
    return pwd_context.hash(password)


def _constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def _password_matches(password: str, configured: str) -> bool:
    if configured.startswith(PBKDF2_PREFIX):
        try:
            return pwd_context.verify(password, configured)
        except ValueError:
            return False
    return _constant_time_equals(password, configured)


def verify_credentials(username: str, password: str, settings: AppSettings) -> bool:
    """
    Проверяет логин и пароль администратора.

    Обе проверки выполняются всегда, независимо друг от друга,
    чтобы время ответа не выдавало, какое из полей неверно.
    """
    username_match = _constant_time_equals(username, settings.ADMIN_USERNAME)
    password_match = _password_matches(password, settings.ADMIN_PASSWORD)
    return username_match and password_match


def create_access_token(
    settings: AppSettings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Создаёт JWT access token администратора.

    Args:
        settings: Настройки приложения (секрет, алгоритм, срок)
        expires_delta: Время жизни токена (по умолчанию JWT_EXPIRE_HOURS)

    Returns:
        JWT access token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.JWT_EXPIRE_HOURS))

    to_encode = {
        "username": settings.ADMIN_USERNAME,
        "role": ROLE_ADMIN,
        "iat": now,
        "exp": expire,
    }

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str, settings: AppSettings) -> Optional[dict[str, Any]]:
    """
    Проверяет и декодирует JWT токен.

    Помимо подписи и срока действия сверяет имя пользователя в токене
    с текущим ADMIN_USERNAME: токены, выданные другому имени
    (например, до смены логина), не принимаются.

    Returns:
        Декодированные данные токена или None если токен невалидный
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None

    username = payload.get("username")
    if not isinstance(username, str) or not _constant_time_equals(username, settings.ADMIN_USERNAME):
        return None

    return payload
