# -*- coding: utf-8 -*-
"""
Модуль аутентификации администратора.

Содержит:
- jwt: Генерация и валидация JWT токенов, проверка логина/пароля
- dependencies: FastAPI зависимости для авторизации
"""

from vxschool.auth.jwt import (
    create_access_token,
    verify_token,
    verify_credentials,
    hash_password,
)
from vxschool.auth.dependencies import (
    CurrentAdmin,
    require_admin,
    verify_admin_token,
)

__all__ = [
    # JWT
    "create_access_token",
    "verify_token",
    "verify_credentials",
    "hash_password",
    # Dependencies
    "CurrentAdmin",
    "require_admin",
    "verify_admin_token",
]
