# -*- coding: utf-8 -*-
"""
Pydantic схемы для аутентификации администратора.
"""

from typing import Any

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """
    Запрос на вход по логину/паролю.

    Пустые значения проверяются в роутере, чтобы вернуть
    понятное сообщение вместо ошибки схемы.
    """
    username: Any = Field("", description="Логин")
    password: Any = Field("", description="Пароль")


class AdminUserInfo(BaseModel):
    """Данные администратора в ответах API."""
    username: str


class LoginResponse(BaseModel):
    """Ответ на успешный вход."""
    ok: bool = True
    token: str = Field(..., description="JWT токен")
    user: AdminUserInfo


class VerifyResponse(BaseModel):
    """Ответ на проверку токена."""
    ok: bool = True
    user: AdminUserInfo
