# -*- coding: utf-8 -*-
"""
FastAPI зависимости для авторизации в админке.

Все админские маршруты требуют заголовок Authorization: Bearer <token>.
"""

import logging
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vxschool.auth.jwt import verify_token
from vxschool.config import AppSettings
from vxschool.dependencies import get_app_settings
from vxschool.utils.security import get_client_ip

logger = logging.getLogger("vxschool.auth")

# Схема авторизации Bearer token; отсутствие токена обрабатываем сами
oauth2_scheme = HTTPBearer(auto_error=False)


class CurrentAdmin:
    """Контекст авторизованного администратора."""

    def __init__(self, token_data: dict[str, Any]):
        self.token_data = token_data

    @property
    def username(self) -> str:
        return self.token_data["username"]

    @property
    def role(self) -> str:
        return self.token_data.get("role", "admin")


def _authorize(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    settings: AppSettings,
    missing_detail: str,
) -> CurrentAdmin:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=missing_detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = verify_token(credentials.credentials, settings)
    if token_data is None:
        logger.warning(f"Недействительный токен, IP: {get_client_ip(request)}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Недействительный токен",
        )

    return CurrentAdmin(token_data)


async def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme),
    settings: AppSettings = Depends(get_app_settings),
) -> CurrentAdmin:
    """
    Проверяет JWT токен администратора.

    Raises:
        HTTPException 401: Если токен отсутствует
        HTTPException 403: Если подпись/срок неверны или токен выдан другому имени
    """
    return _authorize(request, credentials, settings, "Токен доступа отсутствует")


async def verify_admin_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme),
    settings: AppSettings = Depends(get_app_settings),
) -> CurrentAdmin:
    """То же, что require_admin, но с сообщением для POST /admin/verify."""
    return _authorize(request, credentials, settings, "Токен отсутствует")
