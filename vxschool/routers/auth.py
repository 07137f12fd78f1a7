# -*- coding: utf-8 -*-
"""
API роутер аутентификации администратора.

Эндпоинты:
- POST /login - Вход по логину/паролю
- POST /verify - Проверка токена
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from vxschool.auth.dependencies import CurrentAdmin, verify_admin_token
from vxschool.auth.jwt import create_access_token, verify_credentials
from vxschool.config import AppSettings
from vxschool.dependencies import get_app_settings, limit_login_attempts
from vxschool.models.auth import AdminUserInfo, LoginRequest, LoginResponse, VerifyResponse
from vxschool.utils.security import get_client_ip, mask_sensitive_data

router = APIRouter()
logger = logging.getLogger("vxschool.routers.auth")


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(limit_login_attempts)],
)
async def login(
    request: Request,
    data: LoginRequest,
    settings: AppSettings = Depends(get_app_settings),
):
    """
    Вход по логину и паролю.

    Возвращает JWT токен на JWT_EXPIRE_HOURS часов.
    """
    ip = get_client_ip(request)

    if not isinstance(data.username, str) or not isinstance(data.password, str) \
            or not data.username or not data.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Логин и пароль обязательны",
        )

    if not verify_credentials(data.username, data.password, settings):
        logger.warning(
            f"Неудачная попытка входа, IP: {ip}, логин: {mask_sensitive_data(data.username[:50], 2)}"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный логин или пароль",
        )

    token = create_access_token(settings)

    # Cookie-сессия подключается только в режиме разработки
    if "session" in request.scope:
        request.session["admin_user"] = {"username": settings.ADMIN_USERNAME}

    logger.info(f"Успешный вход администратора, IP: {ip}")

    return LoginResponse(
        token=token,
        user=AdminUserInfo(username=settings.ADMIN_USERNAME),
    )


@router.post("/verify", response_model=VerifyResponse)
async def verify(current_admin: CurrentAdmin = Depends(verify_admin_token)):
    """Проверка, что токен ещё действителен."""
    return VerifyResponse(user=AdminUserInfo(username=current_admin.username))
