# -*- coding: utf-8 -*-
"""
API роутер настроек сайта (админка).

Эндпоинты:
- GET /settings - Текущий документ настроек
- POST /settings - Сохранить документ настроек целиком
- POST /toggle-discount - Включить/выключить скидку
- POST /toggle-package - Включить/выключить пакет
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from vxschool.auth.dependencies import CurrentAdmin, require_admin
from vxschool.dependencies import get_store
from vxschool.models.settings import PACKAGES, SiteSettings, TogglePackageRequest
from vxschool.storage import DocumentKind, FileStore, StorageError

router = APIRouter()
logger = logging.getLogger("vxschool.routers.settings")


@router.get("/settings")
async def get_settings(
    current_admin: CurrentAdmin = Depends(require_admin),
    store: FileStore = Depends(get_store),
):
    """Документ настроек в том виде, в каком он сохранён."""
    try:
        return await store.load(DocumentKind.SETTINGS)
    except StorageError as e:
        logger.error(f"Ошибка загрузки настроек: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка загрузки настроек",
        )


@router.post("/settings")
async def save_settings(
    data: SiteSettings,
    current_admin: CurrentAdmin = Depends(require_admin),
    store: FileStore = Depends(get_store),
):
    """
    Сохраняет документ настроек целиком.

    Типы полей проверяются схемой SiteSettings строго, без приведения
    ("25" не превращается в 25). Неизвестные поля отбрасываются.
    """
    document = data.model_dump(mode="json", by_alias=True, exclude_unset=True)
    try:
        await store.save(DocumentKind.SETTINGS, document)
    except StorageError as e:
        logger.error(f"Ошибка сохранения настроек: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка сохранения настроек",
        )

    logger.info(f"Настройки обновлены администратором {current_admin.username}")
    return document


@router.post("/toggle-discount")
async def toggle_discount(
    current_admin: CurrentAdmin = Depends(require_admin),
    store: FileStore = Depends(get_store),
):
    """Переключает discountEnabled."""
    try:
        async with store.mutate(DocumentKind.SETTINGS) as settings:
            settings["discountEnabled"] = not settings.get("discountEnabled", False)
            enabled = settings["discountEnabled"]
    except StorageError as e:
        logger.error(f"Ошибка переключения скидки: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка переключения скидки",
        )

    logger.info(f"Скидка {'включена' if enabled else 'выключена'} ({current_admin.username})")
    return {"ok": True, "discountEnabled": enabled}


@router.post("/toggle-package")
async def toggle_package(
    data: Optional[TogglePackageRequest] = None,
    current_admin: CurrentAdmin = Depends(require_admin),
    store: FileStore = Depends(get_store),
):
    """Переключает доступность пакета (basic, group, individual, consultation)."""
    package = data.package if data else None
    if package not in PACKAGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Неизвестный пакет",
        )

    key = f"{package}Available"
    try:
        async with store.mutate(DocumentKind.SETTINGS) as settings:
            settings[key] = not settings.get(key, True)
            available = settings[key]
    except StorageError as e:
        logger.error(f"Ошибка переключения пакета {package}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка переключения пакета",
        )

    return {"ok": True, key: available}
