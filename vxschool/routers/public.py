# -*- coding: utf-8 -*-
"""
Публичные эндпоинты сайта.

Эндпоинты:
- POST /contact - Заявка с формы обратной связи
- GET /api/settings - Публичная часть настроек (цены, скидка, доступность)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from vxschool.dependencies import (
    get_admin_url,
    get_contact_service,
    get_store,
    limit_contact_submissions,
)
from vxschool.models.contact import ContactRequest, ContactResult
from vxschool.models.settings import PublicSettings, SiteSettings
from vxschool.services.contacts import ContactService, ContactValidationError
from vxschool.storage import DocumentKind, FileStore, StorageError
from vxschool.utils.security import get_client_ip

router = APIRouter()
logger = logging.getLogger("vxschool.routers.public")


@router.post(
    "/contact",
    response_model=ContactResult,
    dependencies=[Depends(limit_contact_submissions)],
)
async def submit_contact(
    request: Request,
    data: ContactRequest,
    service: ContactService = Depends(get_contact_service),
):
    """
    Приём заявки.

    Ошибки проверки возвращаются с текстом для посетителя (400).
    Сбой уведомлений на ответ не влияет.
    """
    try:
        await service.submit(data, ip=get_client_ip(request), admin_url=get_admin_url(request))
    except ContactValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except StorageError as e:
        logger.error(f"Не удалось сохранить заявку: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Произошла техническая ошибка. Попробуйте отправить заявку через несколько минут.",
        )

    return ContactResult(ok=True)


@router.get("/api/settings", response_model=PublicSettings)
async def get_public_settings(store: FileStore = Depends(get_store)):
    """Настройки для отображения на сайте, без контактов и служебных полей."""
    try:
        document = await store.load(DocumentKind.SETTINGS)
    except StorageError as e:
        logger.error(f"Ошибка загрузки публичных настроек: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка загрузки настроек",
        )

    # Файл мог быть отредактирован вручную, поэтому читаем без strict
    return SiteSettings.model_validate(document, strict=False).to_public()
