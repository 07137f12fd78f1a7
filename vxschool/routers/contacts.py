# -*- coding: utf-8 -*-
"""
API роутер заявок (админка).

Эндпоинты:
- GET /contacts - Все заявки, новые сверху
- DELETE /contacts/clear - Удалить все заявки (с резервной копией)
- DELETE /contacts/{id} - Удалить заявку
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from vxschool.auth.dependencies import CurrentAdmin, require_admin
from vxschool.dependencies import get_contact_service
from vxschool.services.contacts import ContactNotFoundError, ContactService
from vxschool.storage import StorageError

router = APIRouter()
logger = logging.getLogger("vxschool.routers.contacts")


@router.get("/contacts")
async def list_contacts(
    current_admin: CurrentAdmin = Depends(require_admin),
    service: ContactService = Depends(get_contact_service),
):
    """Список заявок, отсортированный по createdAt (новые сверху)."""
    try:
        return await service.list_contacts()
    except StorageError as e:
        logger.error(f"Ошибка загрузки заявок: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка загрузки контактов",
        )


# Объявлен раньше /contacts/{contact_id}, иначе "clear" попадёт в contact_id
@router.delete("/contacts/clear")
async def clear_contacts(
    current_admin: CurrentAdmin = Depends(require_admin),
    service: ContactService = Depends(get_contact_service),
):
    """Удаляет все заявки. Перед удалением сохраняется резервная копия."""
    try:
        backup_path = await service.clear_contacts()
    except StorageError as e:
        logger.error(f"Ошибка удаления всех заявок: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении заявок",
        )

    logger.info(f"Администратор {current_admin.username} удалил все заявки")
    return {"ok": True, "message": "Все заявки удалены", "backup": str(backup_path)}


@router.delete("/contacts/{contact_id}")
async def delete_contact(
    contact_id: str,
    current_admin: CurrentAdmin = Depends(require_admin),
    service: ContactService = Depends(get_contact_service),
):
    """Удаляет одну заявку по ID."""
    try:
        deleted = await service.delete_contact(contact_id)
    except ContactNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Заявка не найдена",
        )
    except StorageError as e:
        logger.error(f"Ошибка удаления заявки {contact_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка при удалении заявки",
        )

    return {"ok": True, "message": "Заявка удалена", "deletedContact": deleted}
