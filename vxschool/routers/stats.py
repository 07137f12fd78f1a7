# -*- coding: utf-8 -*-
"""
API роутер статистики (админка).

Эндпоинты:
- GET /dashboard - Сводка: заявки, визиты за сегодня, настройки
- GET /analytics - Визиты и источники трафика за период
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from vxschool.auth.dependencies import CurrentAdmin, require_admin
from vxschool.dependencies import get_analytics, get_contact_service, get_store
from vxschool.models.stats import AnalyticsResponse, DashboardResponse
from vxschool.services.analytics import AnalyticsTracker
from vxschool.services.contacts import ContactService
from vxschool.storage import DocumentKind, FileStore, StorageError

router = APIRouter()
logger = logging.getLogger("vxschool.routers.stats")


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_admin: CurrentAdmin = Depends(require_admin),
    store: FileStore = Depends(get_store),
    contacts_service: ContactService = Depends(get_contact_service),
    analytics: AnalyticsTracker = Depends(get_analytics),
):
    """Сводная статистика для главной страницы админки."""
    try:
        contacts = await store.load(DocumentKind.CONTACTS)
        settings = await store.load(DocumentKind.SETTINGS)
        today_visits = await analytics.today_visits()
    except StorageError as e:
        logger.error(f"Ошибка загрузки дашборда: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка загрузки данных",
        )

    today_contacts, week_contacts = contacts_service.count_recent(contacts)

    return DashboardResponse(
        total_contacts=len(contacts),
        today_contacts=today_contacts,
        week_contacts=week_contacts,
        today_visits=today_visits,
        settings=settings,
    )


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics_report(
    range_name: str = Query("week", alias="range", description="today | week | month | all"),
    current_admin: CurrentAdmin = Depends(require_admin),
    analytics: AnalyticsTracker = Depends(get_analytics),
):
    """Визиты за период и топ-10 источников."""
    try:
        return await analytics.query(range_name)
    except StorageError as e:
        logger.error(f"Ошибка загрузки аналитики: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Ошибка загрузки аналитики",
        )
