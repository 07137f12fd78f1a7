# -*- coding: utf-8 -*-
"""
FastAPI зависимости: доступ к сервисам приложения и лимиты запросов.

Сервисы создаются в create_app() и лежат в app.state,
роутеры получают их через Depends.
"""

from fastapi import HTTPException, Request, status

from vxschool.config import AppSettings
from vxschool.services.analytics import AnalyticsTracker
from vxschool.services.contacts import ContactService
from vxschool.services.notifications import TelegramNotifier
from vxschool.services.rate_limit import RateLimitExceeded
from vxschool.storage import FileStore
from vxschool.utils.security import get_client_ip


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_store(request: Request) -> FileStore:
    return request.app.state.store


def get_contact_service(request: Request) -> ContactService:
    return request.app.state.contact_service


def get_analytics(request: Request) -> AnalyticsTracker:
    return request.app.state.analytics


def get_telegram(request: Request) -> TelegramNotifier | None:
    return request.app.state.telegram


def get_admin_url(request: Request) -> str:
    """
    Ссылка на админку для уведомлений.

    Берётся из SITE_URL, иначе из заголовка Host (сайт работает за HTTPS-прокси).
    """
    settings: AppSettings = request.app.state.settings
    if settings.SITE_URL:
        return f"{settings.SITE_URL.rstrip('/')}/admin/"
    host = request.headers.get("host") or request.url.netloc
    return f"https://{host}/admin/"


def _too_many_requests(exc: RateLimitExceeded) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=exc.message,
        headers={"Retry-After": str(exc.retry_after)},
    )


async def limit_contact_submissions(request: Request) -> None:
    """Не больше CONTACT_RATE_LIMIT заявок с одного IP в скользящем окне."""
    try:
        await request.app.state.contact_limiter.check(get_client_ip(request))
    except RateLimitExceeded as e:
        raise _too_many_requests(e)


async def limit_login_attempts(request: Request) -> None:
    """Не больше LOGIN_RATE_LIMIT попыток входа с одного IP за окно."""
    try:
        await request.app.state.login_limiter.check(get_client_ip(request))
    except RateLimitExceeded as e:
        raise _too_many_requests(e)
