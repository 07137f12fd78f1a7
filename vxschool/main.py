# -*- coding: utf-8 -*-
"""
Точка входа FastAPI приложения: сайт VX School и API админки.

Запуск:
    python run_server.py
    uvicorn vxschool.main:create_app --factory --port 3000
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional, Sequence

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from vxschool.config import AppSettings, get_settings
from vxschool.logging_config import setup_logging
from vxschool.routers import auth, contacts, public, settings as settings_router, stats, webhook
from vxschool.services.analytics import AnalyticsTracker, is_page_visit
from vxschool.services.contacts import ContactService
from vxschool.services.notifications import NotificationSink, build_notifiers, find_telegram
from vxschool.services.rate_limit import (
    FixedWindowLimiter,
    RateLimitStore,
    SlidingWindowLimiter,
    build_rate_limit_store,
)
from vxschool.storage import FileStore, StorageError
from vxschool.utils.security import get_client_ip

logger = logging.getLogger("vxschool.main")

BODY_TOO_LARGE_MESSAGE = "Отправленные данные слишком большие. Сократите сообщение."
BAD_REQUEST_MESSAGE = "Ошибка в формате данных. Обновите страницу и попробуйте снова."
NOT_FOUND_MESSAGE = "Страница не найдена."
INTERNAL_ERROR_MESSAGE = "Произошла техническая ошибка. Попробуйте отправить заявку позже."

CONTACT_LIMIT_MESSAGE = "Вы отправили слишком много заявок. Подождите 15 минут и попробуйте снова."
LOGIN_LIMIT_MESSAGE = "Слишком много попыток входа. Попробуйте через 15 минут."

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
        "font-src 'self' https://fonts.gstatic.com; "
        "img-src 'self' data: https:; "
        "connect-src 'self'; "
        "frame-ancestors 'none'"
    ),
}


class CachedStaticFiles(StaticFiles):
    """StaticFiles с заголовком Cache-Control на каждом файле."""

    def __init__(self, *args, cache_control: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.cache_control = cache_control

    def file_response(self, *args, **kwargs):
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = self.cache_control
        return response


class BodySizeLimitMiddleware:
    """
    Ограничивает размер тела запроса (413).

    Content-Length проверяется до чтения тела. Тело без Content-Length
    (Transfer-Encoding: chunked) считается по мере чтения.
    """

    def __init__(self, app: ASGIApp, max_body_size: int) -> None:
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            self._log_rejected(request, int(content_length))
            response = _error_response(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, BODY_TOO_LARGE_MESSAGE)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    self._log_rejected(request, received)
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=BODY_TOO_LARGE_MESSAGE,
                    )
            return message

        await self.app(scope, limited_receive, send)

    @staticmethod
    def _log_rejected(request: Request, size: int) -> None:
        logger.warning(
            f"Слишком большой запрос ({size} байт) на {request.url.path}, "
            f"IP: {get_client_ip(request)}"
        )


def _error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": message},
        headers=headers,
    )


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    sinks: Optional[Sequence[NotificationSink]] = None,
    rate_limit_store: Optional[RateLimitStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Собирает приложение.

    Args:
        settings: Настройки; по умолчанию get_settings()
        sinks: Каналы уведомлений; по умолчанию строятся по настройкам
        rate_limit_store: Хранилище счётчиков лимитов; по умолчанию по REDIS_URL
        clock: Текущее время (UTC) для сервисов и лимитов

    Returns:
        Настроенное FastAPI приложение
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    store = FileStore(settings.data_path)
    if sinks is None:
        sinks = build_notifiers(settings)
    if rate_limit_store is None:
        rate_limit_store = build_rate_limit_store(settings.REDIS_URL)

    service_kwargs = {"clock": clock} if clock else {}
    limiter_kwargs = {"clock": lambda: clock().timestamp()} if clock else {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Запуск {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Режим разработки: {settings.DEVELOPMENT}")
        store.ensure_defaults()
        logger.info(f"Данные: {store.data_dir.resolve()}")

        yield

        logger.info("Остановка сервера...")
        for sink in app.state.contact_service.sinks:
            await sink.close()
        await rate_limit_store.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Сайт VX School: заявки, настройки и статистика",
        docs_url="/api/docs" if settings.DEVELOPMENT else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.DEVELOPMENT else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.analytics = AnalyticsTracker(store, **service_kwargs)
    app.state.contact_service = ContactService(store, sinks, **service_kwargs)
    app.state.telegram = find_telegram(sinks)
    app.state.contact_limiter = SlidingWindowLimiter(
        rate_limit_store,
        prefix="contact",
        limit=settings.CONTACT_RATE_LIMIT,
        window_seconds=settings.CONTACT_RATE_WINDOW_MINUTES * 60,
        message=CONTACT_LIMIT_MESSAGE,
        enabled=not settings.DEVELOPMENT,
        **limiter_kwargs,
    )
    app.state.login_limiter = FixedWindowLimiter(
        rate_limit_store,
        prefix="login",
        limit=settings.LOGIN_RATE_LIMIT,
        window_seconds=settings.LOGIN_RATE_WINDOW_MINUTES * 60,
        message=LOGIN_LIMIT_MESSAGE,
        **limiter_kwargs,
    )

    register_middleware(app, settings)
    register_exception_handlers(app)
    register_routers(app, settings)
    return app


def register_middleware(app: FastAPI, settings: AppSettings) -> None:
    """Подключает middleware. Последний добавленный выполняется первым."""
    max_body_size = settings.MAX_BODY_SIZE_KB * 1024

    @app.middleware("http")
    async def track_visits(request: Request, call_next):
        if is_page_visit(request.method, request.url.path, request.headers.get("user-agent")):
            try:
                await request.app.state.analytics.record_visit(
                    get_client_ip(request),
                    referrer=request.headers.get("referer"),
                    site_host=request.headers.get("host"),
                )
            except StorageError as e:
                logger.error(f"Ошибка записи аналитики: {e}")
            except Exception as e:
                logger.error(f"Сбой учёта визита: {e}", exc_info=True)
        return await call_next(request)

    app.add_middleware(BodySizeLimitMiddleware, max_body_size=max_body_size)

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if "server" in response.headers:
            del response.headers["server"]
        return response

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    if settings.DEVELOPMENT:
        app.add_middleware(SessionMiddleware, secret_key=settings.ADMIN_SESSION_SECRET)

    if settings.cors_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )


def register_exception_handlers(app: FastAPI) -> None:
    """Все ошибки отдаются в формате {"ok": false, "error": "..."}."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = NOT_FOUND_MESSAGE
        return _error_response(exc.status_code, message, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Некорректный запрос на {request.url.path}: {exc.errors()}")
        return _error_response(status.HTTP_400_BAD_REQUEST, BAD_REQUEST_MESSAGE)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Необработанное исключение: {exc}", exc_info=True)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


def register_routers(app: FastAPI, settings: AppSettings) -> None:
    """Регистрирует роутеры, health check и раздачу статики."""
    app.include_router(public.router, tags=["Public"])
    app.include_router(auth.router, prefix="/admin", tags=["Authentication"])
    app.include_router(stats.router, prefix="/admin", tags=["Statistics"])
    app.include_router(contacts.router, prefix="/admin", tags=["Contacts"])
    app.include_router(settings_router.router, prefix="/admin", tags=["Settings"])
    app.include_router(webhook.router, prefix="/webhook", tags=["Telegram"])

    @app.get("/health", tags=["System"])
    async def health_check():
        """Проверка работоспособности сервиса."""
        return {"status": "ok", "version": settings.APP_VERSION}

    public_path = settings.public_path
    cache_control = "no-cache" if settings.DEVELOPMENT else "public, max-age=86400"

    @app.get("/", include_in_schema=False)
    async def index():
        index_path = public_path / "index.html"
        if index_path.is_file():
            return FileResponse(index_path, headers={"Cache-Control": cache_control})
        return {"name": settings.APP_NAME, "version": settings.APP_VERSION}

    if public_path.is_dir():
        logger.info(f"Раздача статических файлов из: {public_path.resolve()}")
        app.mount("/", CachedStaticFiles(directory=str(public_path), cache_control=cache_control), name="public")
