# -*- coding: utf-8 -*-
"""
Конфигурация сайта VX School.

Настройки загружаются из переменных окружения и файла .env.
Использует Pydantic Settings для валидации.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Настройки приложения.

    Обязательные переменные: ADMIN_USERNAME, ADMIN_PASSWORD, JWT_SECRET,
    ADMIN_SESSION_SECRET. Вне режима разработки также TELEGRAM_BOT_TOKEN
    и TELEGRAM_CHAT_ID.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # === Основные настройки ===

    APP_NAME: str = "VX School"
    APP_VERSION: str = "1.0.0"

    # Режим разработки: отключает лимит заявок и кэширование статики,
    # разрешает запуск без Telegram
    DEVELOPMENT: bool = False

    # === Сервер ===

    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Публичный адрес сайта (для ссылок в уведомлениях). Если пусто,
    # берётся из заголовка Host запроса.
    SITE_URL: str = ""

    # CORS разрешённые домены (через запятую), пусто = CORS не подключается
    CORS_ORIGINS: str = ""

    # Максимальный размер тела запроса (КБ)
    MAX_BODY_SIZE_KB: int = 1024

    # === Файлы ===

    DATA_DIR: str = "data"
    PUBLIC_DIR: str = "public"

    # === Администратор ===

    ADMIN_USERNAME: str
    # Пароль в открытом виде или хэш pbkdf2_sha256 ($pbkdf2-sha256$...)
    ADMIN_PASSWORD: str

    # === JWT и сессии ===

    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_HOURS: int = 24

    ADMIN_SESSION_SECRET: str

    # === Лимиты ===

    CONTACT_RATE_LIMIT: int = 3
    CONTACT_RATE_WINDOW_MINUTES: int = 15

    LOGIN_RATE_LIMIT: int = 5
    LOGIN_RATE_WINDOW_MINUTES: int = 15

    # Redis для общих счётчиков лимитов (несколько инстансов).
    # Пусто = счётчики в памяти процесса.
    REDIS_URL: str = ""

    # === Уведомления ===

    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""

    # Секрет для заголовка X-Telegram-Bot-Api-Secret-Token
    TELEGRAM_WEBHOOK_SECRET: str = ""

    # Дополнительный HTTP webhook для заявок
    NOTIFY_WEBHOOK_URL: str = ""

    # === Логирование ===

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    @model_validator(mode="after")
    def _check_required_secrets(self) -> "AppSettings":
        missing = [
            name
            for name in ("ADMIN_USERNAME", "ADMIN_PASSWORD", "JWT_SECRET", "ADMIN_SESSION_SECRET")
            if not getattr(self, name).strip()
        ]
        if missing:
            raise ValueError(f"Не заданы обязательные переменные: {', '.join(missing)}")

        if not self.DEVELOPMENT and not (self.TELEGRAM_BOT_TOKEN and self.TELEGRAM_CHAT_ID):
            raise ValueError(
                "Не заданы TELEGRAM_BOT_TOKEN и TELEGRAM_CHAT_ID. "
                "Для разработки установите DEVELOPMENT=true"
            )
        return self

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.TELEGRAM_BOT_TOKEN and self.TELEGRAM_CHAT_ID)

    @property
    def cors_origins_list(self) -> list[str]:
        """Возвращает список разрешённых CORS origins."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR)

    @property
    def public_path(self) -> Path:
        return Path(self.PUBLIC_DIR)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Получает singleton экземпляр настроек.

    Кэшируется, чтобы .env читался один раз за процесс.
    """
    return AppSettings()
