"""
Запуск сайта и API админки.

Использование:
    python run_server.py
"""

import logging
import sys

import uvicorn
from pydantic import ValidationError

from vxschool.config import get_settings
from vxschool.logging_config import setup_logging

logger = logging.getLogger("vxschool.run")


def main() -> None:
    setup_logging()
    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error(f"Ошибка конфигурации, проверьте .env:\n{e}")
        sys.exit(1)

    logger.info(f"🚀 Запуск {settings.APP_NAME} на http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(
        "vxschool.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEVELOPMENT,
        log_level=settings.LOG_LEVEL.lower(),
        server_header=False,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
