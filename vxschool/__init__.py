# -*- coding: utf-8 -*-
"""
VX School - сайт школы и API админ-панели.

Модули:
- storage: JSON-документы на диске
- auth: JWT для администратора
- services: Заявки, аналитика, лимиты, уведомления
- routers: API эндпоинты
- models: Pydantic схемы
"""

__version__ = "1.0.0"
