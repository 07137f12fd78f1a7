# -*- coding: utf-8 -*-
"""
API роутеры сайта и админки.

Содержит:
- public: Заявки и публичные настройки
- auth: Аутентификация администратора
- stats: Дашборд и аналитика
- contacts: Управление заявками
- settings: Настройки сайта
- webhook: Кнопки Telegram-бота
"""

from vxschool.routers import auth, contacts, public, settings, stats, webhook

__all__ = [
    "auth",
    "contacts",
    "public",
    "settings",
    "stats",
    "webhook",
]
