"""
Бизнес-логика сайта.

- analytics: учёт посещений и источников трафика
- contacts: приём и обработка заявок
- notifications: каналы уведомлений (Telegram, webhook)
- rate_limit: ограничение частоты запросов
"""
