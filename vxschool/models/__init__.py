# -*- coding: utf-8 -*-
"""
Pydantic модели (схемы) сайта и админки.

Содержит:
- auth: Схемы аутентификации
- contact: Заявки с сайта
- settings: Настройки сайта
- stats: Дашборд и аналитика
"""

from vxschool.models.auth import (
    LoginRequest,
    LoginResponse,
    AdminUserInfo,
    VerifyResponse,
)
from vxschool.models.contact import (
    TARIFFS,
    Contact,
    ContactRequest,
    ContactResult,
)
from vxschool.models.settings import (
    PACKAGES,
    SiteSettings,
    PublicSettings,
    TogglePackageRequest,
)
from vxschool.models.stats import (
    VisitPoint,
    SourceStat,
    AnalyticsResponse,
    DashboardResponse,
)

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "AdminUserInfo",
    "VerifyResponse",
    # Contact
    "TARIFFS",
    "Contact",
    "ContactRequest",
    "ContactResult",
    # Settings
    "PACKAGES",
    "SiteSettings",
    "PublicSettings",
    "TogglePackageRequest",
    # Stats
    "VisitPoint",
    "SourceStat",
    "AnalyticsResponse",
    "DashboardResponse",
]
