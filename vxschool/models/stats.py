# -*- coding: utf-8 -*-
"""
Pydantic схемы для дашборда и аналитики посещений.
"""

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class VisitPoint(BaseModel):
    """Уникальные посетители за день."""
    # Поле называется `day`, но сериализуется/принимается как `date`,
    # чтобы имя поля не конфликтовало с типом `date`.
    model_config = ConfigDict(populate_by_name=True)

    day: str = Field(..., validation_alias="date", serialization_alias="date", description="Дата (YYYY-MM-DD)")
    count: int = Field(..., ge=0)


class SourceStat(BaseModel):
    """Источник трафика."""
    name: str
    count: int = Field(..., ge=0)


class AnalyticsResponse(BaseModel):
    """Аналитика за выбранный период."""
    visits: List[VisitPoint]
    sources: List[SourceStat]


class DashboardResponse(BaseModel):
    """Сводка для главной страницы админки."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_contacts: int
    today_contacts: int
    week_contacts: int
    today_visits: int
    settings: dict[str, Any]
