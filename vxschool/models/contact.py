# -*- coding: utf-8 -*-
"""
Pydantic схемы для заявок с сайта.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Тарифы, которые можно выбрать в форме
TARIFFS = ("Базовый", "Групповой", "Индивидуальный", "Консультация")


class ContactRequest(BaseModel):
    """
    Тело запроса формы обратной связи.

    Поля принимаются «как есть»: нестроковые значения не отклоняются
    здесь, а превращаются в пустую строку при санитизации.
    """
    name: Any = None
    telegram: Any = None
    message: Any = None
    tariff: Any = None


class Contact(BaseModel):
    """Сохранённая заявка."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Уникальный ID заявки")
    name: str
    telegram: str
    message: str = ""
    tariff: Optional[str] = None
    ip: str = Field("unknown", description="IP отправителя")
    created_at: str = Field(..., description="Время создания (ISO 8601, UTC)")

    # Заполняются из Telegram (кнопки под уведомлением)
    status: Optional[str] = None
    processed_at: Optional[str] = None

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ContactResult(BaseModel):
    """Ответ на отправку формы."""
    ok: bool = True
