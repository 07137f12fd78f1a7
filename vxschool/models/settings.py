# -*- coding: utf-8 -*-
"""
Pydantic схемы для настроек сайта (скидки, цены, доступность пакетов).
"""

from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Цена - число или строка-заглушка вроде «По запросу»
Price = Union[int, float, str]

# Пакеты, доступность которых переключается из админки
PACKAGES = ("basic", "group", "individual", "consultation")


def _parse_expiry(value: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SiteSettings(BaseModel):
    """Единственный документ настроек сайта."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        strict=True,
    )

    # Скидка
    discount_enabled: bool = Field(False, description="Скидка включена")
    discount_percent: Union[int, float] = Field(20, ge=0, le=100, description="Размер скидки, %")
    discount_text: str = Field("Скидка 20% на все курсы!", max_length=500)
    discount_expiry: Optional[str] = Field(None, description="Окончание скидки (ISO 8601)")

    # Доступность пакетов
    basic_available: bool = True
    group_available: bool = True
    individual_available: bool = True
    consultation_available: bool = True

    # Цены
    basic_price: Price = 10000
    group_price: Price = 30000
    individual_price: Price = "По запросу"

    # Контакты
    contact_telegram: str = Field("@vxschool", max_length=100)
    contact_email: str = Field("contact@vxschool.com", max_length=255)

    def discount_active(self, now: Optional[datetime] = None) -> bool:
        """Скидка включена и её срок (если задан) ещё не истёк."""
        if not self.discount_enabled:
            return False
        if not self.discount_expiry:
            return True
        expiry = _parse_expiry(self.discount_expiry)
        if expiry is None:
            return True
        return (now or datetime.now(timezone.utc)) < expiry

    def to_public(self, now: Optional[datetime] = None) -> "PublicSettings":
        return PublicSettings(
            discount_enabled=self.discount_active(now),
            discount_percent=self.discount_percent,
            discount_text=self.discount_text,
            discount_expiry=self.discount_expiry,
            basic_available=self.basic_available,
            group_available=self.group_available,
            individual_available=self.individual_available,
            consultation_available=self.consultation_available,
            basic_price=self.basic_price,
            group_price=self.group_price,
            individual_price=self.individual_price,
        )


class PublicSettings(BaseModel):
    """Настройки, которые видит посетитель сайта."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    discount_enabled: bool
    discount_percent: Union[int, float]
    discount_text: str
    discount_expiry: Optional[str] = None
    basic_available: bool
    group_available: bool
    individual_available: bool
    consultation_available: bool
    basic_price: Price
    group_price: Price
    individual_price: Price


class TogglePackageRequest(BaseModel):
    """Переключение доступности пакета."""
    package: Optional[str] = Field(None, max_length=50)
