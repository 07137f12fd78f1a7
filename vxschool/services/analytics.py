"""
Учёт посещений главной страницы.

Считаем уникальные IP за день и источники трафика по Referer.
Данные хранятся в документе analytics:

    {
        "visits": [{"date": "2026-10-19", "count": 12}, ...],
        "sources": {"Google": 40, "Прямые переходы": 15, ...},
        "uniqueVisitors": {"2026-10-19": ["1.2.3.4", ...], ...}
    }

Записи старше RETENTION_DAYS удаляются при каждой записи.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from vxschool.storage import DocumentFormatError, DocumentKind, FileStore

logger = logging.getLogger("vxschool.analytics")

RETENTION_DAYS = 30

# Сколько источников отдаём в админку
TOP_SOURCES = 10

BOT_PATTERN = re.compile(r"bot|crawler|spider|crawling", re.IGNORECASE)

SOURCE_DIRECT = "Прямые переходы"
SOURCE_OTHER = "Другие сайты"

# (подстрока хоста, название источника); порядок важен
REFERRER_SOURCES = (
    ("google", "Google"),
    ("yandex", "Yandex"),
    ("vk.com", "VKontakte"),
    ("t.me", "Telegram"),
    ("instagram", "Instagram"),
    ("facebook", "Facebook"),
)

# Диапазоны для GET /admin/analytics?range=...
RANGE_DAYS = {"week": 7, "month": 30}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _host_matches(host: str, needle: str) -> bool:
    # Доменные шаблоны (vk.com, t.me) сравниваем по границе домена,
    # чтобы "bt.media" не считался Telegram
    if "." in needle:
        return host == needle or host.endswith("." + needle)
    return needle in host


def classify_referrer(referrer: Optional[str], site_host: Optional[str] = None) -> str:
    """
    Определяет источник трафика по заголовку Referer.

    Пустой Referer и переходы внутри сайта считаются прямыми.
    """
    if not referrer:
        return SOURCE_DIRECT

    parsed = urlparse(referrer if "//" in referrer else f"//{referrer}")
    ref_host = (parsed.hostname or "").lower()
    if not ref_host:
        return SOURCE_OTHER

    if site_host:
        own_host = (urlparse(f"//{site_host}").hostname or "").lower()
        if ref_host == own_host:
            return SOURCE_DIRECT

    for needle, name in REFERRER_SOURCES:
        if _host_matches(ref_host, needle):
            return name
    return SOURCE_OTHER


def is_page_visit(method: str, path: str, user_agent: Optional[str]) -> bool:
    """Считаем только GET главной страницы и не считаем ботов."""
    if method != "GET" or path != "/":
        return False
    return not BOT_PATTERN.search(user_agent or "")


def normalize_analytics(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Приводит документ к текущему формату.

    Старый формат хранил sources списком [{name, count}]. Поля неверного
    типа сбрасываются к пустым значениям.

    Raises:
        DocumentFormatError: документ не является объектом
    """
    if not isinstance(document, dict):
        raise DocumentFormatError(DocumentKind.ANALYTICS, "ожидался объект JSON")

    visits = document.get("visits")
    if not isinstance(visits, list):
        visits = []
    document["visits"] = [v for v in visits if isinstance(v, dict) and "date" in v]

    unique_visitors = document.get("uniqueVisitors")
    if not isinstance(unique_visitors, dict):
        unique_visitors = {}
    document["uniqueVisitors"] = {
        day: ips for day, ips in unique_visitors.items() if isinstance(ips, list)
    }

    sources = document.get("sources") or {}
    if isinstance(sources, list):
        sources = {
            item["name"]: int(item.get("count", 0))
            for item in sources
            if isinstance(item, dict) and "name" in item
        }
    elif not isinstance(sources, dict):
        sources = {}
    document["sources"] = sources
    return document


class AnalyticsTracker:
    """
    Учитывает визиты и отдаёт агрегаты для админки.

    Args:
        store: Хранилище документов
        clock: Текущее время (UTC), подменяется в тестах
    """

    def __init__(self, store: FileStore, clock: Callable[[], datetime] = _utc_now) -> None:
        self.store = store
        self.clock = clock

    def today(self) -> date:
        return self.clock().astimezone(timezone.utc).date()

    async def record_visit(
        self,
        ip: str,
        referrer: Optional[str] = None,
        site_host: Optional[str] = None,
    ) -> bool:
        """
        Учитывает визит.

        Returns:
            True если IP сегодня ещё не был и визит засчитан
        """
        today = self.today()
        today_key = today.isoformat()

        async with self.store.mutate(DocumentKind.ANALYTICS) as document:
            normalize_analytics(document)

            visitors = document["uniqueVisitors"].setdefault(today_key, [])
            is_unique = ip not in visitors

            if is_unique:
                visitors.append(ip)

                entry = next((v for v in document["visits"] if v.get("date") == today_key), None)
                if entry is None:
                    document["visits"].append({"date": today_key, "count": 1})
                else:
                    entry["count"] = int(entry.get("count", 0)) + 1

                source = classify_referrer(referrer, site_host)
                document["sources"][source] = document["sources"].get(source, 0) + 1

            self._prune(document, today)

        return is_unique

    def _prune(self, document: Dict[str, Any], today: date) -> None:
        cutoff = (today - timedelta(days=RETENTION_DAYS)).isoformat()

        document["visits"] = sorted(
            (v for v in document["visits"] if str(v.get("date", "")) > cutoff),
            key=lambda v: v["date"],
        )
        document["uniqueVisitors"] = {
            day: ips for day, ips in document["uniqueVisitors"].items() if day > cutoff
        }

    async def today_visits(self) -> int:
        document = normalize_analytics(await self.store.load(DocumentKind.ANALYTICS))
        today_key = self.today().isoformat()
        for visit in document["visits"]:
            if visit.get("date") == today_key:
                return int(visit.get("count", 0))
        return 0

    async def query(self, range_name: str = "week") -> Dict[str, List[Dict[str, Any]]]:
        """
        Визиты за период и топ источников.

        Args:
            range_name: today | week | month | all (неизвестное значение = all)
        """
        document = normalize_analytics(await self.store.load(DocumentKind.ANALYTICS))
        today = self.today()
        visits = document["visits"]

        if range_name == "today":
            visits = [v for v in visits if v.get("date") == today.isoformat()]
        elif range_name in RANGE_DAYS:
            since = (today - timedelta(days=RANGE_DAYS[range_name])).isoformat()
            visits = [v for v in visits if str(v.get("date", "")) >= since]

        sources = sorted(document["sources"].items(), key=lambda item: item[1], reverse=True)
        return {
            "visits": visits,
            "sources": [{"name": name, "count": count} for name, count in sources[:TOP_SOURCES]],
        }
