"""
Ограничение частоты запросов по IP.

Два лимитера:
- SlidingWindowLimiter - скользящее окно (форма заявки: 3 заявки за 15 минут)
- FixedWindowLimiter - фиксированное окно (вход в админку: 5 попыток за 15 минут)

Счётчики хранятся в RateLimitStore: в памяти процесса (один инстанс)
или в Redis (несколько инстансов за балансировщиком).
"""

from __future__ import annotations

import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from redis.asyncio import Redis

from vxschool.utils.security import rate_limit_key

logger = logging.getLogger("vxschool.rate_limit")

Clock = Callable[[], float]


class RateLimitExceeded(Exception):
    """Лимит запросов исчерпан."""

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.message = message
        self.retry_after = retry_after


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after: int = 0


# -------------------- хранилища --------------------


class RateLimitStore(ABC):
    """Хранилище счётчиков лимитов."""

    @abstractmethod
    async def hits_since(self, key: str, since: float) -> List[float]:
        """Удаляет отметки старше since и возвращает оставшиеся (по возрастанию)."""

    @abstractmethod
    async def add_hit(self, key: str, timestamp: float, ttl: int) -> None:
        """Добавляет отметку времени запроса."""

    @abstractmethod
    async def incr(self, key: str, now: float, ttl: int) -> int:
        """Увеличивает счётчик с временем жизни ttl секунд, возвращает новое значение."""

    async def close(self) -> None:
        return None


class InMemoryRateLimitStore(RateLimitStore):
    """
    Счётчики в памяти процесса.

    Теряются при перезапуске и не разделяются между инстансами.
    """

    # Порог, после которого чистим протухшие ключи
    SWEEP_THRESHOLD = 10_000

    def __init__(self) -> None:
        self._hits: Dict[str, List[float]] = {}
        self._counters: Dict[str, Tuple[int, float]] = {}

    async def hits_since(self, key: str, since: float) -> List[float]:
        recent = [ts for ts in self._hits.get(key, []) if ts > since]
        if recent:
            self._hits[key] = recent
        else:
            self._hits.pop(key, None)
        return list(recent)

    async def add_hit(self, key: str, timestamp: float, ttl: int) -> None:
        self._hits.setdefault(key, []).append(timestamp)
        if len(self._hits) > self.SWEEP_THRESHOLD:
            cutoff = timestamp - ttl
            self._hits = {k: v for k, v in self._hits.items() if v and v[-1] > cutoff}

    async def incr(self, key: str, now: float, ttl: int) -> int:
        count, expires_at = self._counters.get(key, (0, 0.0))
        if expires_at <= now:
            count, expires_at = 0, now + ttl
        count += 1
        self._counters[key] = (count, expires_at)

        if len(self._counters) > self.SWEEP_THRESHOLD:
            self._counters = {k: v for k, v in self._counters.items() if v[1] > now}
        return count


class RedisRateLimitStore(RateLimitStore):
    """
    Счётчики в Redis.

    Скользящее окно - sorted set с отметками времени,
    фиксированное окно - INCR + EXPIRE.
    """

    def __init__(self, redis_url: str) -> None:
        self.redis: Redis = Redis.from_url(redis_url, encoding="utf-8", decode_responses=True)

    async def hits_since(self, key: str, since: float) -> List[float]:
        await self.redis.zremrangebyscore(key, 0, since)
        members = await self.redis.zrange(key, 0, -1, withscores=True)
        return [score for _member, score in members]

    async def add_hit(self, key: str, timestamp: float, ttl: int) -> None:
        member = f"{timestamp}:{uuid.uuid4().hex[:8]}"
        await self.redis.zadd(key, {member: timestamp})
        await self.redis.expire(key, ttl)

    async def incr(self, key: str, now: float, ttl: int) -> int:
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, ttl)
        return int(count)

    async def close(self) -> None:
        await self.redis.aclose()


def build_rate_limit_store(redis_url: Optional[str]) -> RateLimitStore:
    """Выбирает хранилище: Redis, если задан REDIS_URL, иначе память процесса."""
    if redis_url:
        logger.info("Счётчики лимитов хранятся в Redis")
        return RedisRateLimitStore(redis_url)
    return InMemoryRateLimitStore()


# -------------------- лимитеры --------------------


class SlidingWindowLimiter:
    """
    Скользящее окно: учитываются только запросы за последние window_seconds.

    Если в окне уже limit запросов, новый отклоняется и не записывается.
    """

    def __init__(
        self,
        store: RateLimitStore,
        prefix: str,
        limit: int,
        window_seconds: int,
        message: str,
        enabled: bool = True,
        clock: Clock = time.time,
    ) -> None:
        self.store = store
        self.prefix = prefix
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self.enabled = enabled
        self.clock = clock

    async def hit(self, identifier: str) -> RateLimitResult:
        if not self.enabled:
            return RateLimitResult(allowed=True, remaining=self.limit)

        now = self.clock()
        key = rate_limit_key(self.prefix, identifier)
        recent = await self.store.hits_since(key, now - self.window_seconds)

        if len(recent) >= self.limit:
            retry_after = int(recent[0] + self.window_seconds - now) + 1
            return RateLimitResult(allowed=False, remaining=0, retry_after=max(retry_after, 1))

        await self.store.add_hit(key, now, self.window_seconds)
        return RateLimitResult(allowed=True, remaining=self.limit - len(recent) - 1)

    async def check(self, identifier: str) -> None:
        """Как hit(), но выбрасывает RateLimitExceeded при превышении."""
        result = await self.hit(identifier)
        if not result.allowed:
            logger.warning(f"Лимит '{self.prefix}' превышен, IP: {identifier}")
            raise RateLimitExceeded(self.message, result.retry_after)


class FixedWindowLimiter:
    """
    Фиксированное окно: не больше limit запросов за окно window_seconds.

    Учитываются все попытки, успешные и неуспешные.
    """

    def __init__(
        self,
        store: RateLimitStore,
        prefix: str,
        limit: int,
        window_seconds: int,
        message: str,
        clock: Clock = time.time,
    ) -> None:
        self.store = store
        self.prefix = prefix
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self.clock = clock

    async def hit(self, identifier: str) -> RateLimitResult:
        now = self.clock()
        window_index = int(now // self.window_seconds)
        key = f"{rate_limit_key(self.prefix, identifier)}:{window_index}"
        count = await self.store.incr(key, now, self.window_seconds)

        window_end = (window_index + 1) * self.window_seconds
        if count > self.limit:
            return RateLimitResult(allowed=False, remaining=0, retry_after=max(int(window_end - now), 1))
        return RateLimitResult(allowed=True, remaining=self.limit - count)

    async def check(self, identifier: str) -> None:
        result = await self.hit(identifier)
        if not result.allowed:
            logger.warning(f"Лимит '{self.prefix}' превышен, IP: {identifier}")
            raise RateLimitExceeded(self.message, result.retry_after)
