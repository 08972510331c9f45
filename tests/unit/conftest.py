"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().

Also provides an in-memory async stand-in for the subset of redis.asyncio the
verification store uses, with a manual clock so TTL expiry can be simulated.
"""

from __future__ import annotations

from typing import Optional

import pytest

from infrastructure.cache.code_store import CodeStore


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


class FakeRedis:
    """Dict-backed async Redis with per-key expiry driven by advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._data: dict[str, str] = {}
        self._expires: dict[str, float] = {}
        self.transactions: list[list[str]] = []

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _purge(self, key: str) -> None:
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= self.now:
            self._data.pop(key, None)
            self._expires.pop(key, None)

    def _alive(self, key: str) -> bool:
        self._purge(key)
        return key in self._data

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key) if self._alive(key) else None

    async def mget(self, keys, *args):
        keys = list(keys) + list(args)
        return [await self.get(k) for k in keys]

    async def set(self, key, value, ex=None, nx=False):
        if nx and self._alive(key):
            return None
        self._data[key] = str(value)
        self._expires.pop(key, None)
        if ex is not None:
            self._expires[key] = self.now + ex
        return True

    async def incr(self, key: str) -> int:
        value = int(await self.get(key) or 0) + 1
        self._data[key] = str(value)
        return value

    async def decr(self, key: str) -> int:
        value = int(await self.get(key) or 0) - 1
        self._data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self._expires[key] = self.now + seconds
        return True

    async def ttl(self, key: str) -> int:
        if not self._alive(key):
            return -2
        deadline = self._expires.get(key)
        if deadline is None:
            return -1
        return int(deadline - self.now)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key):
                removed += 1
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return removed

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._queued: list[tuple] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc) -> None:
        self._queued.clear()

    def _queue(self, name: str, *args, **kwargs) -> "FakePipeline":
        self._queued.append((name, args, kwargs))
        return self

    def set(self, key, value, ex=None, nx=False) -> "FakePipeline":
        return self._queue("set", key, value, ex=ex, nx=nx)

    def incr(self, key) -> "FakePipeline":
        return self._queue("incr", key)

    def ttl(self, key) -> "FakePipeline":
        return self._queue("ttl", key)

    async def execute(self) -> list:
        self._redis.transactions.append([name for name, _, _ in self._queued])
        results = [
            await getattr(self._redis, name)(*args, **kwargs)
            for name, args, kwargs in self._queued
        ]
        self._queued.clear()
        return results


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis) -> CodeStore:
    return CodeStore(fake_redis)
