"""Key-value contract used by the verification engine and session layer.

A thin async wrapper over a ``redis.asyncio`` client created with
``decode_responses=True``. It exposes only the operations the protocol
needs and the key naming scheme:

    verify:{namespace}:{subject}:code
    verify:{namespace}:{subject}:attempts
    verify:{namespace}:{subject}:rate
    vs:{session_id}

Redis errors are never caught here; they are infrastructure faults for the
caller to classify.
"""

from typing import Mapping, Optional

import redis.asyncio as aioredis

DEFAULT_CODE_PREFIX = "verify"
DEFAULT_SESSION_PREFIX = "vs"


class CodeStore:
    def __init__(
        self,
        redis_client: aioredis.Redis,
        code_prefix: str = DEFAULT_CODE_PREFIX,
        session_prefix: str = DEFAULT_SESSION_PREFIX,
    ) -> None:
        self._redis = redis_client
        self.code_prefix = code_prefix
        self.session_prefix = session_prefix

    # ── Keys ────────────────────────────────────────────────────────────────

    def _record_base(self, namespace: str, subject: str) -> str:
        return f"{self.code_prefix}:{namespace}:{subject}"

    def code_key(self, namespace: str, subject: str) -> str:
        return f"{self._record_base(namespace, subject)}:code"

    def attempts_key(self, namespace: str, subject: str) -> str:
        return f"{self._record_base(namespace, subject)}:attempts"

    def rate_key(self, namespace: str, subject: str) -> str:
        return f"{self._record_base(namespace, subject)}:rate"

    def session_key(self, session_id: str) -> str:
        return f"{self.session_prefix}:{session_id}"

    # ── Operations ──────────────────────────────────────────────────────────

    async def get(self, key: str) -> Optional[str]:
        return await self._redis.get(key)

    async def mget(self, *keys: str) -> list[Optional[str]]:
        return list(await self._redis.mget(keys))

    async def set(
        self, key: str, value: str, ttl_seconds: int, *, only_if_absent: bool = False
    ) -> bool:
        """SET key value EX ttl [NX]. Returns False only when NX refused."""
        result = await self._redis.set(key, value, ex=ttl_seconds, nx=only_if_absent)
        return bool(result)

    async def set_many(self, mapping: Mapping[str, str], ttl_seconds: int) -> None:
        """Write every pair with the same expiry in one MULTI/EXEC."""
        async with self._redis.pipeline(transaction=True) as pipe:
            for key, value in mapping.items():
                pipe.set(key, value, ex=ttl_seconds)
            await pipe.execute()

    async def incr(self, key: str) -> int:
        return int(await self._redis.incr(key))

    async def incr_in_window(self, key: str, window_seconds: int) -> int:
        """INCR a windowed counter and make sure it carries an expiry.

        The window starts on the first increment. A counter left without a
        TTL (an EXPIRE that never landed) gets one on the next call instead
        of blocking the subject forever.
        """
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.ttl(key)
            count, ttl = await pipe.execute()
        count = int(count)
        if count == 1 or int(ttl) == -1:
            await self._redis.expire(key, window_seconds)
        return count

    async def decr(self, key: str) -> int:
        return int(await self._redis.decr(key))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._redis.expire(key, ttl_seconds))

    async def ttl(self, key: str) -> int:
        """Remaining seconds; -2 if the key is absent, -1 if it has no expiry."""
        return int(await self._redis.ttl(key))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._redis.delete(*keys))
