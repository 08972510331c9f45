"""
Verification sessions: opaque random ids standing in for an email.

The client holds only the session id; the subject is looked up server-side
on every verify/resend, so identity never travels through client input.

Lifecycle: absent -> active (create) -> [extended] -> deleted (delete or TTL).
"""

from __future__ import annotations

from typing import Optional

from errors import AppError, InvalidOrExpiredSessionError
from infrastructure.cache.code_store import CodeStore
from shared.generators import generate_session_id
from shared.logging import get_logger, hash_subject

log = get_logger(__name__)

SESSION_TTL_SECONDS = 15 * 60
_MAX_CREATE_ATTEMPTS = 3


class VerificationSessionService:
    def __init__(self, store: CodeStore, ttl_seconds: int = SESSION_TTL_SECONDS) -> None:
        self._store = store
        self.ttl_seconds = ttl_seconds

    async def create_session(self, subject: str) -> str:
        """Bind a new random session id to *subject* and return the id."""
        for _ in range(_MAX_CREATE_ATTEMPTS):
            session_id = generate_session_id()
            created = await self._store.set(
                self._store.session_key(session_id),
                subject,
                self.ttl_seconds,
                only_if_absent=True,
            )
            if created:
                log.info(
                    "verification_session_created",
                    subject_hash=hash_subject(subject),
                    ttl_seconds=self.ttl_seconds,
                )
                return session_id
            log.warning("verification_session_collision")

        raise AppError("Could not allocate a verification session.")

    async def get_subject(self, session_id: str) -> Optional[str]:
        """Subject bound to *session_id*, or None if unknown or expired."""
        if not session_id:
            return None
        return await self._store.get(self._store.session_key(session_id))

    async def require_subject(self, session_id: str) -> str:
        subject = await self.get_subject(session_id)
        if subject is None:
            raise InvalidOrExpiredSessionError(
                "Invalid or expired verification session"
            )
        return subject

    async def delete_session(self, session_id: str) -> None:
        if not session_id:
            return
        await self._store.delete(self._store.session_key(session_id))

    async def extend_session(self, session_id: str) -> bool:
        """Reset the session TTL. Returns False if the session is gone."""
        if not session_id:
            return False
        return await self._store.expire(
            self._store.session_key(session_id), self.ttl_seconds
        )
