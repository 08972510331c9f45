"""
Account flows built on verification codes and sessions.

EmailVerificationFlow: register -> resend -> confirm.
PasswordResetFlow: request -> reset.

Both hand the client a session id instead of the email and resolve the
subject server-side. Messages for a bad session and a bad code are worded
alike so neither reveals whether an account or a code exists.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Protocol

from config import VerificationSettings
from errors import (
    AppError,
    ConflictError,
    NotFoundError,
    RateLimitExceededError,
    VerificationFailedError,
)
from infrastructure.email.protocol import EmailProvider
from services.verification_service import (
    NAMESPACE_EMAIL_VERIFICATION,
    NAMESPACE_PASSWORD_RESET,
    VerificationOptions,
    VerificationService,
)
from services.verification_session_service import VerificationSessionService
from shared.crypto import hash_password
from shared.logging import get_logger, hash_subject

log = get_logger(__name__)

INVALID_CODE_MESSAGE = "Invalid or expired verification code"


@dataclass
class UserAccount:
    email: str
    is_verified: bool = False


class UserDirectory(Protocol):
    async def get_by_email(self, email: str) -> Optional[UserAccount]: ...

    async def mark_verified(self, email: str) -> None: ...

    async def set_password_hash(self, email: str, password_hash: str) -> None: ...


class _AccountFlow:
    def __init__(
        self,
        verification: VerificationService,
        sessions: VerificationSessionService,
        users: UserDirectory,
        email: EmailProvider,
        settings: Optional[VerificationSettings] = None,
    ) -> None:
        self._verification = verification
        self._sessions = sessions
        self._users = users
        self._email = email
        self._settings = settings or VerificationSettings()

    @property
    def code_ttl_seconds(self) -> int:
        return self._settings.account_code_ttl_seconds

    def _options(
        self, namespace: str, subject: str, rate_max: int, rate_window: int
    ) -> VerificationOptions:
        return replace(
            self._settings.default_options(namespace, subject),
            ttl_sec=self.code_ttl_seconds,
            rate_limit_max=rate_max,
            rate_limit_window_sec=rate_window,
        )


class EmailVerificationFlow(_AccountFlow):
    async def start(self, email: str) -> str:
        """Open a session for a newly registered *email* and mail the first code.

        A refused or undelivered code does not fail registration; the user
        can resend from the returned session.
        """
        session_id = await self._sessions.create_session(email)
        try:
            result = await self._verification.generate(
                self._options(
                    NAMESPACE_EMAIL_VERIFICATION,
                    email,
                    self._settings.register_rate_limit_max,
                    self._settings.register_rate_limit_window_seconds,
                )
            )
        except RateLimitExceededError:
            log.warning(
                "verification_email_skipped",
                subject_hash=hash_subject(email),
                reason="rate_limited",
            )
            return session_id

        sent = await self._email.send_verification_email(
            email, result.code, self.code_ttl_seconds
        )
        if not sent:
            log.error("verification_email_failed", subject_hash=hash_subject(email))
        return session_id

    async def _resolve_unverified(self, session_id: str) -> str:
        email = await self._sessions.require_subject(session_id)
        user = await self._users.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if user.is_verified:
            await self._sessions.delete_session(session_id)
            raise ConflictError("Account is already verified")
        return email

    async def resend(self, session_id: str) -> None:
        """Issue and mail a new code, giving the session a fresh window.

        Raises:
            InvalidOrExpiredSessionError, NotFoundError, ConflictError,
            RateLimitExceededError
        """
        email = await self._resolve_unverified(session_id)
        result = await self._verification.generate(
            self._options(
                NAMESPACE_EMAIL_VERIFICATION,
                email,
                self._settings.resend_rate_limit_max,
                self._settings.resend_rate_limit_window_seconds,
            )
        )
        sent = await self._email.send_verification_email(
            email, result.code, self.code_ttl_seconds
        )
        if not sent:
            log.error("verification_email_failed", subject_hash=hash_subject(email))
            raise AppError("Failed to send verification email")

        await self._sessions.extend_session(session_id)

    async def confirm(self, session_id: str, code: str) -> None:
        """Check *code*, mark the account verified and close the session."""
        email = await self._resolve_unverified(session_id)
        ok = await self._verification.verify_and_consume(
            VerificationOptions(namespace=NAMESPACE_EMAIL_VERIFICATION, subject=email),
            code,
        )
        if not ok:
            raise VerificationFailedError(INVALID_CODE_MESSAGE, field="code")

        await self._users.mark_verified(email)
        await self._sessions.delete_session(session_id)
        log.info("account_verified", subject_hash=hash_subject(email))


class PasswordResetFlow(_AccountFlow):
    async def request(self, email: str) -> str:
        """Return a session id for *email*; mail a code only if the account exists.

        Known and unknown addresses take the same path up to the mail: both
        spend an issuance slot and hash a code, so neither the rate limit nor
        the argon2 cost tells them apart. The code for an unknown address is
        dropped.

        Raises:
            RateLimitExceededError
        """
        session_id = await self._sessions.create_session(email)
        user = await self._users.get_by_email(email)
        result = await self._verification.generate(
            self._options(
                NAMESPACE_PASSWORD_RESET,
                email,
                self._settings.reset_rate_limit_max,
                self._settings.reset_rate_limit_window_seconds,
            )
        )
        if user is None:
            log.info("password_reset_unknown_subject", subject_hash=hash_subject(email))
            return session_id

        sent = await self._email.send_password_reset_email(
            email, result.code, self.code_ttl_seconds
        )
        if not sent:
            log.error("password_reset_email_failed", subject_hash=hash_subject(email))
        return session_id

    async def reset(self, session_id: str, code: str, new_password: str) -> None:
        email = await self._sessions.require_subject(session_id)
        ok = await self._verification.verify_and_consume(
            VerificationOptions(namespace=NAMESPACE_PASSWORD_RESET, subject=email),
            code,
        )
        # A guessed code for an address with no account changes nothing
        if not ok or await self._users.get_by_email(email) is None:
            raise VerificationFailedError(INVALID_CODE_MESSAGE, field="code")

        await self._users.set_password_hash(email, hash_password(new_password))
        await self._sessions.delete_session(session_id)
        log.info("password_reset_completed", subject_hash=hash_subject(email))
