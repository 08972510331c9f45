"""
One-time numeric verification codes backed by Redis.

Issues, rate-limits, stores (argon2-hashed), verifies and retires codes
scoped by ``(namespace, subject)``. Nothing is held in process: every call
round-trips to the store, which also enforces expiry.

Records per (namespace, subject):
  - ``...:code``      argon2 hash of the current code
  - ``...:attempts``  remaining wrong guesses, same TTL as the hash
  - ``...:rate``      issuance counter for the current rate-limit window

The plaintext code only ever lives in the GenerateResult handed back to the
caller; it is neither persisted nor logged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from errors import RateLimitExceededError, ValidationError
from infrastructure.cache.code_store import CodeStore
from shared.crypto import hash_code, verify_code
from shared.generators import generate_otp_code
from shared.logging import get_logger, hash_subject

log = get_logger(__name__)

# Namespaces used by the account flows
NAMESPACE_EMAIL_VERIFICATION = "email_verification"
NAMESPACE_PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class VerificationOptions:
    namespace: str
    subject: str
    ttl_sec: int = 600
    max_attempts: int = 5
    length: int = 6
    rate_limit_window_sec: int = 60
    rate_limit_max: int = 3

    def __post_init__(self) -> None:
        if not self.namespace:
            raise ValidationError("namespace must not be empty", field="namespace")
        # Keys are "{prefix}:{namespace}:{subject}:{suffix}"; a colon-free
        # namespace keeps that split unambiguous
        if ":" in self.namespace:
            raise ValidationError("namespace must not contain ':'", field="namespace")
        if not self.subject:
            raise ValidationError("subject must not be empty", field="subject")
        for name in (
            "ttl_sec",
            "max_attempts",
            "length",
            "rate_limit_window_sec",
            "rate_limit_max",
        ):
            if getattr(self, name) <= 0:
                raise ValidationError(f"{name} must be positive", field=name)


@dataclass(frozen=True)
class GenerateResult:
    code: str
    expires_at: datetime

    @property
    def expires_at_ms(self) -> int:
        """Expiry as epoch milliseconds."""
        return int(self.expires_at.timestamp() * 1000)


class VerificationService:
    def __init__(self, store: CodeStore) -> None:
        self._store = store

    async def generate(self, options: VerificationOptions) -> GenerateResult:
        """Issue a fresh code for (namespace, subject).

        Raises:
            RateLimitExceededError: more than ``rate_limit_max`` codes were
                requested inside the current window. Nothing is stored.
        """
        namespace, subject = options.namespace, options.subject

        # Counter survives consume/expiry of the code itself
        rate_key = self._store.rate_key(namespace, subject)
        current = await self._store.incr_in_window(
            rate_key, options.rate_limit_window_sec
        )
        if current > options.rate_limit_max:
            log.warning(
                "verification_rate_limited",
                namespace=namespace,
                subject_hash=hash_subject(subject),
                count=current,
                limit=options.rate_limit_max,
            )
            raise RateLimitExceededError("Too many requests. Please try again later.")

        code = generate_otp_code(options.length)
        await self._store.set_many(
            {
                self._store.code_key(namespace, subject): hash_code(code),
                self._store.attempts_key(namespace, subject): str(
                    options.max_attempts
                ),
            },
            options.ttl_sec,
        )

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=options.ttl_sec)
        log.info(
            "verification_code_issued",
            namespace=namespace,
            subject_hash=hash_subject(subject),
            ttl_sec=options.ttl_sec,
            max_attempts=options.max_attempts,
        )
        return GenerateResult(code=code, expires_at=expires_at)

    async def verify(self, options: VerificationOptions, code: str) -> bool:
        """Check *code* without consuming it.

        Wrong, expired and exhausted codes all return False. A wrong guess
        costs one attempt; once attempts reach zero even the right code is
        refused until a new one is generated.
        """
        namespace, subject = options.namespace, options.subject
        attempts_key = self._store.attempts_key(namespace, subject)

        code_hash, attempts_raw = await self._store.mget(
            self._store.code_key(namespace, subject), attempts_key
        )
        if not code_hash:
            log.debug(
                "verification_failed",
                namespace=namespace,
                subject_hash=hash_subject(subject),
                reason="no_code",
            )
            return False

        try:
            attempts = int(attempts_raw if attempts_raw is not None else "0")
        except ValueError:
            attempts = 0
        if attempts <= 0:
            log.warning(
                "verification_failed",
                namespace=namespace,
                subject_hash=hash_subject(subject),
                reason="attempts_exhausted",
            )
            return False

        if not verify_code(code_hash, code):
            remaining = await self._store.decr(attempts_key)
            log.warning(
                "verification_failed",
                namespace=namespace,
                subject_hash=hash_subject(subject),
                reason="mismatch",
                remaining_attempts=max(remaining, 0),
            )
            return False

        return True

    async def consume(self, namespace: str, subject: str) -> None:
        """Delete the code and its attempt counter. Idempotent."""
        await self._store.delete(
            self._store.code_key(namespace, subject),
            self._store.attempts_key(namespace, subject),
        )

    async def verify_and_consume(self, options: VerificationOptions, code: str) -> bool:
        """Verify *code* and retire it on success (one-time use)."""
        ok = await self.verify(options, code)
        if ok:
            await self.consume(options.namespace, options.subject)
            log.info(
                "verification_succeeded",
                namespace=options.namespace,
                subject_hash=hash_subject(options.subject),
            )
        return ok

    async def is_rate_limited(
        self, namespace: str, subject: str, rate_limit_max: int = 3
    ) -> bool:
        """True if the next generate() in this window would be refused."""
        raw = await self._store.get(self._store.rate_key(namespace, subject))
        if raw is None:
            return False
        try:
            return int(raw) >= rate_limit_max
        except ValueError:
            return False
