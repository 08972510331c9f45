"""
Service providers.

Builds the verification services once per process around a single shared
Redis client. The services are stateless, so callers hold one instance of
each for the lifetime of the process.
"""

from __future__ import annotations

from dataclasses import dataclass

import redis.asyncio as aioredis

from config import AppSettings
from infrastructure.cache.code_store import CodeStore
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.email.protocol import EmailProvider
from services.account_verification import (
    EmailVerificationFlow,
    PasswordResetFlow,
    UserDirectory,
)
from services.verification_service import VerificationService
from services.verification_session_service import VerificationSessionService


@dataclass
class VerificationServices:
    redis: aioredis.Redis
    store: CodeStore
    codes: VerificationService
    sessions: VerificationSessionService

    async def aclose(self) -> None:
        await self.redis.aclose()


def build_services(settings: AppSettings, redis_client: aioredis.Redis) -> VerificationServices:
    """Wire the store and services around an existing *redis_client*."""
    store = CodeStore(
        redis_client,
        code_prefix=settings.verification.code_key_prefix,
        session_prefix=settings.verification.session_key_prefix,
    )
    return VerificationServices(
        redis=redis_client,
        store=store,
        codes=VerificationService(store),
        sessions=VerificationSessionService(
            store, ttl_seconds=settings.verification.session_ttl_seconds
        ),
    )


@dataclass
class AccountFlows:
    email_verification: EmailVerificationFlow
    password_reset: PasswordResetFlow


def build_flows(
    settings: AppSettings,
    services: VerificationServices,
    users: UserDirectory,
    email: EmailProvider,
) -> AccountFlows:
    """Wire the account flows on top of *services* with the configured numbers."""
    args = (services.codes, services.sessions, users, email, settings.verification)
    return AccountFlows(
        email_verification=EmailVerificationFlow(*args),
        password_reset=PasswordResetFlow(*args),
    )


async def connect(settings: AppSettings) -> VerificationServices:
    """Open the Redis connection and return the wired services."""
    redis_client = await create_redis_client(settings.redis)
    return build_services(settings, redis_client)
