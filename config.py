"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Verification defaults mirror the per-call defaults of VerificationOptions;
the account flows read their own code TTL and issuance windows from the
account_* / *_rate_limit_* fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from services.verification_service import VerificationOptions


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    redis_uri: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float = 5.0


class VerificationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    code_ttl_seconds: int = 600
    code_max_attempts: int = 5
    code_length: int = 6
    rate_limit_window_seconds: int = 60
    rate_limit_max: int = 3

    # Account flows: 15 minute codes, per-flow issuance windows
    account_code_ttl_seconds: int = 900
    register_rate_limit_max: int = 3
    register_rate_limit_window_seconds: int = 900
    resend_rate_limit_max: int = 6
    resend_rate_limit_window_seconds: int = 86400
    reset_rate_limit_max: int = 3
    reset_rate_limit_window_seconds: int = 3600

    session_ttl_seconds: int = 900

    code_key_prefix: str = "verify"
    session_key_prefix: str = "vs"

    def default_options(self, namespace: str, subject: str) -> "VerificationOptions":
        from services.verification_service import VerificationOptions

        return VerificationOptions(
            namespace=namespace,
            subject=subject,
            ttl_sec=self.code_ttl_seconds,
            max_attempts=self.code_max_attempts,
            length=self.code_length,
            rate_limit_window_sec=self.rate_limit_window_seconds,
            rate_limit_max=self.rate_limit_max,
        )


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    app_name: str = "verification"

    # Sub-configs (composed via model_validator below)
    redis: Optional[RedisSettings] = None
    verification: Optional[VerificationSettings] = None
    logging: Optional[LoggingSettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.redis is None:
            self.redis = RedisSettings()
        if self.verification is None:
            self.verification = VerificationSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
