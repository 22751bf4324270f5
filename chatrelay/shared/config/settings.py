# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import sys
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_SECRETS = ("dev", "development", "test", "", "dev-insecure-secret-change-me-0123456789")


def _section_config() -> SettingsConfigDict:
    return SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_by_name=True,
        extra="ignore",
    )


class DatabaseConfig(BaseSettings):
    url: str = Field("sqlite:///chatrelay.db", alias="DATABASE_URL")
    pool_size: int = Field(10, ge=1, alias="DATABASE_POOL_SIZE")
    max_overflow: int = Field(5, ge=0, alias="DATABASE_MAX_OVERFLOW")
    pool_timeout: float = Field(30.0, ge=0.1, alias="DATABASE_POOL_TIMEOUT")

    model_config = _section_config()


class TokenConfig(BaseSettings):
    ttl_seconds: int = Field(24 * 60 * 60, ge=1, alias="TOKEN_TTL")
    leeway_seconds: int = Field(30, ge=0, le=300, alias="TOKEN_LEEWAY")
    algorithm: str = Field("HS256", pattern=r"^HS(256|384|512)$", alias="TOKEN_ALGORITHM")

    model_config = _section_config()


class ChatConfig(BaseSettings):
    queue_capacity: int = Field(256, ge=1, alias="SUBSCRIBER_QUEUE_CAPACITY")
    history_limit: int = Field(50, ge=1, alias="RECENT_MESSAGES_LIMIT")
    max_content_length: int = Field(4000, ge=1, alias="MESSAGE_MAX_LENGTH")
    keepalive_seconds: float = Field(15.0, gt=0, alias="STREAM_KEEPALIVE")

    model_config = _section_config()


class SecurityConfig(BaseSettings):
    # Cookie security
    cookie_secure: bool = Field(False, alias="COOKIE_SECURE")
    cookie_samesite: str = Field("Strict", alias="COOKIE_SAMESITE")

    # CORS, comma separated
    allowed_origins: str = Field("*", alias="ALLOWED_ORIGINS")

    # Rate limiting
    enable_rate_limit: bool = Field(True, alias="ENABLE_RATE_LIMIT")
    rate_limit_requests: int = Field(10, ge=1, alias="RL_LIMIT")
    rate_limit_window: float = Field(60.0, gt=0, alias="RL_WINDOW")

    model_config = _section_config()

    def origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


def _database_config_factory() -> DatabaseConfig:
    return DatabaseConfig()  # type: ignore[call-arg]


def _token_config_factory() -> TokenConfig:
    return TokenConfig()  # type: ignore[call-arg]


def _chat_config_factory() -> ChatConfig:
    return ChatConfig()  # type: ignore[call-arg]


def _security_config_factory() -> SecurityConfig:
    return SecurityConfig()  # type: ignore[call-arg]


class AppConfig(BaseSettings):
    app_env: str = Field("development", alias="APP_ENV")
    secret_key: str = Field("dev-insecure-secret-change-me-0123456789", alias="SECRET_KEY")
    debug_logging: bool = Field(False, alias="DEBUG_LOGGING")

    database: DatabaseConfig = Field(default_factory=_database_config_factory)
    tokens: TokenConfig = Field(default_factory=_token_config_factory)
    chat: ChatConfig = Field(default_factory=_chat_config_factory)
    security: SecurityConfig = Field(default_factory=_security_config_factory)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_assignment=True,
        validate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "AppConfig":
        if not self.is_production():
            return self

        if self.secret_key in _INSECURE_SECRETS or len(self.secret_key) < 32:
            print(
                "\n❌ CRITICAL SECURITY ERROR: Insecure SECRET_KEY detected in production!\n"
                "   SECRET_KEY signs every session token and must be a strong random value.\n"
                "   Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(48))\"\n",
                file=sys.stderr,
            )
            sys.exit(1)

        warnings = []
        if not self.security.cookie_secure:
            warnings.append("⚠️  Cookie Secure flag is DISABLED (use HTTPS!)")
        if "*" in self.security.origins():
            warnings.append("⚠️  CORS allows wildcard (*) origins")

        if warnings:
            print("\n⚠️  PRODUCTION SECURITY WARNINGS:", file=sys.stderr)
            for warning in warnings:
                print(f"   {warning}", file=sys.stderr)

        return self

    def is_production(self) -> bool:
        return self.app_env.lower() in ("production", "prod")


@lru_cache(maxsize=1)
def load_config() -> AppConfig:
    return AppConfig()  # type: ignore[call-arg]


__all__ = [
    "AppConfig",
    "ChatConfig",
    "DatabaseConfig",
    "SecurityConfig",
    "TokenConfig",
    "load_config",
]
