from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _bool(name: str, default: bool = False) -> bool:
    value = _env(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_env: str
    log_level: str
    postgres_dsn: str
    db_connect_timeout_seconds: int
    db_statement_timeout_ms: int
    jwt_secret: str
    jwt_access_ttl_minutes: int
    jwt_refresh_ttl_days: int
    refresh_token_lookup_secret: str
    google_client_id: str
    apple_client_id: str
    apple_keys_url: str
    provider_timeout_seconds: float
    link_requires_verified_email: bool

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def validate_for_startup(self) -> None:
        if not self.postgres_dsn:
            raise RuntimeError("Missing POSTGRES_DSN in .env")
        if not self.jwt_secret:
            raise RuntimeError("Missing JWT_SECRET in .env")
        # Development may run without providers and sign in through dev login.
        if self.is_production and not self.google_client_id and not self.apple_client_id:
            raise RuntimeError(
                "At least one OAuth provider (GOOGLE_CLIENT_ID or APPLE_CLIENT_ID) must be configured in production"
            )


def get_settings() -> Settings:
    jwt_secret = _env("JWT_SECRET", "")
    return Settings(
        app_env=_env("APP_ENV", "development"),
        log_level=_env("LOG_LEVEL", "INFO"),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        db_connect_timeout_seconds=int(_env("DB_CONNECT_TIMEOUT_SECONDS", "5")),
        db_statement_timeout_ms=int(_env("DB_STATEMENT_TIMEOUT_MS", "10000")),
        jwt_secret=jwt_secret,
        jwt_access_ttl_minutes=int(_env("JWT_ACCESS_TTL_MINUTES", "15")),
        jwt_refresh_ttl_days=int(_env("JWT_REFRESH_TTL_DAYS", "30")),
        refresh_token_lookup_secret=_env("REFRESH_TOKEN_LOOKUP_SECRET", "") or jwt_secret,
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        apple_client_id=_env("APPLE_CLIENT_ID", ""),
        apple_keys_url=_env("APPLE_KEYS_URL", "https://appleid.apple.com/auth/keys"),
        provider_timeout_seconds=float(_env("PROVIDER_TIMEOUT_SECONDS", "10")),
        link_requires_verified_email=_bool("LINK_REQUIRES_VERIFIED_EMAIL", False),
    )
