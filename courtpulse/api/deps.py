from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from fastapi import Header, HTTPException

from courtpulse.application.services.account_resolver import AccountResolver
from courtpulse.application.services.refresh_token_store import RefreshTokenStore
from courtpulse.application.use_cases.authenticate import AuthenticateUseCase
from courtpulse.application.use_cases.dev_login import DevLoginUseCase
from courtpulse.application.use_cases.get_me import GetMeUseCase
from courtpulse.application.use_cases.logout_session import LogoutSessionUseCase
from courtpulse.application.use_cases.refresh_session import RefreshSessionUseCase
from courtpulse.domain.entities.user import User
from courtpulse.domain.exceptions import (
    AccessTokenExpiredError,
    AccessTokenMalformedError,
    UpstreamUnavailableError,
)
from courtpulse.domain.services.account_linking import LinkingPolicy
from courtpulse.infrastructure.clients.apple_id_token_client import AppleIdTokenClient
from courtpulse.infrastructure.clients.google_oidc_client import GoogleOidcClient
from courtpulse.infrastructure.db.engine import get_engine
from courtpulse.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from courtpulse.infrastructure.security.secret_hasher import RefreshSecretHasher
from courtpulse.infrastructure.security.token_service import JwtTokenService
from courtpulse.shared.config import Settings, get_settings


def get_app_settings() -> Settings:
    return get_settings()


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(
        settings.postgres_dsn,
        settings.db_connect_timeout_seconds,
        settings.db_statement_timeout_ms,
    )


def get_accounts_repository() -> SqlAccountsRepository:
    return SqlAccountsRepository(_get_db_engine())


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    if not settings.jwt_secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET is required.")
    return JwtTokenService(
        jwt_secret=settings.jwt_secret,
        access_ttl_minutes=settings.jwt_access_ttl_minutes,
    )


@lru_cache(maxsize=1)
def _get_secret_hasher() -> RefreshSecretHasher:
    settings = get_settings()
    if not settings.refresh_token_lookup_secret:
        raise HTTPException(status_code=500, detail="REFRESH_TOKEN_LOOKUP_SECRET or JWT_SECRET is required.")
    return RefreshSecretHasher(lookup_secret=settings.refresh_token_lookup_secret)


@lru_cache(maxsize=1)
def _get_google_identity_client() -> GoogleOidcClient | None:
    settings = get_settings()
    if not settings.google_client_id:
        return None
    return GoogleOidcClient(
        client_id=settings.google_client_id,
        timeout_seconds=settings.provider_timeout_seconds,
    )


@lru_cache(maxsize=1)
def _get_apple_identity_client() -> AppleIdTokenClient | None:
    settings = get_settings()
    if not settings.apple_client_id:
        return None
    return AppleIdTokenClient(
        client_id=settings.apple_client_id,
        keys_url=settings.apple_keys_url,
        timeout_seconds=settings.provider_timeout_seconds,
    )


def _get_refresh_token_store(accounts_repository: SqlAccountsRepository) -> RefreshTokenStore:
    settings = get_settings()
    return RefreshTokenStore(
        auth_port=accounts_repository,
        secret_hasher=_get_secret_hasher(),
        ttl=timedelta(days=settings.jwt_refresh_ttl_days),
    )


def _get_account_resolver(accounts_repository: SqlAccountsRepository) -> AccountResolver:
    settings = get_settings()
    return AccountResolver(
        auth_port=accounts_repository,
        policy=LinkingPolicy(require_verified_email=settings.link_requires_verified_email),
    )


def get_authenticate_use_case() -> AuthenticateUseCase:
    accounts_repository = get_accounts_repository()
    return AuthenticateUseCase(
        auth_port=accounts_repository,
        account_resolver=_get_account_resolver(accounts_repository),
        refresh_tokens=_get_refresh_token_store(accounts_repository),
        token_port=_get_token_service(),
        google_identity_port=_get_google_identity_client(),
        apple_identity_port=_get_apple_identity_client(),
    )


def get_dev_login_use_case() -> DevLoginUseCase:
    accounts_repository = get_accounts_repository()
    return DevLoginUseCase(
        auth_port=accounts_repository,
        account_resolver=_get_account_resolver(accounts_repository),
        refresh_tokens=_get_refresh_token_store(accounts_repository),
        token_port=_get_token_service(),
    )


def get_refresh_session_use_case() -> RefreshSessionUseCase:
    accounts_repository = get_accounts_repository()
    return RefreshSessionUseCase(
        auth_port=accounts_repository,
        refresh_tokens=_get_refresh_token_store(accounts_repository),
        token_port=_get_token_service(),
    )


def get_logout_session_use_case() -> LogoutSessionUseCase:
    return LogoutSessionUseCase(refresh_tokens=_get_refresh_token_store(get_accounts_repository()))


def get_get_me_use_case() -> GetMeUseCase:
    return GetMeUseCase()


def get_current_user(
    authorization: str | None = Header(default=None),
) -> User:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid authorization header format")
    token = parts[1].strip()

    token_service = _get_token_service()
    try:
        payload = token_service.decode_access_token(token=token)
    except AccessTokenExpiredError as exc:
        raise HTTPException(status_code=401, detail="Token expired") from exc
    except AccessTokenMalformedError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    try:
        user = get_accounts_repository().get_user_by_id(user_id=payload.user_id)
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if user is None:
        raise HTTPException(status_code=401, detail="User not found.")
    return user
