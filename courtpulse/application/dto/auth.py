from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from courtpulse.domain.entities.user import AuthProvider, RefreshCredential


@dataclass(frozen=True)
class AuthUserOutput:
    id: str
    email: str
    name: str | None
    profile_picture_url: str | None


@dataclass(frozen=True)
class AuthenticateInput:
    provider: AuthProvider
    id_token: str
    device_info: dict[str, Any] | None


@dataclass(frozen=True)
class DevLoginInput:
    email: str
    name: str | None
    device_info: dict[str, Any] | None


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str
    device_info: dict[str, Any] | None


@dataclass(frozen=True)
class LogoutInput:
    refresh_token: str


@dataclass(frozen=True)
class AuthTokensOutput:
    user: AuthUserOutput
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class IssuedRefreshToken:
    token: str
    credential: RefreshCredential


@dataclass(frozen=True)
class AccessTokenPayload:
    user_id: str
    email: str


@dataclass(frozen=True)
class GoogleIdentityInfo:
    subject: str
    email: str
    email_verified: bool
    name: str | None
    picture: str | None


@dataclass(frozen=True)
class AppleIdentityInfo:
    subject: str
    email: str | None
    email_verified: bool | None
