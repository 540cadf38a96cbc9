from __future__ import annotations

from typing import Any

from courtpulse.application.dto.auth import AuthTokensOutput, AuthUserOutput
from courtpulse.application.ports.token_port import TokenPort
from courtpulse.application.services.refresh_token_store import RefreshTokenStore, utcnow
from courtpulse.domain.entities.user import User


def build_auth_user_output(user: User) -> AuthUserOutput:
    return AuthUserOutput(
        id=user.id,
        email=user.email,
        name=user.name,
        profile_picture_url=user.profile_picture_url,
    )


def issue_tokens(
    *,
    user: User,
    refresh_tokens: RefreshTokenStore,
    token_port: TokenPort,
    device_info: dict[str, Any] | None,
) -> AuthTokensOutput:
    access_token, access_expires_at = token_port.create_access_token(
        user_id=user.id,
        email=user.email,
        now=utcnow(),
    )
    issued = refresh_tokens.generate(user_id=user.id, device_info=device_info)
    return AuthTokensOutput(
        user=build_auth_user_output(user),
        access_token=access_token,
        refresh_token=issued.token,
        access_expires_at=access_expires_at,
        refresh_expires_at=issued.credential.expires_at,
    )
