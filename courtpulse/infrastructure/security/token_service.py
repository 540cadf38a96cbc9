from __future__ import annotations

from datetime import datetime, timedelta

import jwt

from courtpulse.application.dto.auth import AccessTokenPayload
from courtpulse.application.ports.token_port import TokenPort
from courtpulse.domain.exceptions import AccessTokenExpiredError, AccessTokenMalformedError


class JwtTokenService(TokenPort):
    """Stateless HS256 access tokens. There is no revocation list; the TTL bounds exposure."""

    def __init__(
        self,
        *,
        jwt_secret: str,
        access_ttl_minutes: int = 15,
    ):
        self._jwt_secret = jwt_secret
        self._access_ttl_minutes = access_ttl_minutes

    def create_access_token(self, *, user_id: str, email: str, now: datetime) -> tuple[str, datetime]:
        exp = now + timedelta(minutes=self._access_ttl_minutes)
        payload = {
            "sub": user_id,
            "email": email,
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        token = jwt.encode(payload, self._jwt_secret, algorithm="HS256")
        return token, exp

    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        try:
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=["HS256"],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AccessTokenExpiredError("Token expired") from exc
        except jwt.PyJWTError as exc:
            raise AccessTokenMalformedError("Invalid token") from exc

        if payload.get("type") != "access":
            raise AccessTokenMalformedError("Invalid token type.")

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise AccessTokenMalformedError("Invalid token subject.")

        email = payload.get("email")
        if not email or not isinstance(email, str):
            raise AccessTokenMalformedError("Invalid token email.")

        return AccessTokenPayload(user_id=user_id, email=email)
