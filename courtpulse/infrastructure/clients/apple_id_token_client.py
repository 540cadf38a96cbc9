from __future__ import annotations

import logging

import jwt

from courtpulse.application.dto.auth import AppleIdentityInfo
from courtpulse.application.ports.identity_provider_port import AppleIdentityPort
from courtpulse.domain.exceptions import InvalidAssertionError, UpstreamUnavailableError

from .google_oidc_client import parse_email_verified


logger = logging.getLogger(__name__)

APPLE_ISSUER = "https://appleid.apple.com"
APPLE_KEYS_URL = "https://appleid.apple.com/auth/keys"


class AppleIdTokenClient(AppleIdentityPort):
    """Verifies Sign in with Apple identity tokens against Apple's published JWKS.

    Apple only sends ``email`` on the first authorization from a device, so the
    returned identity may have no email; the resolver decides whether that is
    acceptable.
    """

    def __init__(
        self,
        *,
        client_id: str,
        keys_url: str = APPLE_KEYS_URL,
        timeout_seconds: float = 10.0,
        jwks_client: jwt.PyJWKClient | None = None,
    ):
        self._client_id = client_id
        self._jwks_client = jwks_client or jwt.PyJWKClient(
            keys_url,
            cache_keys=True,
            lifespan=3600,
            timeout=int(timeout_seconds),
        )

    def verify_id_token(self, *, id_token: str) -> AppleIdentityInfo:
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(id_token)
        except jwt.PyJWKClientConnectionError as exc:
            logger.warning("apple_id_token_client: keys_unavailable error=%s", exc)
            raise UpstreamUnavailableError("Apple sign-in is temporarily unavailable.") from exc
        except (jwt.PyJWKClientError, jwt.PyJWTError) as exc:
            logger.info("apple_id_token_client: unknown_signing_key error=%s", exc)
            raise InvalidAssertionError("Invalid Apple token") from exc

        try:
            payload = jwt.decode(
                id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self._client_id,
                issuer=APPLE_ISSUER,
                options={"require": ["sub", "exp", "iat", "aud", "iss"]},
            )
        except jwt.PyJWTError as exc:
            logger.info("apple_id_token_client: invalid_id_token error=%s", exc)
            raise InvalidAssertionError("Invalid Apple token") from exc

        subject = payload.get("sub")
        if not subject:
            raise InvalidAssertionError("Apple id_token missing subject.")

        email = payload.get("email")
        email_verified = payload.get("email_verified")
        return AppleIdentityInfo(
            subject=str(subject),
            email=str(email) if email else None,
            email_verified=parse_email_verified(email_verified) if email_verified is not None else None,
        )
