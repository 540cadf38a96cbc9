from __future__ import annotations

import functools
import logging

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests
from google.oauth2 import id_token

from courtpulse.application.dto.auth import GoogleIdentityInfo
from courtpulse.application.ports.identity_provider_port import GoogleIdentityPort
from courtpulse.domain.exceptions import InvalidAssertionError, MissingEmailError, UpstreamUnavailableError


logger = logging.getLogger(__name__)


class GoogleOidcClient(GoogleIdentityPort):
    def __init__(self, *, client_id: str, timeout_seconds: float = 10.0):
        self._client_id = client_id
        self._timeout_seconds = timeout_seconds

    def verify_id_token(self, *, id_token: str) -> GoogleIdentityInfo:
        try:
            payload = id_token_verify(
                token=id_token,
                audience=self._client_id,
                timeout_seconds=self._timeout_seconds,
            )
        except google_exceptions.TransportError as exc:
            logger.warning("google_oidc_client: certs_unavailable error=%s", exc)
            raise UpstreamUnavailableError("Google sign-in is temporarily unavailable.") from exc
        except (ValueError, google_exceptions.GoogleAuthError) as exc:
            logger.info("google_oidc_client: invalid_id_token error=%s", exc)
            raise InvalidAssertionError("Invalid Google token") from exc

        subject = payload.get("sub")
        if not subject:
            raise InvalidAssertionError("Google id_token missing subject.")

        email = payload.get("email")
        if not email:
            raise MissingEmailError("Email not provided by Google")

        return GoogleIdentityInfo(
            subject=str(subject),
            email=str(email),
            email_verified=parse_email_verified(payload.get("email_verified")),
            name=payload.get("name") if isinstance(payload.get("name"), str) else None,
            picture=payload.get("picture") if isinstance(payload.get("picture"), str) else None,
        )


def parse_email_verified(raw) -> bool:
    if isinstance(raw, str):
        return raw.lower() == "true"
    return bool(raw)


def id_token_verify(*, token: str, audience: str, timeout_seconds: float) -> dict:
    request = functools.partial(requests.Request(), timeout=timeout_seconds)
    return id_token.verify_oauth2_token(token, request, audience)
