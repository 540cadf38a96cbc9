from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

from courtpulse.application.dto.auth import IssuedRefreshToken
from courtpulse.application.ports.auth_port import AuthPort
from courtpulse.application.ports.secret_hasher_port import SecretHasherPort
from courtpulse.domain.entities.user import RefreshCredential
from courtpulse.domain.exceptions import RefreshTokenInvalidError


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshTokenStore:
    """Stateful refresh credentials: only hashes are persisted.

    A credential is ``active`` until it is rotated away or revoked, both of which
    stamp ``revoked_at`` and keep the row so a replayed secret is recognized by
    :meth:`check_reuse`. Expiry is independent of revocation: an expired record
    is neither valid nor evidence of replay.

    Candidates are narrowed by a keyed lookup digest before the slow hash check,
    so each call verifies against a handful of rows instead of the whole table.
    """

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        secret_hasher: SecretHasherPort,
        ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._auth_port = auth_port
        self._secret_hasher = secret_hasher
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def bind(self, auth_port: AuthPort) -> RefreshTokenStore:
        """Same store over another port, typically one scoped to a transaction."""
        return RefreshTokenStore(
            auth_port=auth_port,
            secret_hasher=self._secret_hasher,
            ttl=self._ttl,
            clock=self._clock,
        )

    def generate(self, *, user_id: str, device_info: dict[str, Any] | None = None) -> IssuedRefreshToken:
        now = self._clock()
        token = self._secret_hasher.generate_secret()
        credential = self._auth_port.create_refresh_token(
            token_id=str(uuid4()),
            user_id=user_id,
            token_hash=self._secret_hasher.hash(token),
            lookup_key=self._secret_hasher.lookup_key(token),
            expires_at=now + self._ttl,
            device_info=device_info,
            created_at=now,
        )
        return IssuedRefreshToken(token=token, credential=credential)

    def validate(self, token: str, *, for_update: bool = False) -> RefreshCredential:
        candidates = self._auth_port.find_active_refresh_tokens(
            lookup_key=self._secret_hasher.lookup_key(token),
            now=self._clock(),
            for_update=for_update,
        )
        matches = self._matching(token, candidates)
        if len(matches) != 1:
            raise RefreshTokenInvalidError("Invalid or expired refresh token.")
        return matches[0]

    def rotate(self, *, credential: RefreshCredential, replaced_by_id: str | None) -> None:
        # Only one concurrent rotation of the same record can win.
        rotated = self._auth_port.revoke_refresh_token(
            token_id=credential.id,
            revoked_at=self._clock(),
            replaced_by_id=replaced_by_id,
        )
        if not rotated:
            raise RefreshTokenInvalidError("Invalid or expired refresh token.")

    def revoke(self, token: str) -> None:
        candidates = self._auth_port.find_active_refresh_tokens(
            lookup_key=self._secret_hasher.lookup_key(token),
            now=self._clock(),
        )
        for credential in self._matching(token, candidates):
            self._auth_port.revoke_refresh_token(token_id=credential.id, revoked_at=self._clock())

    def revoke_all(self, *, user_id: str) -> int:
        revoked = self._auth_port.revoke_all_refresh_tokens_for_user(
            user_id=user_id,
            revoked_at=self._clock(),
        )
        logger.info("refresh_token_store: revoked_all user_id=%s count=%s", user_id, revoked)
        return revoked

    def check_reuse(self, token: str) -> str | None:
        candidates = self._auth_port.find_revoked_refresh_tokens(
            lookup_key=self._secret_hasher.lookup_key(token),
            now=self._clock(),
        )
        for credential in self._matching(token, candidates):
            return credential.user_id
        return None

    def _matching(self, token: str, candidates: list[RefreshCredential]) -> list[RefreshCredential]:
        return [
            credential
            for credential in candidates
            if self._secret_hasher.verify(token, credential.token_hash)
        ]
