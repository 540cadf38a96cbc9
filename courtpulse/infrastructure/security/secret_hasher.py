from __future__ import annotations

import hashlib
import hmac
import secrets

from passlib.context import CryptContext

from courtpulse.application.ports.secret_hasher_port import SecretHasherPort


class RefreshSecretHasher(SecretHasherPort):
    """Slow salted hash for verification plus a keyed digest for candidate lookup.

    The lookup key is an HMAC of the secret, so the stored value alone does not
    reveal or confirm a token without the server-side key.
    """

    def __init__(self, *, lookup_secret: str):
        if not lookup_secret:
            raise ValueError("lookup_secret is required.")
        self._lookup_secret = lookup_secret.encode("utf-8")
        self._ctx = CryptContext(
            schemes=["argon2", "bcrypt"],
            deprecated="auto",
        )

    def generate_secret(self) -> str:
        return secrets.token_urlsafe(48)

    def hash(self, secret: str) -> str:
        return self._ctx.hash(secret)

    def verify(self, secret: str, secret_hash: str) -> bool:
        try:
            return self._ctx.verify(secret, secret_hash)
        except (ValueError, TypeError):
            return False

    def lookup_key(self, secret: str) -> str:
        return hmac.new(self._lookup_secret, secret.encode("utf-8"), hashlib.sha256).hexdigest()
