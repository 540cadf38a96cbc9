from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


AuthProvider = Literal["google", "apple"]


@dataclass(frozen=True)
class User:
    id: str
    google_id: str | None
    apple_id: str | None
    email: str
    email_verified: bool
    name: str | None
    profile_picture_url: str | None
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None

    def provider_subject(self, provider: AuthProvider) -> str | None:
        if provider == "google":
            return self.google_id
        return self.apple_id


@dataclass(frozen=True)
class RefreshCredential:
    id: str
    user_id: str
    token_hash: str
    lookup_key: str
    expires_at: datetime
    created_at: datetime
    revoked_at: datetime | None
    replaced_by_id: str | None
    device_info: dict[str, Any] | None = field(default=None)

    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
