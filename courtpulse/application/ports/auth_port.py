from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Protocol, TypeVar

from courtpulse.domain.entities.user import AuthProvider, RefreshCredential, User


TAuthResult = TypeVar("TAuthResult")


class AuthPort(Protocol):
    def execute_in_transaction(self, fn: Callable[[AuthPort], TAuthResult]) -> TAuthResult:
        ...

    def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

    def get_user_by_email(self, *, email: str) -> User | None:
        ...

    def get_user_by_provider_subject(
        self,
        *,
        provider: AuthProvider,
        provider_subject: str,
    ) -> User | None:
        ...

    def create_user(
        self,
        *,
        user_id: str,
        provider: AuthProvider | None,
        provider_subject: str | None,
        email: str,
        email_verified: bool,
        name: str | None,
        profile_picture_url: str | None,
        now: datetime,
    ) -> User:
        """Insert a user row. Raises EmailAlreadyExistsError on a duplicate email."""
        ...

    def link_provider(
        self,
        *,
        user_id: str,
        provider: AuthProvider,
        provider_subject: str,
        email_verified: bool,
        name: str | None,
        profile_picture_url: str | None,
        now: datetime,
    ) -> User:
        ...

    def update_user_profile(
        self,
        *,
        user_id: str,
        email_verified: bool,
        name: str | None,
        profile_picture_url: str | None,
        now: datetime,
    ) -> User:
        ...

    def touch_last_login(self, *, user_id: str, now: datetime) -> User:
        ...

    def create_refresh_token(
        self,
        *,
        token_id: str,
        user_id: str,
        token_hash: str,
        lookup_key: str,
        expires_at: datetime,
        device_info: dict[str, Any] | None,
        created_at: datetime,
    ) -> RefreshCredential:
        ...

    def find_active_refresh_tokens(
        self,
        *,
        lookup_key: str,
        now: datetime,
        for_update: bool = False,
    ) -> list[RefreshCredential]:
        ...

    def find_revoked_refresh_tokens(self, *, lookup_key: str, now: datetime) -> list[RefreshCredential]:
        ...

    def revoke_refresh_token(
        self,
        *,
        token_id: str,
        revoked_at: datetime,
        replaced_by_id: str | None = None,
    ) -> bool:
        """Revoke a still-active record. Returns False when it was already revoked."""
        ...

    def revoke_all_refresh_tokens_for_user(self, *, user_id: str, revoked_at: datetime) -> int:
        ...

    def ping(self) -> dict[str, Any]:
        ...
