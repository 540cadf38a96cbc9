from __future__ import annotations

import json
from typing import Any, Mapping

from courtpulse.domain.entities.user import RefreshCredential, User


def _as_str(value: Any) -> str:
    return str(value)


def _as_optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _as_device_info(value: Any) -> dict[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        google_id=row.get("google_id"),
        apple_id=row.get("apple_id"),
        email=row["email"],
        email_verified=bool(row["email_verified"]),
        name=row.get("name"),
        profile_picture_url=row.get("profile_picture_url"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_login_at=row.get("last_login_at"),
    )


def map_row_to_refresh_credential(row: Mapping[str, Any]) -> RefreshCredential:
    return RefreshCredential(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        token_hash=row["token_hash"],
        lookup_key=row["lookup_key"],
        expires_at=row["expires_at"],
        created_at=row["created_at"],
        revoked_at=row.get("revoked_at"),
        replaced_by_id=_as_optional_str(row.get("replaced_by_id")),
        device_info=_as_device_info(row.get("device_info")),
    )
