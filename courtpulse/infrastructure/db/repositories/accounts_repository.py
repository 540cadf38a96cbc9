from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from courtpulse.application.ports.auth_port import AuthPort
from courtpulse.domain.exceptions import EmailAlreadyExistsError, UpstreamUnavailableError, UserNotFoundError
from courtpulse.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_refresh_credential,
    map_row_to_user,
)


logger = logging.getLogger(__name__)

TResult = TypeVar("TResult")

_USER_COLUMNS = """
    id, google_id, apple_id, email, email_verified, name, profile_picture_url,
    created_at, updated_at, last_login_at
"""

_REFRESH_TOKEN_COLUMNS = """
    id, user_id, token_hash, lookup_key, expires_at, created_at, revoked_at, replaced_by_id, device_info
"""

_PROVIDER_COLUMNS = {
    "google": "google_id",
    "apple": "apple_id",
}


def _provider_column(provider: str) -> str:
    try:
        return _PROVIDER_COLUMNS[provider]
    except KeyError as exc:
        raise ValueError(f"Unsupported provider '{provider}'.") from exc


@contextmanager
def _storage_errors() -> Iterator[None]:
    try:
        yield
    except (OperationalError, PoolTimeoutError) as exc:
        logger.warning("accounts_repository: storage_unavailable error=%s", exc.__class__.__name__)
        raise UpstreamUnavailableError("Storage is temporarily unavailable.") from exc


class SqlAccountsRepository(AuthPort):
    """Users and refresh tokens over parameterized SQL.

    Unbound, every method runs in its own short transaction. Inside
    :meth:`execute_in_transaction` the callback receives a repository bound to a
    single connection, and nothing is visible to others until it commits.
    """

    def __init__(self, engine: Engine, *, connection: Connection | None = None):
        self._engine = engine
        self._connection = connection

    def execute_in_transaction(self, fn: Callable[[AuthPort], TResult]) -> TResult:
        if self._connection is not None:
            return fn(self)
        with _storage_errors():
            with self._engine.begin() as conn:
                return fn(SqlAccountsRepository(self._engine, connection=conn))

    @contextmanager
    def _read(self) -> Iterator[Connection]:
        if self._connection is not None:
            with _storage_errors():
                yield self._connection
            return
        with _storage_errors():
            with self._engine.connect() as conn:
                yield conn

    @contextmanager
    def _write(self) -> Iterator[Connection]:
        if self._connection is not None:
            with _storage_errors():
                yield self._connection
            return
        with _storage_errors():
            with self._engine.begin() as conn:
                yield conn

    def get_user_by_id(self, *, user_id: str):
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE id = :user_id
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def get_user_by_email(self, *, email: str):
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE lower(email) = :email
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"email": email.lower()}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def get_user_by_provider_subject(self, *, provider: str, provider_subject: str):
        column = _provider_column(provider)
        sql = f"""
            SELECT {_USER_COLUMNS}
            FROM public.users
            WHERE {column} = :provider_subject
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"provider_subject": provider_subject}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def create_user(
        self,
        *,
        user_id: str,
        provider: str | None,
        provider_subject: str | None,
        email: str,
        email_verified: bool,
        name: str | None,
        profile_picture_url: str | None,
        now: datetime,
    ):
        sql = f"""
            INSERT INTO public.users (
                id, google_id, apple_id, email, email_verified, name, profile_picture_url,
                created_at, updated_at
            ) VALUES (
                :id, :google_id, :apple_id, :email, :email_verified, :name, :profile_picture_url,
                :created_at, :updated_at
            )
            RETURNING {_USER_COLUMNS}
        """
        params = {
            "id": user_id,
            "google_id": provider_subject if provider == "google" else None,
            "apple_id": provider_subject if provider == "apple" else None,
            "email": email,
            "email_verified": email_verified,
            "name": name,
            "profile_picture_url": profile_picture_url,
            "created_at": now,
            "updated_at": now,
        }
        with self._write() as conn:
            try:
                # Savepoint keeps an enclosing transaction usable after a unique violation.
                with conn.begin_nested():
                    row = conn.execute(text(sql), params).mappings().one()
            except IntegrityError as exc:
                raise EmailAlreadyExistsError("Email already in use.") from exc
        return map_row_to_user(row)

    def link_provider(
        self,
        *,
        user_id: str,
        provider: str,
        provider_subject: str,
        email_verified: bool,
        name: str | None,
        profile_picture_url: str | None,
        now: datetime,
    ):
        column = _provider_column(provider)
        sql = f"""
            UPDATE public.users
            SET {column} = :provider_subject,
                email_verified = :email_verified,
                name = :name,
                profile_picture_url = :profile_picture_url,
                updated_at = :updated_at
            WHERE id = :user_id
            RETURNING {_USER_COLUMNS}
        """
        params = {
            "user_id": user_id,
            "provider_subject": provider_subject,
            "email_verified": email_verified,
            "name": name,
            "profile_picture_url": profile_picture_url,
            "updated_at": now,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            raise UserNotFoundError("User not found.")
        return map_row_to_user(row)

    def update_user_profile(
        self,
        *,
        user_id: str,
        email_verified: bool,
        name: str | None,
        profile_picture_url: str | None,
        now: datetime,
    ):
        sql = f"""
            UPDATE public.users
            SET email_verified = :email_verified,
                name = :name,
                profile_picture_url = :profile_picture_url,
                updated_at = :updated_at
            WHERE id = :user_id
            RETURNING {_USER_COLUMNS}
        """
        params = {
            "user_id": user_id,
            "email_verified": email_verified,
            "name": name,
            "profile_picture_url": profile_picture_url,
            "updated_at": now,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            raise UserNotFoundError("User not found.")
        return map_row_to_user(row)

    def touch_last_login(self, *, user_id: str, now: datetime):
        sql = f"""
            UPDATE public.users
            SET last_login_at = :now,
                updated_at = :now
            WHERE id = :user_id
            RETURNING {_USER_COLUMNS}
        """
        with self._write() as conn:
            row = conn.execute(text(sql), {"user_id": user_id, "now": now}).mappings().first()
        if row is None:
            raise UserNotFoundError("User not found.")
        return map_row_to_user(row)

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
    ):
        sql = f"""
            INSERT INTO public.refresh_tokens (
                id, user_id, token_hash, lookup_key, expires_at, created_at, device_info
            ) VALUES (
                :id, :user_id, :token_hash, :lookup_key, :expires_at, :created_at,
                CAST(:device_info AS jsonb)
            )
            RETURNING {_REFRESH_TOKEN_COLUMNS}
        """
        params = {
            "id": token_id,
            "user_id": user_id,
            "token_hash": token_hash,
            "lookup_key": lookup_key,
            "expires_at": expires_at,
            "created_at": created_at,
            "device_info": json.dumps(device_info) if device_info is not None else None,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().one()
        return map_row_to_refresh_credential(row)

    def find_active_refresh_tokens(self, *, lookup_key: str, now: datetime, for_update: bool = False):
        sql = f"""
            SELECT {_REFRESH_TOKEN_COLUMNS}
            FROM public.refresh_tokens
            WHERE lookup_key = :lookup_key
              AND revoked_at IS NULL
              AND expires_at > :now
        """
        if for_update:
            sql += "\n            FOR UPDATE"
        with self._read() as conn:
            rows = conn.execute(text(sql), {"lookup_key": lookup_key, "now": now}).mappings().all()
        return [map_row_to_refresh_credential(row) for row in rows]

    def find_revoked_refresh_tokens(self, *, lookup_key: str, now: datetime):
        sql = f"""
            SELECT {_REFRESH_TOKEN_COLUMNS}
            FROM public.refresh_tokens
            WHERE lookup_key = :lookup_key
              AND revoked_at IS NOT NULL
              AND expires_at > :now
        """
        with self._read() as conn:
            rows = conn.execute(text(sql), {"lookup_key": lookup_key, "now": now}).mappings().all()
        return [map_row_to_refresh_credential(row) for row in rows]

    def revoke_refresh_token(
        self,
        *,
        token_id: str,
        revoked_at: datetime,
        replaced_by_id: str | None = None,
    ) -> bool:
        sql = """
            UPDATE public.refresh_tokens
            SET revoked_at = :revoked_at,
                replaced_by_id = :replaced_by_id
            WHERE id = :token_id
              AND revoked_at IS NULL
        """
        params = {
            "token_id": token_id,
            "revoked_at": revoked_at,
            "replaced_by_id": replaced_by_id,
        }
        with self._write() as conn:
            result = conn.execute(text(sql), params)
        return result.rowcount > 0

    def revoke_all_refresh_tokens_for_user(self, *, user_id: str, revoked_at: datetime) -> int:
        sql = """
            UPDATE public.refresh_tokens
            SET revoked_at = :revoked_at
            WHERE user_id = :user_id
              AND revoked_at IS NULL
        """
        with self._write() as conn:
            result = conn.execute(text(sql), {"user_id": user_id, "revoked_at": revoked_at})
        return int(result.rowcount)

    def ping(self) -> dict[str, Any]:
        sql = "SELECT now() AS time, version() AS version"
        with self._read() as conn:
            row = conn.execute(text(sql)).mappings().one()
        version_parts = str(row["version"]).split(" ")
        return {
            "server_time": row["time"],
            "version": " ".join(version_parts[:2]),
        }
