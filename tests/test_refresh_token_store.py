from __future__ import annotations

from datetime import timedelta

import pytest

from courtpulse.domain.exceptions import RefreshTokenInvalidError
from fakes import FakeAuthPort, FakeClock, build_refresh_token_store


def test_generate_then_validate_returns_record_for_same_user():
    auth_port = FakeAuthPort()
    clock = FakeClock()
    store = build_refresh_token_store(auth_port, clock)

    issued = store.generate(user_id="user-1", device_info={"userAgent": "pytest"})
    credential = store.validate(issued.token)

    assert credential.user_id == "user-1"
    assert credential.id == issued.credential.id
    assert credential.expires_at == clock.now + timedelta(days=30)
    assert credential.device_info == {"userAgent": "pytest"}


def test_only_the_hash_is_persisted():
    auth_port = FakeAuthPort()
    store = build_refresh_token_store(auth_port, FakeClock())

    issued = store.generate(user_id="user-1")

    stored = auth_port.refresh_tokens[issued.credential.id]
    assert stored.token_hash == f"hashed::{issued.token}"
    assert issued.token not in {stored.id, stored.token_hash, stored.lookup_key}


def test_validate_rejects_unknown_secret():
    store = build_refresh_token_store(FakeAuthPort(), FakeClock())

    with pytest.raises(RefreshTokenInvalidError):
        store.validate("never-issued")


def test_rotated_secret_no_longer_validates():
    auth_port = FakeAuthPort()
    store = build_refresh_token_store(auth_port, FakeClock())
    issued = store.generate(user_id="user-1")
    replacement = store.generate(user_id="user-1")

    store.rotate(credential=store.validate(issued.token), replaced_by_id=replacement.credential.id)

    with pytest.raises(RefreshTokenInvalidError):
        store.validate(issued.token)
    assert auth_port.refresh_tokens[issued.credential.id].replaced_by_id == replacement.credential.id
    assert store.validate(replacement.token).id == replacement.credential.id


def test_only_one_rotation_of_the_same_record_wins():
    store = build_refresh_token_store(FakeAuthPort(), FakeClock())
    issued = store.generate(user_id="user-1")
    first = store.validate(issued.token)
    second = store.validate(issued.token)

    store.rotate(credential=first, replaced_by_id=None)

    with pytest.raises(RefreshTokenInvalidError):
        store.rotate(credential=second, replaced_by_id=None)


def test_revoked_secret_fails_validation_and_is_reported_as_reuse_consistently():
    store = build_refresh_token_store(FakeAuthPort(), FakeClock())
    issued = store.generate(user_id="user-1")

    store.revoke(issued.token)

    with pytest.raises(RefreshTokenInvalidError):
        store.validate(issued.token)
    assert store.check_reuse(issued.token) == "user-1"
    assert store.check_reuse(issued.token) == "user-1"


def test_check_reuse_ignores_active_and_unknown_secrets():
    store = build_refresh_token_store(FakeAuthPort(), FakeClock())
    issued = store.generate(user_id="user-1")

    assert store.check_reuse(issued.token) is None
    assert store.check_reuse("never-issued") is None


def test_revoke_is_silent_for_unknown_or_already_revoked_secret():
    store = build_refresh_token_store(FakeAuthPort(), FakeClock())
    issued = store.generate(user_id="user-1")

    store.revoke("never-issued")
    store.revoke(issued.token)
    store.revoke(issued.token)

    assert store.check_reuse(issued.token) == "user-1"


def test_revoke_all_only_touches_the_given_user():
    auth_port = FakeAuthPort()
    store = build_refresh_token_store(auth_port, FakeClock())
    store.generate(user_id="user-1")
    store.generate(user_id="user-1")
    other = store.generate(user_id="user-2")

    revoked = store.revoke_all(user_id="user-1")

    assert revoked == 2
    assert auth_port.active_tokens_for("user-1") == []
    assert store.validate(other.token).user_id == "user-2"


def test_expired_secret_is_neither_valid_nor_reuse():
    clock = FakeClock()
    store = build_refresh_token_store(FakeAuthPort(), clock, ttl=timedelta(days=30))
    issued = store.generate(user_id="user-1")

    clock.advance(timedelta(days=31))

    with pytest.raises(RefreshTokenInvalidError):
        store.validate(issued.token)
    assert store.check_reuse(issued.token) is None


def test_revoked_then_expired_secret_is_inert():
    clock = FakeClock()
    store = build_refresh_token_store(FakeAuthPort(), clock, ttl=timedelta(days=1))
    issued = store.generate(user_id="user-1")
    store.revoke(issued.token)

    clock.advance(timedelta(days=2))

    assert store.check_reuse(issued.token) is None


def test_short_ttl_configuration_is_honored():
    clock = FakeClock()
    store = build_refresh_token_store(FakeAuthPort(), clock, ttl=timedelta(minutes=5))
    issued = store.generate(user_id="user-1")

    clock.advance(timedelta(minutes=4))
    assert store.validate(issued.token).user_id == "user-1"

    clock.advance(timedelta(minutes=2))
    with pytest.raises(RefreshTokenInvalidError):
        store.validate(issued.token)
