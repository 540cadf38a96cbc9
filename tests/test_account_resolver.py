from __future__ import annotations

from datetime import timedelta

import pytest

from courtpulse.application.dto.auth import AppleIdentityInfo, GoogleIdentityInfo
from courtpulse.domain.exceptions import AccountLinkRejectedError, MissingEmailError
from courtpulse.domain.services.account_linking import LinkingPolicy, ResolutionCase, decide_resolution
from fakes import FakeAuthPort, FakeClock, build_account_resolver, make_user


def _google(**overrides) -> GoogleIdentityInfo:
    values = {
        "subject": "google-sub-1",
        "email": "user@example.com",
        "email_verified": True,
        "name": "Google User",
        "picture": "https://lh3.example.com/photo.png",
    }
    values.update(overrides)
    return GoogleIdentityInfo(**values)


def _apple(**overrides) -> AppleIdentityInfo:
    values = {"subject": "apple-sub-1", "email": "user@example.com", "email_verified": True}
    values.update(overrides)
    return AppleIdentityInfo(**values)


def test_decide_resolution_cases():
    user = make_user()
    strict = LinkingPolicy(require_verified_email=True)
    lenient = LinkingPolicy()

    assert decide_resolution(by_subject=user, by_email=None, email_verified=False, policy=strict) is ResolutionCase.EXISTING
    assert decide_resolution(by_subject=None, by_email=None, email_verified=False, policy=strict) is ResolutionCase.CREATE
    assert decide_resolution(by_subject=None, by_email=user, email_verified=False, policy=lenient) is ResolutionCase.LINK
    assert decide_resolution(by_subject=None, by_email=user, email_verified=False, policy=strict) is ResolutionCase.REJECT
    assert decide_resolution(by_subject=None, by_email=user, email_verified=True, policy=strict) is ResolutionCase.LINK


def test_first_google_sign_in_creates_user_with_only_google_id():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(auth_port, FakeClock())

    user = resolver.resolve_google_user(_google(email="User@Example.COM"))

    assert user.email == "user@example.com"
    assert user.google_id == "google-sub-1"
    assert user.apple_id is None
    assert user.profile_picture_url == "https://lh3.example.com/photo.png"
    assert len(auth_port.users) == 1


def test_returning_google_user_gets_profile_refreshed():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(auth_port, FakeClock())
    first = resolver.resolve_google_user(_google())

    second = resolver.resolve_google_user(_google(name="Renamed", picture=None, email="changed@example.com"))

    assert second.id == first.id
    assert second.name == "Renamed"
    assert second.profile_picture_url is None
    assert second.email == "user@example.com"


def test_apple_links_into_google_account_and_keeps_profile():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(auth_port, FakeClock())
    google_user = resolver.resolve_google_user(_google())

    linked = resolver.resolve_apple_user(_apple())

    assert linked.id == google_user.id
    assert linked.google_id == "google-sub-1"
    assert linked.apple_id == "apple-sub-1"
    assert linked.name == "Google User"
    assert linked.profile_picture_url == "https://lh3.example.com/photo.png"
    assert len(auth_port.users) == 1


def test_google_links_into_apple_account_and_fills_profile():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(auth_port, FakeClock())
    apple_user = resolver.resolve_apple_user(_apple())

    linked = resolver.resolve_google_user(_google())

    assert linked.id == apple_user.id
    assert linked.apple_id == "apple-sub-1"
    assert linked.google_id == "google-sub-1"
    assert linked.name == "Google User"


def test_apple_without_email_fails_for_unknown_subject():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(auth_port, FakeClock())

    with pytest.raises(MissingEmailError):
        resolver.resolve_apple_user(_apple(email=None))

    assert auth_port.users == {}


def test_apple_without_email_succeeds_for_known_subject():
    auth_port = FakeAuthPort()
    clock = FakeClock()
    resolver = build_account_resolver(auth_port, clock)
    first = resolver.resolve_apple_user(_apple())

    again = resolver.resolve_apple_user(_apple(email=None))

    assert again.id == first.id
    assert again.email == "user@example.com"
    assert again.last_login_at == clock.now


def test_apple_repeat_sign_in_without_claims_keeps_verified_flag():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(auth_port, FakeClock())
    first = resolver.resolve_apple_user(_apple(email_verified=True))

    again = resolver.resolve_apple_user(_apple(email=None, email_verified=None))

    assert again.id == first.id
    assert again.email_verified is True
    assert auth_port.users[first.id].email_verified is True


def test_google_verified_account_linked_to_apple_keeps_verified_flag():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(auth_port, FakeClock())
    google_user = resolver.resolve_google_user(_google(email_verified=True))

    linked = resolver.resolve_apple_user(_apple(email_verified=None))
    again = resolver.resolve_apple_user(_apple(email=None, email_verified=None))

    assert linked.id == google_user.id
    assert linked.email_verified is True
    assert again.email_verified is True


def test_strict_policy_rejects_linking_unverified_email():
    auth_port = FakeAuthPort()
    resolver = build_account_resolver(
        auth_port,
        FakeClock(),
        policy=LinkingPolicy(require_verified_email=True),
    )
    resolver.resolve_google_user(_google())

    with pytest.raises(AccountLinkRejectedError):
        resolver.resolve_apple_user(_apple(email_verified=False))

    assert len(auth_port.users) == 1
    assert next(iter(auth_port.users.values())).apple_id is None


def test_lost_creation_race_retries_as_link():
    auth_port = FakeAuthPort()
    clock = FakeClock()
    resolver = build_account_resolver(auth_port, clock)
    competitor = build_account_resolver(auth_port, clock)

    # A concurrent Apple sign-in commits the same email between lookup and insert.
    auth_port.before_create_user = lambda: competitor.resolve_apple_user(_apple())

    user = resolver.resolve_google_user(_google())

    assert len(auth_port.users) == 1
    assert user.apple_id == "apple-sub-1"
    assert user.google_id == "google-sub-1"


def test_every_resolution_stamps_last_login():
    auth_port = FakeAuthPort()
    clock = FakeClock()
    resolver = build_account_resolver(auth_port, clock)
    first = resolver.resolve_google_user(_google())
    login_at = first.last_login_at

    clock.advance(timedelta(hours=1))
    again = resolver.resolve_google_user(_google())

    assert login_at is not None
    assert again.last_login_at == login_at + timedelta(hours=1)
