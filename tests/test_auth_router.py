from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from courtpulse.api import deps
from courtpulse.api.deps import (
    get_app_settings,
    get_authenticate_use_case,
    get_current_user,
    get_dev_login_use_case,
    get_logout_session_use_case,
    get_refresh_session_use_case,
)
from courtpulse.application.dto.auth import AuthTokensOutput, AuthUserOutput
from courtpulse.domain.exceptions import (
    AccountLinkRejectedError,
    InvalidAssertionError,
    ReplayDetectedError,
    UpstreamUnavailableError,
)
from courtpulse.infrastructure.security.token_service import JwtTokenService
from courtpulse.main import app
from courtpulse.shared.config import get_settings
from fakes import T0, FakeAuthPort, make_user


def _tokens_output() -> AuthTokensOutput:
    return AuthTokensOutput(
        user=AuthUserOutput(
            id="user-1",
            email="alice@example.com",
            name="Alice",
            profile_picture_url="https://lh3.example.com/photo.png",
        ),
        access_token="access-user-1",
        refresh_token="refresh-1",
        access_expires_at=T0 + timedelta(minutes=15),
        refresh_expires_at=T0 + timedelta(days=30),
    )


class FakeAuthenticateUseCase:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.commands = []

    def execute(self, command):
        self.commands.append(command)
        if self.error is not None:
            raise self.error
        return _tokens_output()


class FakeRefreshSessionUseCase:
    def __init__(self, error: Exception | None = None):
        self.error = error

    def execute(self, _command):
        if self.error is not None:
            raise self.error
        return _tokens_output()


class FakeLogoutSessionUseCase:
    def __init__(self):
        self.tokens = []

    def execute(self, command):
        self.tokens.append(command.refresh_token)


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_google_login_returns_camel_case_token_pair(client):
    use_case = FakeAuthenticateUseCase()
    app.dependency_overrides[get_authenticate_use_case] = lambda: use_case

    response = client.post(
        "/api/auth/google",
        json={"idToken": "token-google", "deviceInfo": {"userAgent": "ios/17", "model": "iPhone"}},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["accessToken"] == "access-user-1"
    assert payload["refreshToken"] == "refresh-1"
    assert payload["user"]["profilePictureUrl"] == "https://lh3.example.com/photo.png"
    command = use_case.commands[0]
    assert command.provider == "google"
    assert command.device_info == {"userAgent": "ios/17", "model": "iPhone"}


def test_apple_login_falls_back_to_request_device_info(client):
    use_case = FakeAuthenticateUseCase()
    app.dependency_overrides[get_authenticate_use_case] = lambda: use_case

    response = client.post(
        "/api/auth/apple",
        json={"idToken": "token-apple", "authorizationCode": "code"},
        headers={"User-Agent": "courtpulse-ios"},
    )

    assert response.status_code == 200
    command = use_case.commands[0]
    assert command.provider == "apple"
    assert command.device_info["userAgent"] == "courtpulse-ios"


def test_login_requires_id_token(client):
    app.dependency_overrides[get_authenticate_use_case] = lambda: FakeAuthenticateUseCase()

    response = client.post("/api/auth/google", json={})

    assert response.status_code == 422


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (InvalidAssertionError("Invalid Google token"), 401),
        (AccountLinkRejectedError("Email must be verified before linking accounts."), 409),
        (UpstreamUnavailableError("Google sign-in is temporarily unavailable."), 503),
    ],
)
def test_login_maps_failures_to_status_codes(client, error, status_code):
    app.dependency_overrides[get_authenticate_use_case] = lambda: FakeAuthenticateUseCase(error=error)

    response = client.post("/api/auth/google", json={"idToken": "token-google"})

    assert response.status_code == status_code
    assert response.json()["detail"] == str(error)


def test_refresh_returns_new_pair(client):
    app.dependency_overrides[get_refresh_session_use_case] = lambda: FakeRefreshSessionUseCase()

    response = client.post("/api/auth/refresh", json={"refreshToken": "refresh-0"})

    assert response.status_code == 200
    assert response.json() == {"accessToken": "access-user-1", "refreshToken": "refresh-1"}


def test_refresh_replay_is_unauthorized(client):
    error = ReplayDetectedError("Token reuse detected - all tokens revoked.")
    app.dependency_overrides[get_refresh_session_use_case] = lambda: FakeRefreshSessionUseCase(error=error)

    response = client.post("/api/auth/refresh", json={"refreshToken": "refresh-0"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token reuse detected - all tokens revoked."


def test_logout_returns_no_content(client):
    use_case = FakeLogoutSessionUseCase()
    app.dependency_overrides[get_current_user] = lambda: make_user()
    app.dependency_overrides[get_logout_session_use_case] = lambda: use_case

    response = client.post(
        "/api/auth/logout",
        json={"refreshToken": "refresh-1"},
        headers={"Authorization": "Bearer access-user-1"},
    )

    assert response.status_code == 204
    assert use_case.tokens == ["refresh-1"]


def test_logout_requires_bearer_token(client):
    app.dependency_overrides[get_logout_session_use_case] = lambda: FakeLogoutSessionUseCase()

    response = client.post("/api/auth/logout", json={"refreshToken": "refresh-1"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Missing authorization header"


def test_dev_login_is_disabled_in_production(client):
    app.dependency_overrides[get_app_settings] = lambda: replace(get_settings(), app_env="production")
    app.dependency_overrides[get_dev_login_use_case] = lambda: FakeAuthenticateUseCase()

    response = client.post("/api/auth/dev/login", json={"email": "dev@example.com"})

    assert response.status_code == 403


def test_dev_login_issues_tokens_outside_production(client):
    use_case = FakeAuthenticateUseCase()
    app.dependency_overrides[get_app_settings] = lambda: replace(get_settings(), app_env="development")
    app.dependency_overrides[get_dev_login_use_case] = lambda: use_case

    response = client.post("/api/auth/dev/login", json={"email": "dev@example.com", "name": "Dev"})

    assert response.status_code == 200
    assert use_case.commands[0].email == "dev@example.com"


def test_get_current_user_rejects_malformed_header():
    with pytest.raises(HTTPException) as exc_info:
        get_current_user(authorization="Token abc")

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid authorization header format"


def test_get_current_user_rejects_expired_token(monkeypatch):
    service = JwtTokenService(jwt_secret="test-secret-with-enough-length-for-hs256")
    token, _ = service.create_access_token(user_id="user-1", email="alice@example.com", now=T0)
    monkeypatch.setattr(deps, "_get_token_service", lambda: service)

    with pytest.raises(HTTPException) as exc_info:
        get_current_user(authorization=f"Bearer {token}")

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Token expired"


def test_get_current_user_loads_user_for_valid_token(monkeypatch):
    service = JwtTokenService(jwt_secret="test-secret-with-enough-length-for-hs256")
    token, _ = service.create_access_token(
        user_id="user-1",
        email="alice@example.com",
        now=datetime.now(timezone.utc),
    )
    auth_port = FakeAuthPort()
    auth_port.users["user-1"] = make_user()
    monkeypatch.setattr(deps, "_get_token_service", lambda: service)
    monkeypatch.setattr(deps, "get_accounts_repository", lambda: auth_port)

    user = get_current_user(authorization=f"Bearer {token}")

    assert user.id == "user-1"


def test_get_current_user_rejects_deleted_user(monkeypatch):
    service = JwtTokenService(jwt_secret="test-secret-with-enough-length-for-hs256")
    token, _ = service.create_access_token(
        user_id="ghost",
        email="ghost@example.com",
        now=datetime.now(timezone.utc),
    )
    monkeypatch.setattr(deps, "_get_token_service", lambda: service)
    monkeypatch.setattr(deps, "get_accounts_repository", lambda: FakeAuthPort())

    with pytest.raises(HTTPException) as exc_info:
        get_current_user(authorization=f"Bearer {token}")

    assert exc_info.value.status_code == 401
