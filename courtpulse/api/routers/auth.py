from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response

from courtpulse.api.deps import (
    get_app_settings,
    get_authenticate_use_case,
    get_current_user,
    get_dev_login_use_case,
    get_logout_session_use_case,
    get_refresh_session_use_case,
)
from courtpulse.api.schemas.auth import (
    AppleLoginRequest,
    AuthTokenResponse,
    DeviceInfoRequest,
    DevLoginRequest,
    GoogleLoginRequest,
    LogoutRequest,
    RefreshRequest,
    RefreshTokenResponse,
)
from courtpulse.application.dto.auth import (
    AuthenticateInput,
    AuthTokensOutput,
    DevLoginInput,
    LogoutInput,
    RefreshSessionInput,
)
from courtpulse.application.use_cases.authenticate import AuthenticateUseCase
from courtpulse.application.use_cases.dev_login import DevLoginUseCase
from courtpulse.application.use_cases.logout_session import LogoutSessionUseCase
from courtpulse.application.use_cases.refresh_session import RefreshSessionUseCase
from courtpulse.domain.entities.user import User
from courtpulse.domain.exceptions import (
    AccountLinkRejectedError,
    AuthError,
    ProviderNotConfiguredError,
    UpstreamUnavailableError,
)
from courtpulse.shared.config import Settings


router = APIRouter(prefix="/api/auth")


def _device_info(device_info: DeviceInfoRequest | None, request: Request, user_agent: str | None) -> dict[str, Any]:
    if device_info is not None:
        return device_info.model_dump(by_alias=True, exclude_none=True)
    return {
        "userAgent": user_agent,
        "ipAddress": request.client.host if request.client else None,
    }


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (UpstreamUnavailableError, ProviderNotConfiguredError)):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, AccountLinkRejectedError):
        return HTTPException(status_code=409, detail=str(exc))
    # Assertion, access, refresh, replay and missing-user failures all require signing in again.
    return HTTPException(status_code=401, detail=str(exc))


def _token_response(output: AuthTokensOutput) -> AuthTokenResponse:
    return AuthTokenResponse(
        access_token=output.access_token,
        refresh_token=output.refresh_token,
        user={
            "id": output.user.id,
            "email": output.user.email,
            "name": output.user.name,
            "profile_picture_url": output.user.profile_picture_url,
        },
    )


@router.post("/google", response_model=AuthTokenResponse)
def login_google(
    req: GoogleLoginRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    use_case: AuthenticateUseCase = Depends(get_authenticate_use_case),
):
    try:
        output = use_case.execute(
            AuthenticateInput(
                provider="google",
                id_token=req.id_token,
                device_info=_device_info(req.device_info, request, user_agent),
            )
        )
    except (AuthError, UpstreamUnavailableError, ProviderNotConfiguredError) as exc:
        raise _http_error(exc) from exc
    return _token_response(output)


@router.post("/apple", response_model=AuthTokenResponse)
def login_apple(
    req: AppleLoginRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    use_case: AuthenticateUseCase = Depends(get_authenticate_use_case),
):
    try:
        output = use_case.execute(
            AuthenticateInput(
                provider="apple",
                id_token=req.id_token,
                device_info=_device_info(req.device_info, request, user_agent),
            )
        )
    except (AuthError, UpstreamUnavailableError, ProviderNotConfiguredError) as exc:
        raise _http_error(exc) from exc
    return _token_response(output)


@router.post("/refresh", response_model=RefreshTokenResponse)
def refresh_auth(
    req: RefreshRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
):
    try:
        output = use_case.execute(
            RefreshSessionInput(
                refresh_token=req.refresh_token,
                device_info=_device_info(req.device_info, request, user_agent),
            )
        )
    except (AuthError, UpstreamUnavailableError) as exc:
        raise _http_error(exc) from exc
    return RefreshTokenResponse(
        access_token=output.access_token,
        refresh_token=output.refresh_token,
    )


@router.post("/logout", status_code=204)
def logout_auth(
    req: LogoutRequest,
    _current_user: User = Depends(get_current_user),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
):
    try:
        use_case.execute(LogoutInput(refresh_token=req.refresh_token))
    except UpstreamUnavailableError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@router.post("/dev/login", response_model=AuthTokenResponse)
def dev_login(
    req: DevLoginRequest,
    request: Request,
    user_agent: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
    use_case: DevLoginUseCase = Depends(get_dev_login_use_case),
):
    if settings.is_production:
        raise HTTPException(status_code=403, detail="Dev endpoints disabled in production")
    try:
        output = use_case.execute(
            DevLoginInput(
                email=req.email,
                name=req.name,
                device_info={
                    "userAgent": user_agent,
                    "ipAddress": request.client.host if request.client else None,
                },
            )
        )
    except UpstreamUnavailableError as exc:
        raise _http_error(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _token_response(output)
