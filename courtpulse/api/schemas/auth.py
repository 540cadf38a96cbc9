from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DeviceInfoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    user_agent: str | None = Field(default=None, alias="userAgent", max_length=512)
    ip_address: str | None = Field(default=None, alias="ipAddress", max_length=64)


class GoogleLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(..., alias="idToken", min_length=1)
    device_info: DeviceInfoRequest | None = Field(default=None, alias="deviceInfo")


class AppleLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(..., alias="idToken", min_length=1)
    authorization_code: str | None = Field(default=None, alias="authorizationCode")
    device_info: DeviceInfoRequest | None = Field(default=None, alias="deviceInfo")


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., alias="refreshToken", min_length=1, max_length=256)
    device_info: DeviceInfoRequest | None = Field(default=None, alias="deviceInfo")


class LogoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(..., alias="refreshToken", min_length=1, max_length=256)


class DevLoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    name: str | None = Field(default=None, max_length=120)


class AuthUserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    name: str | None = None
    profile_picture_url: str | None = Field(default=None, alias="profilePictureUrl")


class AuthTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
    user: AuthUserResponse


class RefreshTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
