from __future__ import annotations

from typing import Protocol

from courtpulse.application.dto.auth import AppleIdentityInfo, GoogleIdentityInfo


class GoogleIdentityPort(Protocol):
    def verify_id_token(self, *, id_token: str) -> GoogleIdentityInfo:
        ...


class AppleIdentityPort(Protocol):
    def verify_id_token(self, *, id_token: str) -> AppleIdentityInfo:
        ...
