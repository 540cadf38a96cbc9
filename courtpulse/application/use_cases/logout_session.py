from __future__ import annotations

from courtpulse.application.dto.auth import LogoutInput
from courtpulse.application.services.refresh_token_store import RefreshTokenStore


class LogoutSessionUseCase:
    def __init__(self, *, refresh_tokens: RefreshTokenStore):
        self._refresh_tokens = refresh_tokens

    def execute(self, command: LogoutInput) -> None:
        # Unknown or already revoked tokens succeed silently so callers cannot probe for them.
        token = command.refresh_token.strip()
        if not token:
            return
        self._refresh_tokens.revoke(token)
