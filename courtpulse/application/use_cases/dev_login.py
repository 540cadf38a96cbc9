from __future__ import annotations

from courtpulse.application.dto.auth import AuthTokensOutput, DevLoginInput
from courtpulse.application.ports.auth_port import AuthPort
from courtpulse.application.ports.token_port import TokenPort
from courtpulse.application.services.account_resolver import AccountResolver
from courtpulse.application.services.refresh_token_store import RefreshTokenStore

from .auth_common import issue_tokens


class DevLoginUseCase:
    """Development-only sign-in by email that bypasses identity providers."""

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        account_resolver: AccountResolver,
        refresh_tokens: RefreshTokenStore,
        token_port: TokenPort,
    ):
        self._auth_port = auth_port
        self._account_resolver = account_resolver
        self._refresh_tokens = refresh_tokens
        self._token_port = token_port

    def execute(self, command: DevLoginInput) -> AuthTokensOutput:
        email = command.email.strip()
        if not email:
            raise ValueError("email is required.")
        device_info = {**(command.device_info or {}), "source": "dev-login"}

        def _tx(auth_port: AuthPort) -> AuthTokensOutput:
            user = self._account_resolver.bind(auth_port).resolve_email_user(email=email, name=command.name)
            return issue_tokens(
                user=user,
                refresh_tokens=self._refresh_tokens.bind(auth_port),
                token_port=self._token_port,
                device_info=device_info,
            )

        return self._auth_port.execute_in_transaction(_tx)
