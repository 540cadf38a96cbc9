from __future__ import annotations

from courtpulse.application.dto.auth import AuthenticateInput, AuthTokensOutput
from courtpulse.application.ports.auth_port import AuthPort
from courtpulse.application.ports.identity_provider_port import AppleIdentityPort, GoogleIdentityPort
from courtpulse.application.ports.token_port import TokenPort
from courtpulse.application.services.account_resolver import AccountResolver
from courtpulse.application.services.refresh_token_store import RefreshTokenStore
from courtpulse.domain.entities.user import User
from courtpulse.domain.exceptions import InvalidAssertionError, ProviderNotConfiguredError

from .auth_common import issue_tokens


class AuthenticateUseCase:
    """Sign in with a provider assertion and return a fresh credential pair.

    Verification happens before any write. Resolution, the last-login stamp and
    the refresh record share one transaction, so a failure anywhere leaves no
    usable credential behind.
    """

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        account_resolver: AccountResolver,
        refresh_tokens: RefreshTokenStore,
        token_port: TokenPort,
        google_identity_port: GoogleIdentityPort | None = None,
        apple_identity_port: AppleIdentityPort | None = None,
    ):
        self._auth_port = auth_port
        self._account_resolver = account_resolver
        self._refresh_tokens = refresh_tokens
        self._token_port = token_port
        self._google_identity_port = google_identity_port
        self._apple_identity_port = apple_identity_port

    def execute(self, command: AuthenticateInput) -> AuthTokensOutput:
        id_token = command.id_token.strip()
        if not id_token:
            raise InvalidAssertionError("Missing identity token.")

        resolve = self._verify(command.provider, id_token)

        def _tx(auth_port: AuthPort) -> AuthTokensOutput:
            user = resolve(self._account_resolver.bind(auth_port))
            return issue_tokens(
                user=user,
                refresh_tokens=self._refresh_tokens.bind(auth_port),
                token_port=self._token_port,
                device_info=command.device_info,
            )

        return self._auth_port.execute_in_transaction(_tx)

    def _verify(self, provider: str, id_token: str):
        if provider == "google":
            if self._google_identity_port is None:
                raise ProviderNotConfiguredError("Google sign-in is not configured.")
            google_identity = self._google_identity_port.verify_id_token(id_token=id_token)

            def _resolve_google(resolver: AccountResolver) -> User:
                return resolver.resolve_google_user(google_identity)

            return _resolve_google

        if provider == "apple":
            if self._apple_identity_port is None:
                raise ProviderNotConfiguredError("Apple sign-in is not configured.")
            apple_identity = self._apple_identity_port.verify_id_token(id_token=id_token)

            def _resolve_apple(resolver: AccountResolver) -> User:
                return resolver.resolve_apple_user(apple_identity)

            return _resolve_apple

        raise ProviderNotConfiguredError(f"Unsupported provider '{provider}'.")
