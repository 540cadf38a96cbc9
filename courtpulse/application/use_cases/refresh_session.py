from __future__ import annotations

import logging

from courtpulse.application.dto.auth import AuthTokensOutput, RefreshSessionInput
from courtpulse.application.ports.auth_port import AuthPort
from courtpulse.application.ports.token_port import TokenPort
from courtpulse.application.services.refresh_token_store import RefreshTokenStore, utcnow
from courtpulse.domain.exceptions import RefreshTokenInvalidError, ReplayDetectedError, UserNotFoundError

from .auth_common import build_auth_user_output


logger = logging.getLogger(__name__)


class RefreshSessionUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        refresh_tokens: RefreshTokenStore,
        token_port: TokenPort,
    ):
        self._auth_port = auth_port
        self._refresh_tokens = refresh_tokens
        self._token_port = token_port

    def execute(self, command: RefreshSessionInput) -> AuthTokensOutput:
        token = command.refresh_token.strip()
        if not token:
            raise RefreshTokenInvalidError("Missing refresh token.")

        # Reuse check runs before validation: a consumed secret means the chain leaked.
        reused_by = self._refresh_tokens.check_reuse(token)
        if reused_by is not None:
            logger.warning("refresh_session: replay_detected user_id=%s action=revoke_all", reused_by)
            self._refresh_tokens.revoke_all(user_id=reused_by)
            raise ReplayDetectedError("Token reuse detected - all tokens revoked.")

        def _tx(auth_port: AuthPort) -> AuthTokensOutput:
            refresh_tokens = self._refresh_tokens.bind(auth_port)
            credential = refresh_tokens.validate(token, for_update=True)

            user = auth_port.get_user_by_id(user_id=credential.user_id)
            if user is None:
                raise UserNotFoundError("User not found for refresh token.")

            issued = refresh_tokens.generate(user_id=user.id, device_info=command.device_info)
            refresh_tokens.rotate(credential=credential, replaced_by_id=issued.credential.id)

            access_token, access_expires_at = self._token_port.create_access_token(
                user_id=user.id,
                email=user.email,
                now=utcnow(),
            )
            return AuthTokensOutput(
                user=build_auth_user_output(user),
                access_token=access_token,
                refresh_token=issued.token,
                access_expires_at=access_expires_at,
                refresh_expires_at=issued.credential.expires_at,
            )

        return self._auth_port.execute_in_transaction(_tx)
