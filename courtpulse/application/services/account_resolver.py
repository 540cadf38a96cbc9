from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import uuid4

from courtpulse.application.dto.auth import AppleIdentityInfo, GoogleIdentityInfo
from courtpulse.application.ports.auth_port import AuthPort
from courtpulse.application.services.refresh_token_store import utcnow
from courtpulse.domain.entities.user import AuthProvider, User
from courtpulse.domain.exceptions import (
    AccountLinkRejectedError,
    EmailAlreadyExistsError,
    MissingEmailError,
)
from courtpulse.domain.services.account_linking import LinkingPolicy, ResolutionCase, decide_resolution


logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _verified_or(claims: _ProviderClaims, current: bool) -> bool:
    # A missing claim is not a change.
    return current if claims.email_verified is None else claims.email_verified


@dataclass(frozen=True)
class _ProviderClaims:
    provider: AuthProvider
    subject: str
    email: str | None
    email_verified: bool | None
    name: str | None = None
    picture: str | None = None
    has_profile: bool = False


class AccountResolver:
    """Finds or creates the local user for a verified provider identity.

    Owns every mutation of user rows. Each successful resolution stamps
    ``last_login_at``.
    """

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        policy: LinkingPolicy | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._auth_port = auth_port
        self._policy = policy or LinkingPolicy()
        self._clock = clock

    def bind(self, auth_port: AuthPort) -> AccountResolver:
        return AccountResolver(auth_port=auth_port, policy=self._policy, clock=self._clock)

    def resolve_google_user(self, identity: GoogleIdentityInfo) -> User:
        return self._resolve(
            _ProviderClaims(
                provider="google",
                subject=identity.subject,
                email=identity.email,
                email_verified=identity.email_verified,
                name=identity.name,
                picture=identity.picture,
                has_profile=True,
            )
        )

    def resolve_apple_user(self, identity: AppleIdentityInfo) -> User:
        return self._resolve(
            _ProviderClaims(
                provider="apple",
                subject=identity.subject,
                email=identity.email,
                email_verified=identity.email_verified,
            )
        )

    def resolve_email_user(self, *, email: str, name: str | None) -> User:
        """Find or create a user by email alone, with no provider identity."""
        now = self._clock()
        normalized = normalize_email(email)
        user = self._auth_port.get_user_by_email(email=normalized)
        if user is None:
            try:
                user = self._auth_port.create_user(
                    user_id=str(uuid4()),
                    provider=None,
                    provider_subject=None,
                    email=normalized,
                    email_verified=True,
                    name=name or "Test User",
                    profile_picture_url=None,
                    now=now,
                )
            except EmailAlreadyExistsError:
                user = self._auth_port.get_user_by_email(email=normalized)
                if user is None:
                    raise
        return self._auth_port.touch_last_login(user_id=user.id, now=now)

    def _resolve(self, claims: _ProviderClaims) -> User:
        now = self._clock()
        email = normalize_email(claims.email) if claims.email else None

        by_subject = self._auth_port.get_user_by_provider_subject(
            provider=claims.provider,
            provider_subject=claims.subject,
        )
        if by_subject is None and email is None:
            raise MissingEmailError(f"Email not provided by {claims.provider.capitalize()}.")

        by_email = None
        if by_subject is None and email is not None:
            by_email = self._auth_port.get_user_by_email(email=email)

        case = decide_resolution(
            by_subject=by_subject,
            by_email=by_email,
            email_verified=bool(claims.email_verified),
            policy=self._policy,
        )
        if case is ResolutionCase.EXISTING:
            user = self._refresh_profile(by_subject, claims, now)
        elif case is ResolutionCase.LINK:
            user = self._link(by_email, claims, now)
        elif case is ResolutionCase.REJECT:
            raise AccountLinkRejectedError("Email must be verified before linking accounts.")
        else:
            user = self._create(claims, email, now)

        return self._auth_port.touch_last_login(user_id=user.id, now=now)

    def _refresh_profile(self, user: User, claims: _ProviderClaims, now: datetime) -> User:
        name = claims.name if claims.has_profile else user.name
        picture = claims.picture if claims.has_profile else user.profile_picture_url
        email_verified = _verified_or(claims, user.email_verified)
        changed = (
            user.name != name
            or user.profile_picture_url != picture
            or user.email_verified != email_verified
        )
        if not changed:
            return user
        return self._auth_port.update_user_profile(
            user_id=user.id,
            email_verified=email_verified,
            name=name,
            profile_picture_url=picture,
            now=now,
        )

    def _link(self, user: User, claims: _ProviderClaims, now: datetime) -> User:
        logger.info(
            "account_resolver: linked_provider provider=%s user_id=%s",
            claims.provider,
            user.id,
        )
        return self._auth_port.link_provider(
            user_id=user.id,
            provider=claims.provider,
            provider_subject=claims.subject,
            email_verified=_verified_or(claims, user.email_verified),
            name=claims.name if claims.has_profile and claims.name else user.name,
            profile_picture_url=(
                claims.picture if claims.has_profile and claims.picture else user.profile_picture_url
            ),
            now=now,
        )

    def _create(self, claims: _ProviderClaims, email: str, now: datetime) -> User:
        try:
            return self._auth_port.create_user(
                user_id=str(uuid4()),
                provider=claims.provider,
                provider_subject=claims.subject,
                email=email,
                email_verified=bool(claims.email_verified),
                name=claims.name,
                profile_picture_url=claims.picture,
                now=now,
            )
        except EmailAlreadyExistsError:
            # A concurrent first sign-in created the row; link to it instead.
            logger.info(
                "account_resolver: create_race_lost provider=%s retrying_as=link",
                claims.provider,
            )
            existing = self._auth_port.get_user_by_email(email=email)
            if existing is None:
                raise
            case = decide_resolution(
                by_subject=None,
                by_email=existing,
                email_verified=bool(claims.email_verified),
                policy=self._policy,
            )
            if case is ResolutionCase.REJECT:
                raise AccountLinkRejectedError("Email must be verified before linking accounts.")
            return self._link(existing, claims, now)
