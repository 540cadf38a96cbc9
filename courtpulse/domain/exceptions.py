from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class AuthError(DomainError):
    """Base for authentication and session failures."""


class InvalidAssertionError(AuthError):
    """Identity provider assertion is malformed, expired, untrusted or for another audience."""


class MissingEmailError(AuthError):
    """Identity provider did not supply an email and no linked account exists."""


class AccountLinkRejectedError(AuthError):
    """Linking policy refused to merge the identity into an existing account."""


class EmailAlreadyExistsError(AuthError):
    """Unique email constraint rejected a new user row."""


class AccessTokenExpiredError(AuthError):
    """Access token is past its expiry."""


class AccessTokenMalformedError(AuthError):
    """Access token signature or claims are invalid."""


class RefreshTokenInvalidError(AuthError):
    """Refresh token is unknown, expired or revoked."""


class ReplayDetectedError(AuthError):
    """A consumed refresh token was presented again; every session of the user was revoked."""


class UserNotFoundError(AuthError):
    """User referenced by a credential no longer exists."""


class UpstreamUnavailableError(DomainError):
    """Storage or identity provider did not answer in time."""


class ProviderNotConfiguredError(DomainError):
    """Sign-in provider has no registered client id."""
