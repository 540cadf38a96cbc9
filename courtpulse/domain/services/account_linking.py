from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from courtpulse.domain.entities.user import User


class ResolutionCase(str, Enum):
    EXISTING = "existing"
    LINK = "link"
    CREATE = "create"
    REJECT = "reject"


@dataclass(frozen=True)
class LinkingPolicy:
    """Trust rules for merging a provider identity into an account found by email.

    With ``require_verified_email`` off, any provider's email claim is taken as
    authoritative, which is how accounts have always been merged.
    """

    require_verified_email: bool = False


def decide_resolution(
    *,
    by_subject: User | None,
    by_email: User | None,
    email_verified: bool,
    policy: LinkingPolicy,
) -> ResolutionCase:
    if by_subject is not None:
        return ResolutionCase.EXISTING
    if by_email is None:
        return ResolutionCase.CREATE
    if policy.require_verified_email and not email_verified:
        return ResolutionCase.REJECT
    return ResolutionCase.LINK
