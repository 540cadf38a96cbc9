from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MeOutput:
    user_id: str
    email: str
    name: str | None
    profile_picture_url: str | None
