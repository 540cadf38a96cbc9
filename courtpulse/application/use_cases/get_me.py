from __future__ import annotations

from courtpulse.application.dto.me import MeOutput
from courtpulse.domain.entities.user import User


class GetMeUseCase:
    def execute(self, *, user: User) -> MeOutput:
        return MeOutput(
            user_id=user.id,
            email=user.email,
            name=user.name,
            profile_picture_url=user.profile_picture_url,
        )
