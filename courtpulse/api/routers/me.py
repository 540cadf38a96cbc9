from __future__ import annotations

from fastapi import APIRouter, Depends

from courtpulse.api.deps import get_current_user, get_get_me_use_case
from courtpulse.api.schemas.me import MeResponse
from courtpulse.application.use_cases.get_me import GetMeUseCase
from courtpulse.domain.entities.user import User


router = APIRouter()


@router.get("/api/auth/me", response_model=MeResponse)
def get_me(
    current_user: User = Depends(get_current_user),
    use_case: GetMeUseCase = Depends(get_get_me_use_case),
):
    output = use_case.execute(user=current_user)
    return MeResponse(
        id=output.user_id,
        email=output.email,
        name=output.name,
        profile_picture_url=output.profile_picture_url,
    )
