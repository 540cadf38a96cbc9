from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    name: str | None = None
    profile_picture_url: str | None = Field(default=None, alias="profilePictureUrl")
