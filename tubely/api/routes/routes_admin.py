from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from tubely.api.deps import SettingsDependency
from tubely.core.auth import issue_token
from tubely.core.errors import Forbidden


router = APIRouter(prefix="/admin", tags=["admin"])


class DevTokenRequest(BaseModel):
    user_id: str = Field(..., min_length=1, examples=["user-123"])


class DevTokenResponse(BaseModel):
    token: str


@router.post("/dev-token", response_model=DevTokenResponse, summary="Mint development JWT")
async def mint_dev_token(payload: DevTokenRequest, settings: SettingsDependency) -> DevTokenResponse:
    if settings.platform_lower not in {"dev", "development"}:
        raise Forbidden("dev_token_disabled")
    return DevTokenResponse(token=issue_token(payload.user_id, settings))


__all__ = ["router"]
