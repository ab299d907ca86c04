from __future__ import annotations

import shutil

from fastapi import APIRouter

from tubely.api.deps import SettingsDependency

from .schemas import EnvCheckResponse, HealthResponse


router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/env-check", response_model=EnvCheckResponse, summary="Report whether the media toolchain is installed")
async def env_check(settings: SettingsDependency) -> EnvCheckResponse:
    return EnvCheckResponse(
        ffmpeg=shutil.which(settings.ffmpeg_bin) is not None,
        ffprobe=shutil.which(settings.ffprobe_bin) is not None,
    )


__all__ = ["router"]
