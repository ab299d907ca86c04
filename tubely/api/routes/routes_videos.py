from __future__ import annotations

from fastapi import APIRouter, status

from tubely.api import deps
from tubely.core.errors import NotFound

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: schemas.CreateVideoRequest,
    videos: deps.VideoRepositoryDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await videos.create(user_id=context.user_id, title=payload.title, description=payload.description)
    return schemas.VideoResponse.model_validate(video)


@router.get("", response_model=list[schemas.VideoResponse])
async def list_videos(videos: deps.VideoRepositoryDependency, context: deps.AuthDependency) -> list[schemas.VideoResponse]:
    records = await videos.list_for_user(context.user_id)
    return [schemas.VideoResponse.model_validate(video) for video in records]


@router.get("/{video_id}", response_model=schemas.VideoResponse)
async def get_video(
    video_id: str,
    videos: deps.VideoRepositoryDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await videos.get(video_id)
    if video is None or video.user_id != context.user_id:
        raise NotFound("video_not_found")
    return schemas.VideoResponse.model_validate(video)


__all__ = ["router"]
