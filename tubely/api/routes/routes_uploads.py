from __future__ import annotations

from fastapi import APIRouter, Request

from tubely.api import deps
from tubely.core.logging import get_logger

from . import schemas


router = APIRouter(tags=["uploads"])
logger = get_logger(component="uploads")

ERROR_RESPONSES = {
    status_code: {"model": schemas.ErrorResponse}
    for status_code in (400, 401, 403, 422, 502)
}


# Neither handler declares File()/Form() parameters: the multipart body is only
# parsed after authorize() has confirmed ownership.


@router.post("/video_upload/{video_id}", response_model=schemas.VideoResponse, responses=ERROR_RESPONSES)
async def upload_video(
    video_id: str,
    request: Request,
    service: deps.IngestServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    logger.info("video_upload_requested", video_id=video_id, user_id=context.user_id)
    video = await service.authorize(video_id, context.user_id)

    async with request.form(max_files=1) as form:
        updated = await service.ingest_video(video, form.get("video"))
    return schemas.VideoResponse.model_validate(updated)


@router.post("/thumbnail_upload/{video_id}", response_model=schemas.VideoResponse, responses=ERROR_RESPONSES)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    service: deps.IngestServiceDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    logger.info("thumbnail_upload_requested", video_id=video_id, user_id=context.user_id)
    video = await service.authorize(video_id, context.user_id)

    async with request.form(max_files=1) as form:
        updated = await service.ingest_thumbnail(video, form.get("thumbnail"))
    return schemas.VideoResponse.model_validate(updated)


__all__ = ["router"]
