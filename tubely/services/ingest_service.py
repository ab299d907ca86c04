from __future__ import annotations

import asyncio
import secrets
from pathlib import Path
from typing import Any, Iterable
from uuid import UUID

from starlette.datastructures import UploadFile

from tubely.core.config import Settings
from tubely.core.errors import BadRequest, Forbidden
from tubely.core.logging import get_logger
from tubely.core.storage import ObjectStorage
from tubely.db.models import Video
from tubely.db.videos import VideoRepository
from tubely.domain import AspectCategory, Prober, Remuxer, classify, processed_path_for

VIDEO_MEDIA_TYPES = ("video/mp4",)
THUMBNAIL_MEDIA_TYPES = ("image/jpeg", "image/png")
CHUNK_SIZE = 1024 * 1024


def build_storage_key(category: AspectCategory, extension: str) -> str:
    """Return ``{category}/{64 hex chars}.{extension}`` using a CSPRNG token."""
    return f"{category.value}/{secrets.token_hex(32)}.{extension}"


def media_type_of(part: UploadFile) -> str:
    return (part.content_type or "").split(";", 1)[0].strip().lower()


def extension_for(media_type: str) -> str:
    _, _, subtype = media_type.partition("/")
    return subtype


def upload_size(part: UploadFile) -> int:
    if part.size is not None:
        return part.size
    handle = part.file
    position = handle.tell()
    handle.seek(0, 2)
    size = handle.tell()
    handle.seek(position)
    return size


class IngestService:
    def __init__(
        self,
        settings: Settings,
        storage: ObjectStorage,
        videos: VideoRepository,
        prober: Prober,
        remuxer: Remuxer,
    ):
        self.settings = settings
        self.storage = storage
        self.videos = videos
        self.prober = prober
        self.remuxer = remuxer
        self.logger = get_logger(component="ingest_service")

    async def authorize(self, video_id: str | None, user_id: str) -> Video:
        """Load the record and confirm the caller owns it.

        Runs before the upload body is read so that a non-owner never causes
        disk writes or media processing.
        """
        if not video_id:
            raise BadRequest("invalid_video_id")
        try:
            UUID(video_id)
        except ValueError as exc:
            raise BadRequest("invalid_video_id") from exc

        video = await self.videos.get(video_id)
        if video is None or video.user_id != user_id:
            self.logger.info("ownership_check_failed", video_id=video_id, user_id=user_id)
            raise Forbidden("not_video_owner")
        return video

    async def ingest_video(self, video: Video, part: Any) -> Video:
        upload, media_type, extension = self._validate_upload(
            part,
            field="video",
            allowed=VIDEO_MEDIA_TYPES,
            max_bytes=self.settings.max_video_upload_bytes,
        )
        logger = self.logger.bind(video_id=video.id, user_id=video.user_id)
        logger.info("video_upload_started", media_type=media_type, size_bytes=upload_size(upload))

        temp_root = Path(self.settings.temp_root)
        temp_root.mkdir(parents=True, exist_ok=True)
        raw_path = temp_root / f"{video.id}-{secrets.token_hex(8)}.{extension}"
        scratch = [raw_path, processed_path_for(raw_path)]

        try:
            await self._write_part(upload, raw_path)

            dimensions = await asyncio.to_thread(self.prober.probe, raw_path)
            category = classify(dimensions.width, dimensions.height)
            logger.info("video_probed", width=dimensions.width, height=dimensions.height, category=category.value)

            processed_path = await asyncio.to_thread(self.remuxer.remux, raw_path)
            if processed_path not in scratch:
                scratch.append(processed_path)

            key = build_storage_key(category, extension)
            await asyncio.to_thread(self.storage.put, key, processed_path, content_type=media_type)
            logger.info("video_stored", key=key)

            video.video_url = self.storage.public_url(key)
            updated = await self.videos.update(video)
        finally:
            await self._discard(scratch)

        logger.info("video_upload_completed", video_url=updated.video_url)
        return updated

    async def ingest_thumbnail(self, video: Video, part: Any) -> Video:
        upload, media_type, extension = self._validate_upload(
            part,
            field="thumbnail",
            allowed=THUMBNAIL_MEDIA_TYPES,
            max_bytes=self.settings.max_thumbnail_upload_bytes,
        )
        assets_root = Path(self.settings.assets_root)
        assets_root.mkdir(parents=True, exist_ok=True)
        target = assets_root / f"{video.id}.{extension}"

        try:
            await self._write_part(upload, target)
            video.thumbnail_url = f"{self.settings.base_url}/assets/{target.name}"
            updated = await self.videos.update(video)
        except Exception:
            await self._discard([target])
            raise

        self.logger.info("thumbnail_stored", video_id=video.id, media_type=media_type, path=target.name)
        return updated

    def _validate_upload(
        self,
        part: Any,
        *,
        field: str,
        allowed: tuple[str, ...],
        max_bytes: int,
    ) -> tuple[UploadFile, str, str]:
        if not isinstance(part, UploadFile):
            raise BadRequest(f"{field}_file_missing")
        if upload_size(part) > max_bytes:
            raise BadRequest("file_too_large")
        media_type = media_type_of(part)
        if media_type not in allowed:
            raise BadRequest("unsupported_media_type")
        return part, media_type, extension_for(media_type)

    @staticmethod
    async def _write_part(part: UploadFile, target: Path) -> None:
        await part.seek(0)
        with target.open("wb") as handle:
            while chunk := await part.read(CHUNK_SIZE):
                handle.write(chunk)

    async def _discard(self, paths: Iterable[Path]) -> None:
        targets = list(paths)
        results = await asyncio.gather(
            *(asyncio.to_thread(path.unlink, missing_ok=True) for path in targets),
            return_exceptions=True,
        )
        for path, result in zip(targets, results):
            if isinstance(result, BaseException):
                self.logger.warning("scratch_cleanup_failed", path=path.name, error=str(result))


__all__ = [
    "IngestService",
    "build_storage_key",
    "VIDEO_MEDIA_TYPES",
    "THUMBNAIL_MEDIA_TYPES",
]
