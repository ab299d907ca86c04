from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tubely.core.auth import AuthContext, get_auth_context, get_request_settings
from tubely.core.config import Settings
from tubely.core.storage import ObjectStorage
from tubely.db.videos import VideoRepository
from tubely.ingest.faststart import Remuxer
from tubely.ingest.probe import Prober
from tubely.services.ingest_service import IngestService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover - defensive
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_storage(request: Request) -> ObjectStorage:
    storage: ObjectStorage = request.app.state.storage
    return storage


def get_prober(request: Request) -> Prober:
    return request.app.state.prober


def get_remuxer(request: Request) -> Remuxer:
    return request.app.state.remuxer


def get_video_repository(session: AsyncSession = Depends(get_session)) -> VideoRepository:
    return VideoRepository(session)


async def get_ingest_service(
    videos: VideoRepository = Depends(get_video_repository),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_request_settings),
    prober: Prober = Depends(get_prober),
    remuxer: Remuxer = Depends(get_remuxer),
) -> AsyncIterator[IngestService]:
    service = IngestService(settings, storage, videos, prober, remuxer)
    yield service


IngestServiceDependency = Annotated[IngestService, Depends(get_ingest_service)]
VideoRepositoryDependency = Annotated[VideoRepository, Depends(get_video_repository)]
AuthDependency = Annotated[AuthContext, Depends(get_auth_context)]
SettingsDependency = Annotated[Settings, Depends(get_request_settings)]


__all__ = [
    "get_session",
    "get_storage",
    "get_prober",
    "get_remuxer",
    "get_video_repository",
    "get_ingest_service",
    "IngestServiceDependency",
    "VideoRepositoryDependency",
    "AuthDependency",
    "SettingsDependency",
]
