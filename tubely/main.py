from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from tubely.api.routes import get_api_router
from tubely.core.config import Settings, get_settings
from tubely.core.db import create_engine, create_session_factory
from tubely.core.errors import TubelyError, tubely_error_handler
from tubely.core.logging import configure_logging, get_logger, level_from_name
from tubely.core.storage import LocalStorage, get_storage
from tubely.ingest.faststart import FFmpegFastStart
from tubely.ingest.probe import FFprobe


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API. Configuration is resolved here, never at import time."""
    settings = settings or get_settings()
    configure_logging(level=level_from_name(settings.log_level))
    logger = get_logger(component="app")

    for directory in (settings.filepath_root, settings.assets_root, settings.temp_root):
        Path(directory).mkdir(parents=True, exist_ok=True)

    storage = get_storage(settings)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings
        app.state.storage = storage
        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.prober = FFprobe(settings.ffprobe_bin, timeout_s=settings.probe_timeout_s)
        app.state.remuxer = FFmpegFastStart(settings.ffmpeg_bin, timeout_s=settings.transcode_timeout_s)
        logger.info("app_started", platform=settings.platform, storage_backend=settings.storage_backend)
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )

    app.add_exception_handler(TubelyError, tubely_error_handler)
    app.include_router(get_api_router())
    app.mount("/assets", StaticFiles(directory=settings.assets_root), name="assets")
    if isinstance(storage, LocalStorage):
        app.mount("/objects", StaticFiles(directory=storage.base_path), name="objects")
    return app


__all__ = ["create_app"]
