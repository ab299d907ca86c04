from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised at startup when the process environment is incomplete."""


class Secrets(BaseSettings):
    """Secrets configuration, loaded from the environment or a secrets management service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(..., description="Signing secret for access tokens.")


class Settings(BaseSettings):
    """Centralised runtime configuration for the Tubely API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Tubely API"
    version: str = Field(default="0.1.0", description="API version for metadata and OpenAPI.")
    log_level: str = Field(default="info")

    db_path: Path = Field(..., description="Path of the SQLite metadata database.")
    platform: str = Field(..., description="Deployment platform label (dev enables development helpers).")
    filepath_root: Path = Field(..., description="Root directory for general application files.")
    assets_root: Path = Field(..., description="Directory served at /assets for thumbnails.")
    temp_root: Path = Field(..., description="Scratch directory for uploads being processed.")
    port: int = Field(..., description="Listening port.")

    s3_bucket: str = Field(...)
    s3_region: str = Field(...)
    s3_cf_distro: Optional[str] = Field(default=None, description="CDN domain fronting the bucket.")
    s3_endpoint_url: Optional[str] = Field(default=None, description="Override for S3-compatible endpoints.")
    storage_backend: Literal["s3", "local"] = Field(default="s3", description="Active object storage implementation.")
    public_base_url: Optional[str] = Field(default=None, description="Externally visible base URL of this server.")

    jwt_algorithm: str = Field(default="HS256", description="Algorithm used for JWT tokens.")
    jwt_issuer: Optional[str] = None
    jwt_audience: Optional[str] = None

    ffprobe_bin: str = Field(default="ffprobe")
    ffmpeg_bin: str = Field(default="ffmpeg")
    probe_timeout_s: float = Field(default=60.0, gt=0)
    transcode_timeout_s: float = Field(default=600.0, gt=0)

    max_video_upload_bytes: int = Field(default=1 << 30, gt=0)
    max_thumbnail_upload_bytes: int = Field(default=10 << 20, gt=0)

    secrets: Secrets = Field(default_factory=Secrets, description="Holds sensitive configuration.")

    @property
    def platform_lower(self) -> str:
        return self.platform.lower()

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.db_path}"

    @property
    def base_url(self) -> str:
        if self.public_base_url:
            return self.public_base_url.rstrip("/")
        return f"http://localhost:{self.port}"

    @property
    def objects_root(self) -> Path:
        return self.filepath_root / "objects"


def _missing_fields(exc: ValidationError) -> list[str]:
    names = []
    for error in exc.errors():
        if error.get("type") == "missing" and error.get("loc"):
            names.append(str(error["loc"][-1]).upper())
    return names


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env", override=False)

    missing: list[str] = []
    failure: ValidationError | None = None

    try:
        secrets = Secrets()
    except ValidationError as exc:
        missing.extend(_missing_fields(exc))
        failure = exc
        secrets = Secrets.model_construct(jwt_secret="")

    try:
        settings = Settings(secrets=secrets)
    except ValidationError as exc:
        missing.extend(_missing_fields(exc))
        failure = exc

    if missing:
        raise ConfigurationError(f"missing required environment variables: {', '.join(sorted(missing))}") from failure
    if failure is not None:
        raise ConfigurationError(f"invalid configuration: {failure}") from failure
    return settings


__all__ = ["ConfigurationError", "Secrets", "Settings", "get_settings"]
