from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import StorageFailure


class ObjectStorage(ABC):
    @abstractmethod
    def put(self, key: str, path: Path, *, content_type: str) -> None: ...

    @abstractmethod
    def public_url(self, key: str) -> str: ...


class LocalStorage(ObjectStorage):
    """Filesystem-backed object storage suitable for development."""

    def __init__(self, base_path: Path, base_url: str):
        self.base_path = base_path
        self.base_url = base_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        target = (self.base_path / key).resolve()
        if not target.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"key escapes storage root: {key}")
        return target

    def put(self, key: str, path: Path, *, content_type: str) -> None:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(path, target)
        except OSError as exc:
            raise StorageFailure("object_write_failed") from exc

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/objects/{key}"


class S3Storage(ObjectStorage):
    """Bucket-backed storage. Public URLs go through the CDN distribution when one is configured."""

    def __init__(
        self,
        bucket: str,
        region: str,
        *,
        cdn_domain: str | None = None,
        endpoint_url: str | None = None,
        client: Any | None = None,
    ):
        self.bucket = bucket
        self.region = region
        self.cdn_domain = cdn_domain.strip().rstrip("/") if cdn_domain else None
        self.client = client or boto3.client("s3", region_name=region, endpoint_url=endpoint_url)

    def put(self, key: str, path: Path, *, content_type: str) -> None:
        try:
            self.client.upload_file(str(path), self.bucket, key, ExtraArgs={"ContentType": content_type})
        except (BotoCoreError, ClientError, S3UploadFailedError, OSError) as exc:
            raise StorageFailure("object_write_failed") from exc

    def public_url(self, key: str) -> str:
        if self.cdn_domain:
            domain = self.cdn_domain.removeprefix("https://").removeprefix("http://")
            return f"https://{domain}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def get_storage(settings: Settings) -> ObjectStorage:
    if settings.storage_backend == "local":
        return LocalStorage(base_path=settings.objects_root, base_url=settings.base_url)
    if settings.storage_backend == "s3":
        return S3Storage(
            settings.s3_bucket,
            settings.s3_region,
            cdn_domain=settings.s3_cf_distro,
            endpoint_url=settings.s3_endpoint_url,
        )
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


__all__ = ["ObjectStorage", "LocalStorage", "S3Storage", "get_storage"]
