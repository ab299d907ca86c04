from __future__ import annotations

import asyncio
import io
import re

import pytest
from starlette.datastructures import Headers, UploadFile

from tubely.core.errors import BadRequest
from tubely.ingest.aspect import AspectCategory
from tubely.services.ingest_service import (
    IngestService,
    build_storage_key,
    extension_for,
    media_type_of,
    upload_size,
)


def _upload(payload: bytes, content_type: str, *, size: int | None = None) -> UploadFile:
    return UploadFile(io.BytesIO(payload), size=size, filename="clip", headers=Headers({"content-type": content_type}))


@pytest.mark.parametrize("category", list(AspectCategory))
def test_storage_key_shape(category):
    key = build_storage_key(category, "mp4")
    assert re.fullmatch(rf"{category.value}/[0-9a-f]{{64}}\.mp4", key)


def test_storage_keys_do_not_repeat():
    keys = {build_storage_key(AspectCategory.landscape, "mp4") for _ in range(200)}
    assert len(keys) == 200


def test_media_type_ignores_parameters_and_case():
    part = _upload(b"x", "Video/MP4; codecs=avc1")
    assert media_type_of(part) == "video/mp4"
    assert extension_for("video/mp4") == "mp4"
    assert extension_for("image/jpeg") == "jpeg"


def test_upload_size_falls_back_to_stream_length():
    part = _upload(b"0123456789", "video/mp4")
    part.file.seek(3)
    assert upload_size(part) == 10
    assert part.file.tell() == 3
    assert upload_size(_upload(b"abc", "video/mp4", size=3)) == 3


def test_validation_rejects_non_file_parts(configure_environment):
    service = IngestService(configure_environment, storage=None, videos=None, prober=None, remuxer=None)
    with pytest.raises(BadRequest, match="video_file_missing"):
        service._validate_upload(
            "plain form value",
            field="video",
            allowed=("video/mp4",),
            max_bytes=100,
        )


def test_authorize_rejects_malformed_ids_without_lookup(configure_environment):
    class ExplodingRepository:
        async def get(self, video_id):  # pragma: no cover - must not be reached
            raise AssertionError("lookup must not happen for malformed ids")

    service = IngestService(configure_environment, storage=None, videos=ExplodingRepository(), prober=None, remuxer=None)
    for bad in ("", None, "../../etc/passwd"):
        with pytest.raises(BadRequest):
            asyncio.run(service.authorize(bad, "user-owner"))


def test_cleanup_failures_are_logged_not_raised(configure_environment, tmp_path):
    service = IngestService(configure_environment, storage=None, videos=None, prober=None, remuxer=None)
    present = tmp_path / "raw.mp4"
    present.write_bytes(b"raw")
    directory = tmp_path / "not-a-file"
    directory.mkdir()
    missing = tmp_path / "never-created.mp4.processed"

    asyncio.run(service._discard([present, directory, missing]))

    assert not present.exists()
    assert directory.exists()
