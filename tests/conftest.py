import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

from tubely.api import deps
from tubely.core.config import get_settings
from tubely.core.db import Base, create_engine
from tubely.ingest.faststart import processed_path_for
from tubely.ingest.probe import ProbeResult
from tubely.main import create_app
import tubely.db.models  # noqa: F401 - register tables on Base.metadata

TEST_SECRET = "test-secret"
OWNER_ID = "user-owner"
OTHER_ID = "user-other"


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default Tubely environment bootstrap fixture for tests that manage their own environment",
    )


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        yield None
        get_settings.cache_clear()
        return

    monkeypatch.setenv("DB_PATH", str(tmp_path / "tubely_test.db"))
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("PLATFORM", "dev")
    monkeypatch.setenv("FILEPATH_ROOT", str(tmp_path / "files"))
    monkeypatch.setenv("ASSETS_ROOT", str(tmp_path / "assets"))
    monkeypatch.setenv("TEMP_ROOT", str(tmp_path / "scratch"))
    monkeypatch.setenv("S3_BUCKET", "tubely-test")
    monkeypatch.setenv("S3_REGION", "us-east-2")
    monkeypatch.setenv("PORT", "8091")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    for key in ("S3_CF_DISTRO", "S3_ENDPOINT_URL", "PUBLIC_BASE_URL", "JWT_ISSUER", "JWT_AUDIENCE"):
        monkeypatch.delenv(key, raising=False)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_setup())

    yield settings

    async def _teardown() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    asyncio.run(_teardown())
    get_settings.cache_clear()


class FakeProber:
    def __init__(self, width: int = 1920, height: int = 1080, error: Exception | None = None):
        self.width = width
        self.height = height
        self.error = error
        self.calls: list[Path] = []

    def probe(self, path: Path) -> ProbeResult:
        self.calls.append(path)
        assert path.exists(), "probe must run against the persisted scratch file"
        if self.error:
            raise self.error
        return ProbeResult(width=self.width, height=self.height)


class FakeRemuxer:
    def __init__(self, error: Exception | None = None, *, leave_partial: bool = False):
        self.error = error
        self.leave_partial = leave_partial
        self.calls: list[Path] = []

    def remux(self, input_path: Path) -> Path:
        self.calls.append(input_path)
        output = processed_path_for(input_path)
        if self.leave_partial:
            output.write_bytes(b"partial")
        if self.error:
            raise self.error
        output.write_bytes(b"faststart:" + input_path.read_bytes())
        return output


@pytest.fixture()
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture()
def fake_remuxer() -> FakeRemuxer:
    return FakeRemuxer()


@pytest.fixture()
def make_client(configure_environment, fake_prober, fake_remuxer):
    clients: list[TestClient] = []

    def _make(*, prober=None, remuxer=None, storage=None) -> TestClient:
        get_settings.cache_clear()
        app = create_app()
        app.dependency_overrides[deps.get_prober] = lambda: prober or fake_prober
        app.dependency_overrides[deps.get_remuxer] = lambda: remuxer or fake_remuxer
        if storage is not None:
            app.dependency_overrides[deps.get_storage] = lambda: storage
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client):
    return make_client()


def build_token(user_id: str, *, secret: str = TEST_SECRET, expires_in: timedelta = timedelta(hours=1)) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + expires_in).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture()
def owner_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token(OWNER_ID)}"}


@pytest.fixture()
def other_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {build_token(OTHER_ID)}"}


@pytest.fixture()
def video_id(client, owner_headers) -> str:
    resp = client.post("/api/videos", json={"title": "Boots demo", "description": "clip"}, headers=owner_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]
