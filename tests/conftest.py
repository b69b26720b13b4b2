"""Shared pytest fixtures for PromptCanvas tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from google.genai import types

from promptcanvas.core.asset_db import AssetDB
from promptcanvas.core.blob_store import LocalBlobStore
from promptcanvas.core.catalog import CatalogService
from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import ProviderError
from promptcanvas.core.favorites import FavoriteToggle
from promptcanvas.core.orchestrator import GenerationOrchestrator

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-payload"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-payload"


def make_envelope(*parts: types.Part) -> types.GenerateContentResponse:
    """Build a single-candidate provider response from the given parts."""
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


def image_part(data: bytes = PNG_BYTES, mime_type: str | None = "image/png") -> types.Part:
    return types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))


class FakeProvider:
    """ImageProvider double that records requests and replays a response.

    Pass ``error`` to make every call raise :class:`ProviderError` with that
    message instead.
    """

    def __init__(self, envelope=None, error: str | None = None):
        self.envelope = envelope if envelope is not None else make_envelope(image_part())
        self.error = error
        self.requests = []
        self.timeouts = []

    def generate(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        if self.error is not None:
            raise ProviderError(self.error)
        return self.envelope


class SigningBlobStore(LocalBlobStore):
    """LocalBlobStore that also signs URLs, like the S3 store does."""

    def sign(self, key: str, ttl_seconds: int) -> str | None:
        return f"https://signed.example.com/{key}?ttl={ttl_seconds}"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> PromptCanvasConfig:
    """Create a test configuration with temporary directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        PromptCanvasConfig instance for testing
    """
    return PromptCanvasConfig(
        _env_file=None,
        blob_backend="local",
        blob_dir=str(temp_dir / "blobs"),
        database_path=str(temp_dir / "data" / "test.db"),
        mock_provider=True,
        default_page_size=8,
        signed_url_ttl_seconds=3600,
    )


@pytest.fixture
def asset_db(test_config: PromptCanvasConfig) -> AssetDB:
    return AssetDB(test_config.database_path, timeout=test_config.sqlite_timeout_seconds)


@pytest.fixture
def blob_store(test_config: PromptCanvasConfig) -> LocalBlobStore:
    return LocalBlobStore(test_config.blob_dir)


@pytest.fixture
def signing_blob_store(test_config: PromptCanvasConfig) -> SigningBlobStore:
    return SigningBlobStore(test_config.blob_dir)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def orchestrator(test_config, fake_provider, blob_store, asset_db) -> GenerationOrchestrator:
    return GenerationOrchestrator(test_config, fake_provider, blob_store, asset_db)


@pytest.fixture
def catalog(test_config, asset_db, blob_store) -> CatalogService:
    return CatalogService(test_config, asset_db, blob_store)


@pytest.fixture
def favorites(asset_db, catalog) -> FavoriteToggle:
    return FavoriteToggle(asset_db, catalog)


@pytest.fixture
def api_services(test_config, fake_provider):
    """Core services wired like the app does, with the fake provider."""
    from promptcanvas.api.main import build_services

    return build_services(test_config, provider=fake_provider)


@pytest.fixture
def test_client(api_services):
    """FastAPI TestClient whose app uses :func:`api_services`.

    The lifespan handler keeps services that are already on ``app.state``,
    so no real provider or S3 client is ever built.
    """
    from fastapi.testclient import TestClient

    from promptcanvas.api.main import app

    app.state.services = api_services
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.state.services = None
