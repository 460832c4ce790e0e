"""Shared pytest fixtures for Coloring Page Generator tests."""

import asyncio
import io
import os
import shutil
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Generator

import pytest
from PIL import Image

# Importing coloringpage.api.main builds the global config and application,
# which create their storage directories.  Point them at a scratch location
# before any test module imports the package.
_SESSION_ROOT = Path(tempfile.mkdtemp(prefix="coloringpage-tests-"))
os.environ.setdefault("COLORINGPAGE_UPLOADS_DIR", str(_SESSION_ROOT / "uploads"))
os.environ.setdefault("COLORINGPAGE_PROCESSED_DIR", str(_SESSION_ROOT / "processed"))

from coloringpage.core.config import ColoringPageConfig  # noqa: E402
from coloringpage.core.file_store import FileStore  # noqa: E402
from coloringpage.core.pipeline import ColoringPipeline  # noqa: E402
from coloringpage.core.results import AIServiceError  # noqa: E402

FIXED_DESCRIPTION = "A smiling cat with round eyes sitting on a striped cushion."
FIXED_IMAGE_URL = "https://images.example.com/generated/outline.png"


def make_image_bytes(size=(500, 500), fmt="JPEG", mode="RGB", color=(200, 120, 40)) -> bytes:
    """Encode a solid-colour image in memory.

    Args:
        size: Width and height in pixels.
        fmt: Pillow format name (``"JPEG"`` or ``"PNG"``).
        mode: Pillow image mode.
        color: Fill colour matching *mode*.

    Returns:
        Encoded image bytes.
    """
    buffer = io.BytesIO()
    Image.new(mode, size, color=color).save(buffer, format=fmt)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Test doubles.
# ---------------------------------------------------------------------------


class FakeColoringService:
    """Stand-in for the AI client that counts calls.

    Attributes:
        describe_calls: Number of describe calls made.
        generate_calls: Number of generate calls made.
        describe_error: Exception to raise from describe, if any.
        generate_error: Exception to raise from generate, if any.
    """

    def __init__(self, description: str = FIXED_DESCRIPTION, url: str = FIXED_IMAGE_URL):
        self.description = description
        self.url = url
        self.describe_calls = 0
        self.generate_calls = 0
        self.describe_error: Exception | None = None
        self.generate_error: Exception | None = None
        self.last_content_type: str | None = None
        self.last_description: str | None = None

    async def describe_image(self, data: bytes, content_type: str) -> str:
        self.describe_calls += 1
        self.last_content_type = content_type
        if self.describe_error is not None:
            raise self.describe_error
        return self.description

    async def generate_outline(self, description: str) -> str:
        self.generate_calls += 1
        self.last_description = description
        if self.generate_error is not None:
            raise self.generate_error
        return self.url


class FakeFetcher:
    """Async callable returning fixed bytes and recording requested URLs."""

    def __init__(self, data: bytes):
        self.data = data
        self.urls: list[str] = []

    async def __call__(self, url: str) -> bytes:
        self.urls.append(url)
        return self.data


class FakeChatCompletions:
    """Mimics ``client.chat.completions`` of the OpenAI SDK."""

    def __init__(self, content: str | None = FIXED_DESCRIPTION, delay: float = 0.0):
        self.content = content
        self.delay = delay
        self.calls: list[dict] = []
        self.cancelled = False

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeImages:
    """Mimics ``client.images`` of the OpenAI SDK."""

    def __init__(self, urls: list[str | None] | None = None, delay: float = 0.0):
        self.urls = [FIXED_IMAGE_URL] if urls is None else urls
        self.delay = delay
        self.calls: list[dict] = []
        self.cancelled = False

    async def generate(self, **kwargs):
        self.calls.append(kwargs)
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return SimpleNamespace(data=[SimpleNamespace(url=url) for url in self.urls])


class FakeOpenAI:
    """Minimal object with the attributes ``ColoringAIClient`` uses."""

    def __init__(self, completions: FakeChatCompletions | None = None, images: FakeImages | None = None):
        self.chat = SimpleNamespace(completions=completions or FakeChatCompletions())
        self.images = images or FakeImages()
        self.closed = False

    async def close(self):
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures.
# ---------------------------------------------------------------------------


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
def test_config(temp_dir: Path) -> ColoringPageConfig:
    """Create a test configuration with temporary storage directories.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        ColoringPageConfig instance for testing
    """
    return ColoringPageConfig(
        _env_file=None,
        openai_api_key="test-key",
        uploads_dir=str(temp_dir / "uploads"),
        processed_dir=str(temp_dir / "processed"),
    )


@pytest.fixture
def store(test_config: ColoringPageConfig) -> FileStore:
    """File store over the test configuration's directories."""
    return FileStore(test_config.uploads_dir, test_config.processed_dir)


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A 500x500 JPEG photo."""
    return make_image_bytes((500, 500), "JPEG")


@pytest.fixture
def outline_png_bytes() -> bytes:
    """A 1024x1024 white PNG standing in for the generated outline."""
    return make_image_bytes((1024, 1024), "PNG", color=(255, 255, 255))


@pytest.fixture
def fake_service() -> FakeColoringService:
    """AI service double returning a fixed description and URL."""
    return FakeColoringService()


@pytest.fixture
def fake_fetcher(outline_png_bytes: bytes) -> FakeFetcher:
    """Fetcher double returning the outline PNG."""
    return FakeFetcher(outline_png_bytes)


@pytest.fixture
def pipeline(store, fake_service, test_config, fake_fetcher) -> ColoringPipeline:
    """Pipeline wired to the test doubles."""
    return ColoringPipeline(store, fake_service, test_config, fetcher=fake_fetcher)


@pytest.fixture
def test_client(test_config, fake_service, fake_fetcher):
    """FastAPI TestClient over an application wired to the test doubles.

    Yields:
        A started ``TestClient`` (lifespan has run).
    """
    from fastapi.testclient import TestClient

    from coloringpage.api.main import create_app

    app = create_app(test_config, ai_service=fake_service, fetcher=fake_fetcher)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def ai_error() -> AIServiceError:
    """A generic AI service failure."""
    return AIServiceError("Image generation failed: upstream unavailable")


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_SESSION_ROOT, ignore_errors=True)
