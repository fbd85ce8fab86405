"""Pytest configuration and shared fixtures.

This module provides:
- Environment defaults so Settings validates without real credentials
- Template images and pipeline DTO builders
- Fake blob publisher / catalog registrar for pipeline and route tests
- FastAPI test client with dependency overrides
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SHOPIFY_SHOP_DOMAIN", "test-shop.myshopify.com")
os.environ.setdefault("SHOPIFY_ACCESS_TOKEN", "shpat_test_token")
os.environ.setdefault("BLOB_READ_WRITE_TOKEN", "vercel_blob_rw_test_token")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import base64
import io
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from PIL import Image

from core.config import Settings, clear_settings_cache
from core.exceptions import CertificateApiError
from core.http_client import close_http_client
from rendering.fonts import FontRegistry, reset_font_registry
from schemas import ArtifactKind, PublishedAsset, RenderedArtifact

# =============================================================================
# Test Settings
# =============================================================================

BLOB_API_URL = "https://blob.test"
GRAPHQL_URL = "https://test-shop.myshopify.com/admin/api/2024-01/graphql.json"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        debug=True,
        shopify_shop_domain="test-shop.myshopify.com",
        shopify_access_token="shpat_test_token",
        blob_read_write_token="vercel_blob_rw_test_token",
        blob_api_url=BLOB_API_URL,
    )


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_fonts() -> Generator[None]:
    reset_font_registry()
    yield
    reset_font_registry()


@pytest_asyncio.fixture(autouse=True)
async def close_shared_http_client() -> AsyncGenerator[None]:
    """The pooled client must not outlive the test's event loop."""
    yield
    await close_http_client()


# =============================================================================
# Rendering Fixtures
# =============================================================================


def make_png(width: int = 400, height: int = 300, color: str = "white") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def template_png() -> bytes:
    return make_png()


@pytest.fixture
def template_data_url(template_png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(template_png).decode("ascii")


@pytest.fixture
def fallback_fonts() -> FontRegistry:
    """A registry whose font can never load, so Pillow's built-in font is used."""
    return FontRegistry("definitely-not-a-font-file.ttf")


@pytest.fixture
def png_artifact(template_png: bytes) -> RenderedArtifact:
    return RenderedArtifact(
        kind=ArtifactKind.PNG,
        content=template_png,
        suggested_name="award.png",
        mime_type="image/png",
    )


@pytest.fixture
def create_payload(template_data_url: str) -> dict:
    """A complete, valid POST /api/certificates/create body."""
    return {
        "fileData": template_data_url,
        "fileName": "award.png",
        "mimeType": "image/png",
        "position": {"x": 50, "y": 40},
        "textSettings": {
            "fontSize": 40,
            "fontColor": "#1a1a1a",
            "leftPos": 50,
            "topPos": 40,
        },
        "previewDimensions": {"width": 200, "height": 150},
        "text": "Jane Doe",
        "isFetchedText": False,
    }


# =============================================================================
# Fake Upstreams
# =============================================================================


class FakePublisher:
    """In-memory BlobPublisher double that records what it published."""

    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.published: list[RenderedArtifact] = []

    async def publish(self, artifact: RenderedArtifact) -> str:
        self.published.append(artifact)
        if artifact.kind.value in self.fail_on:
            raise CertificateApiError(f"blob store down for {artifact.kind.value}")
        return f"{BLOB_API_URL}/certificates/{artifact.suggested_name}"


class FakeRegistrar:
    """CatalogRegistrar double; ``fail_on`` names artifact kinds to reject."""

    def __init__(self, fail_on: set[str] | None = None):
        self.fail_on = fail_on or set()
        self.registered: list[tuple[RenderedArtifact, str]] = []

    async def register(
        self, artifact: RenderedArtifact, retrieval_url: str
    ) -> PublishedAsset:
        self.registered.append((artifact, retrieval_url))
        if artifact.kind.value in self.fail_on:
            from core.exceptions import RegistrationRejectedError

            raise RegistrationRejectedError(
                "originalSource: File URL is invalid",
                ["originalSource: File URL is invalid"],
            )
        return PublishedAsset(
            retrieval_url=retrieval_url,
            catalog_alt=artifact.suggested_name,
            catalog_id=f"gid://shopify/File/{len(self.registered)}",
            preview_url=f"https://cdn.shopify.test/{artifact.suggested_name}",
        )


@pytest.fixture
def fake_publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def fake_registrar() -> FakeRegistrar:
    return FakeRegistrar()


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def app(
    fake_publisher: FakePublisher,
    fake_registrar: FakeRegistrar,
    fallback_fonts: FontRegistry,
) -> AsyncGenerator[FastAPI]:
    """The FastAPI app with upstreams replaced by in-memory fakes."""
    from main import app as fastapi_app
    from routes.certificates_routes import get_blob_publisher, get_registrar
    from rendering.fonts import get_font_registry

    fastapi_app.dependency_overrides[get_blob_publisher] = lambda: fake_publisher
    fastapi_app.dependency_overrides[get_registrar] = lambda: fake_registrar
    fastapi_app.dependency_overrides[get_font_registry] = lambda: fallback_fonts

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing routes."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio backend for anyio (required by httpx)."""
    return "asyncio"
