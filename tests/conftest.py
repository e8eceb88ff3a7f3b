"""Shared pytest fixtures for the studio tests."""
import base64
import os
import tempfile
from io import BytesIO
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

# Keep test logs out of the working tree; must run before the app modules import
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="studio-logs-"))
os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")

import pytest
from google.genai import types
from PIL import Image


def make_image_bytes(fmt: str = "PNG", size=(8, 8), color=(250, 210, 40)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format=fmt)
    return buffer.getvalue()


def image_part(mime_type: Optional[str], payload: str) -> types.Part:
    return types.Part(inline_data=types.Blob(mime_type=mime_type, data=base64.b64decode(payload)))


def text_part(text: str) -> types.Part:
    return types.Part.from_text(text=text)


def make_response(*parts: types.Part) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


def mock_genai_client(response=None, side_effect=None) -> MagicMock:
    """A stand-in for genai.Client exposing aio.models.generate_content."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    return client


class FakeUpload:
    """Minimal UploadFile look-alike for the ingestor."""

    def __init__(self, data: bytes, content_type: Optional[str] = "image/png", filename: str = "photo.png", error=None):
        self._data = data
        self._error = error
        self.content_type = content_type
        self.filename = filename

    async def read(self) -> bytes:
        if self._error is not None:
            raise self._error
        return self._data


class FakeImageClient:
    """Generation client double that records requests and replays a scripted outcome."""

    def __init__(self, outcome=None):
        self.outcome = outcome
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def session_store():
    from database.db import SessionStore
    return SessionStore(ttl_seconds=3600)


@pytest.fixture
def fake_client() -> FakeImageClient:
    from image.models import GeneratedImage
    return FakeImageClient(GeneratedImage(mime_type="image/png", data="AAAA", prompt="a cat wearing sunglasses"))


@pytest.fixture
def test_client(session_store, fake_client):
    """FastAPI TestClient with an isolated session store and a fake Gemini client."""
    from fastapi.testclient import TestClient

    from app import app
    from image.routes import get_image_client, get_session_store

    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_image_client] = lambda: fake_client
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
