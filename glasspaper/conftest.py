"""
conftest.py

Test configuration for glasspaper tests.

Defines Pytest fixtures for supplying test data to tests across the entire test suite. Test
images are generated with PIL on the fly instead of being stored in the repository, and HTTP
responses are MagicMocks shaped like requests.Response. Fixtures used within only a single
module are defined directly in that module.
"""

import io
from unittest.mock import MagicMock

import pytest
import requests
from PIL import Image

from glasspaper.dimensions import ViewportSize
from glasspaper.state_store import JsonStateStore


@pytest.fixture
def make_image_bytes():
    """
    Return a factory producing encoded image bytes of the given size and format. Noise is used
    as content so JPEG files are big enough to arrive in many chunks.
    """

    def _make(width: int, height: int, format: str = "JPEG") -> bytes:
        image = Image.effect_noise((width, height), 64).convert("RGB")
        buffer = io.BytesIO()
        image.save(buffer, format=format)
        image.close()
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_response():
    """
    Return a factory for fake requests.Response objects. The fake works as a context manager and
    streams content through iter_content() in chunk_size pieces, like the real thing. The
    'consumed' attribute counts the chunks handed out so far.
    """

    def _make(
        content: bytes = b"",
        status_code: int = 200,
        url: str = "https://example.com/",
        chunk_size: int = 1024,
    ) -> MagicMock:
        response = MagicMock(spec=requests.Response)
        response.__enter__.return_value = response
        response.status_code = status_code
        response.url = url
        response.content = content
        response.text = content.decode("utf-8", errors="replace")
        response.consumed = 0

        if status_code >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(
                f"{status_code} Error", response=response
            )

        def iter_content(*args, **kwargs):
            for start in range(0, len(content), chunk_size):
                response.consumed += 1
                yield content[start : start + chunk_size]

        response.iter_content.side_effect = iter_content
        return response

    return _make


@pytest.fixture
def state_store(tmp_path) -> JsonStateStore:
    return JsonStateStore(tmp_path / "state.json")


@pytest.fixture
def viewport() -> ViewportSize:
    return ViewportSize(width=100, height=100)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point glasspaper at a throwaway config directory."""

    directory = tmp_path / "config"
    monkeypatch.setenv("GLASSPAPER_CONFIG_DIR", str(directory))
    return directory
