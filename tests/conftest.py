"""Shared test fixtures for chrono-banana-mcp."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import types


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit the real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "AIzaTestKeyNotReal1234")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing so no test reaches a tracking server."""
    monkeypatch.setenv("CHRONO_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/chrono-banana-mcp/.env."""
    monkeypatch.setattr(
        "chrono_banana_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def _isolate_output_dir(tmp_path, monkeypatch):
    """Write generated images into a per-test temp directory."""
    out = tmp_path / "images"
    monkeypatch.setenv("CHRONO_OUTPUT_DIR", str(out))
    return out


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config singleton and the shared scene generator and limiter between tests."""
    import chrono_banana_mcp.config as cfg_mod
    import chrono_banana_mcp.tools.scene as scene_mod

    cfg_mod._config = None
    scene_mod._generator = None
    scene_mod._limiter = None
    yield
    cfg_mod._config = None
    scene_mod._generator = None
    scene_mod._limiter = None


class FakeClock:
    """Manually advanced monotonic clock; ``sleep`` advances it instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_clock():
    return FakeClock()


def make_response(*parts: types.Part) -> types.GenerateContentResponse:
    """Build a generate_content response with one candidate holding *parts*."""
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


def image_part(data: bytes = b"\x89PNG\r\n\x1a\nfake", mime_type: str = "image/png") -> types.Part:
    return types.Part(inline_data=types.Blob(data=data, mime_type=mime_type))


def text_part(text: str) -> types.Part:
    return types.Part(text=text)


@pytest.fixture()
def mock_genai_client():
    """A stand-in for ``genai.Client`` whose async generate_content is an AsyncMock."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=make_response(image_part()))
    return client
