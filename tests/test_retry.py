"""Tests for backoff on transient Gemini failures."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from google.genai import errors as genai_errors

import chrono_banana_mcp.config as cfg_mod
from chrono_banana_mcp.config import ServerConfig
from chrono_banana_mcp.errors import MalformedResponseError, RequestValidationError
from chrono_banana_mcp.retry import backoff_delay, is_transient, with_retry


def api_error(code: int, status: str = "") -> genai_errors.APIError:
    body = {"error": {"code": code, "message": f"HTTP {code}", "status": status}}
    if code >= 500:
        return genai_errors.ServerError(code, body)
    return genai_errors.ClientError(code, body)


QUOTA = api_error(429, "RESOURCE_EXHAUSTED")


class TestIsTransient:
    @pytest.mark.parametrize("exc", [
        api_error(429, "RESOURCE_EXHAUSTED"),
        api_error(500, "INTERNAL"),
        api_error(503, "UNAVAILABLE"),
        api_error(504, "DEADLINE_EXCEEDED"),
        TimeoutError("read timed out"),
        ConnectionResetError("peer reset"),
    ])
    def test_transient(self, exc):
        assert is_transient(exc) is True

    @pytest.mark.parametrize("exc", [
        api_error(400, "INVALID_ARGUMENT"),
        api_error(403, "PERMISSION_DENIED"),
        api_error(404, "NOT_FOUND"),
        RuntimeError("429 quota exceeded"),
        RequestValidationError("quota field missing"),
        MalformedResponseError("timeout in candidate"),
    ])
    def test_not_transient(self, exc):
        assert is_transient(exc) is False


class TestBackoffDelay:
    @patch("chrono_banana_mcp.retry.random.random", return_value=0.0)
    def test_doubles_then_caps(self, _mock_random):
        cfg = ServerConfig(retry_base_delay=2.0, retry_max_delay=5.0)
        assert [backoff_delay(n, cfg) for n in range(4)] == [2.0, 4.0, 5.0, 5.0]

    @patch("chrono_banana_mcp.retry.random.random", return_value=0.5)
    def test_jitter_added(self, _mock_random):
        assert backoff_delay(0, ServerConfig(retry_base_delay=1.0)) == 1.5


class TestWithRetry:
    @patch("chrono_banana_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_first_attempt_succeeds(self, mock_sleep):
        factory = AsyncMock(return_value="ok")
        assert await with_retry(factory) == "ok"
        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("chrono_banana_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_recovers_after_quota_error(self, mock_sleep):
        factory = AsyncMock(side_effect=[QUOTA, "recovered"])
        assert await with_retry(factory) == "recovered"
        assert factory.await_count == 2
        mock_sleep.assert_awaited_once()

    @patch("chrono_banana_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_gives_up_after_max_attempts(self, mock_sleep):
        factory = AsyncMock(side_effect=api_error(503, "UNAVAILABLE"))
        with pytest.raises(genai_errors.ServerError) as excinfo:
            await with_retry(factory)
        assert excinfo.value.code == 503
        assert factory.await_count == 3
        assert mock_sleep.await_count == 2

    @patch("chrono_banana_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_permission_denied_raises_immediately(self, mock_sleep):
        factory = AsyncMock(side_effect=api_error(403, "PERMISSION_DENIED"))
        with pytest.raises(genai_errors.ClientError):
            await with_retry(factory)
        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("chrono_banana_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_malformed_raises_immediately(self, mock_sleep):
        factory = AsyncMock(side_effect=MalformedResponseError("No image data found"))
        with pytest.raises(MalformedResponseError):
            await with_retry(factory)
        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()

    @patch("chrono_banana_mcp.retry.random.random", return_value=0.0)
    @patch("chrono_banana_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_delays_follow_config(self, mock_sleep, _mock_random, monkeypatch):
        monkeypatch.setenv("GEMINI_RETRY_BASE_DELAY", "2")
        monkeypatch.setenv("GEMINI_RETRY_MAX_DELAY", "5")
        monkeypatch.setenv("GEMINI_RETRY_MAX_ATTEMPTS", "4")
        cfg_mod._config = None

        factory = AsyncMock(side_effect=[QUOTA, TimeoutError(), QUOTA, "ok"])
        assert await with_retry(factory) == "ok"
        delays = [call.args[0] for call in mock_sleep.await_args_list]
        assert delays == [2.0, 4.0, 5.0]

    @patch("chrono_banana_mcp.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_single_attempt_config(self, mock_sleep, monkeypatch):
        monkeypatch.setenv("GEMINI_RETRY_MAX_ATTEMPTS", "1")
        cfg_mod._config = None

        factory = AsyncMock(side_effect=QUOTA)
        with pytest.raises(genai_errors.ClientError):
            await with_retry(factory)
        factory.assert_awaited_once()
        mock_sleep.assert_not_awaited()
