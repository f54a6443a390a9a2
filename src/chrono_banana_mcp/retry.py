"""Backoff for Gemini calls that fail with a transient status.

Only google-genai ``APIError`` with a rate-limit or unavailable status,
and plain timeouts or dropped connections, are retried. Anything raised
locally (validation, response parsing) propagates on the first attempt.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from google.genai import errors as genai_errors

from .config import ServerConfig, get_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({429, 500, 503, 504})


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, genai_errors.APIError):
        return exc.code in TRANSIENT_STATUS_CODES
    return isinstance(exc, (TimeoutError, ConnectionError))


def backoff_delay(attempt: int, cfg: ServerConfig) -> float:
    """Seconds to wait after failed *attempt* (0-based): doubling plus jitter, capped."""
    return min(cfg.retry_base_delay * (2 ** attempt) + random.random(), cfg.retry_max_delay)


async def with_retry(coro_factory: Callable[[], Awaitable[T]]) -> T:
    """Await ``coro_factory()``, retrying transient failures up to the configured limit.

    *coro_factory* must build a fresh awaitable on every call.
    """
    cfg = get_config()
    attempt = 0
    while True:
        try:
            return await coro_factory()
        except Exception as exc:
            attempt += 1
            if not is_transient(exc) or attempt >= cfg.retry_max_attempts:
                raise
            delay = backoff_delay(attempt - 1, cfg)
            logger.warning(
                "Gemini call failed (%s), attempt %d/%d, retrying in %.1fs",
                exc, attempt, cfg.retry_max_attempts, delay,
            )
            await asyncio.sleep(delay)
