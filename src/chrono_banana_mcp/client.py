"""Shared Gemini client pool and plain text generation."""

from __future__ import annotations

import logging
from typing import Any

from google import genai
from google.genai import types

from .config import get_config
from .retry import with_retry

logger = logging.getLogger(__name__)


def mask_key(key: str) -> str:
    """Show only the first six and last four characters of an API key."""
    if not key:
        return "Not found"
    if len(key) <= 10:
        return "***"
    return f"{key[:6]}***{key[-4:]}"


def check_api_key_format(key: str) -> tuple[bool, str]:
    """Cheap offline sanity check of a Gemini API key.

    Returns:
        ``(valid, message)``.
    """
    if not key:
        return False, "API Key not found"
    if len(key) < 10:
        return False, "API Key too short (likely invalid)"
    if not key.startswith("AIza"):
        return False, 'API Key format invalid (should start with "AIza")'
    return True, "API Key format appears valid"


class GeminiClient:
    """Process-wide Gemini client pool (one client per API key)."""

    _clients: dict[str, genai.Client] = {}

    @classmethod
    def get(cls, api_key: str | None = None) -> genai.Client:
        """Return (or create) the shared client for *api_key*."""
        key = api_key or get_config().gemini_api_key
        if not key:
            raise ValueError("No Gemini API key — set GEMINI_API_KEY or pass api_key explicitly")
        if key not in cls._clients:
            cls._clients[key] = genai.Client(api_key=key)
            logger.info("Created Gemini client (key …%s)", key[-4:])
        return cls._clients[key]

    @classmethod
    async def generate(
        cls,
        contents: Any,
        *,
        model: str | None = None,
        system_instruction: str | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate text and return the user-visible parts joined by newlines.

        Args:
            contents: Prompt contents (text or multimodal parts).
            model: Override model ID (defaults to config's text_model).
            system_instruction: System-level instruction for the model.
            temperature: Optional sampling temperature.
            **kwargs: Forwarded to the underlying generate_content call.
        """
        resolved_model = model or get_config().text_model
        config = types.GenerateContentConfig()
        if system_instruction:
            config.system_instruction = system_instruction
        if temperature is not None:
            config.temperature = temperature

        client = cls.get()
        response = await with_retry(
            lambda: client.aio.models.generate_content(
                model=resolved_model,
                contents=contents,
                config=config,
                **kwargs,
            )
        )

        parts = response.candidates[0].content.parts if response.candidates else []
        text_parts = [p.text for p in parts or [] if p.text and not getattr(p, "thought", False)]
        return "\n".join(text_parts) if text_parts else (response.text or "")

    @classmethod
    async def close_all(cls) -> int:
        """Shut down all shared clients. Returns count closed."""
        count = 0
        for key, client in list(cls._clients.items()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Async close failed for client …%s", key[-4:], exc_info=True)
            try:
                client.close()
            except Exception:
                logger.debug("Sync close failed for client …%s", key[-4:], exc_info=True)
            count += 1
        cls._clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
