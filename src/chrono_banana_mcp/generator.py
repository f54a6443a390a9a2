"""Scene generation — validation, rate-limited dispatch, and response parsing.

``SceneGenerator`` is an explicitly constructed service: it owns the Gemini
client it talks to and uses a ``RateLimiter`` holding the last-dispatch time.
The limiter may outlive the generator, so spacing survives a rebuild.
Responses are parsed into a ``GenerationResult`` union; a response with
neither an image nor text raises ``MalformedResponseError`` and is not
retried.
"""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timedelta
from typing import Any

from google import genai
from google.genai import types

from .client import GeminiClient
from .config import get_config
from .errors import MalformedResponseError, RequestValidationError
from .models.generation import (
    GeneratedImage,
    GenerationRequest,
    GenerationResult,
    ImageResult,
    TextOnlyResult,
    TimelinePart,
    TimelineResult,
)
from .rate_limit import RateLimiter
from .retry import with_retry
from .types import ACCEPTED_IMAGE_MIME_TYPES

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROMPT_CHARS = 2000


def validate_request(
    request: GenerationRequest,
    *,
    max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS,
) -> None:
    """Reject requests that must never reach the network.

    Raises:
        RequestValidationError: Empty or over-length prompt, or an image
            without data, without a MIME type, or of an unsupported type.
    """
    if not request.prompt or not request.prompt.strip():
        raise RequestValidationError("Prompt cannot be empty")
    if len(request.prompt) > max_prompt_chars:
        raise RequestValidationError(f"Prompt too long (max {max_prompt_chars} characters)")
    for image in request.images:
        if not image.data or not image.mime_type:
            raise RequestValidationError("Each image must have data and mimeType")
        if image.mime_type not in ACCEPTED_IMAGE_MIME_TYPES:
            raise RequestValidationError(f"Unsupported image type: {image.mime_type}")


def build_contents(request: GenerationRequest) -> Any:
    """Prompt alone for text-to-image, else the text part followed by images in order."""
    if not request.images:
        return request.prompt
    parts = [types.Part.from_text(text=request.prompt)]
    parts.extend(
        types.Part.from_bytes(data=img.data, mime_type=img.mime_type) for img in request.images
    )
    return parts


def to_data_uri(mime_type: str, data: bytes | str) -> str:
    """``data:<mime>;base64,<payload>``; str payloads are taken as already base64."""
    payload = data if isinstance(data, str) else base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def _raw_bytes(data: bytes | str) -> bytes:
    return base64.b64decode(data) if isinstance(data, str) else data


def _response_parts(response: Any) -> list[Any]:
    candidates = getattr(response, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    parts = getattr(content, "parts", None) if content is not None else None
    if not parts:
        raise MalformedResponseError("Invalid API response format: missing candidates or content")
    return list(parts)


def _inline_image(part: Any) -> tuple[str, bytes | str] | None:
    inline = getattr(part, "inline_data", None)
    if inline is None:
        return None
    mime_type = getattr(inline, "mime_type", None)
    data = getattr(inline, "data", None)
    if not mime_type or not data:
        raise MalformedResponseError("Invalid image data in API response")
    return mime_type, data


def _visible_text(part: Any) -> str:
    if getattr(part, "thought", False):
        return ""
    return getattr(part, "text", None) or ""


def parse_generation_response(
    response: Any,
    request: GenerationRequest,
    *,
    processing_ms: int = 0,
) -> GenerationResult:
    """Classify a generate_content response.

    Returns:
        ``ImageResult`` holding every inline image in response order (any
        text alongside is kept as ``accompanying_text``), otherwise
        ``TextOnlyResult``.

    Raises:
        MalformedResponseError: No parts, a broken inline part, or neither
            image nor text.
    """
    images: list[GeneratedImage] = []
    texts: list[str] = []
    for part in _response_parts(response):
        found = _inline_image(part)
        if found is not None:
            mime_type, data = found
            images.append(GeneratedImage(
                mime_type=mime_type,
                data=_raw_bytes(data),
                data_uri=to_data_uri(mime_type, data),
            ))
            continue
        text = _visible_text(part)
        if text.strip():
            texts.append(text)

    if images:
        return ImageResult(
            prompt=request.prompt,
            model=request.model,
            images=images,
            accompanying_text="\n".join(texts),
            processing_ms=processing_ms,
        )
    if texts:
        return TextOnlyResult(
            prompt=request.prompt,
            model=request.model,
            text="\n".join(texts),
            processing_ms=processing_ms,
        )
    raise MalformedResponseError("No image data found in API response")


def parse_timeline_response(
    response: Any,
    request: GenerationRequest,
    *,
    processing_ms: int = 0,
) -> TimelineResult:
    """Keep every text and image part in response order.

    Each part is stamped one second after the previous one so consumers
    can lay them out on a timeline.

    Raises:
        MalformedResponseError: No parts, a broken inline part, or no usable
            part at all.
    """
    base = datetime.now()
    parts: list[TimelinePart] = []
    for index, part in enumerate(_response_parts(response)):
        stamp = base + timedelta(seconds=index)
        found = _inline_image(part)
        if found is not None:
            mime_type, data = found
            parts.append(TimelinePart(
                type="image",
                content=to_data_uri(mime_type, data),
                order=index,
                timestamp=stamp,
            ))
            continue
        text = _visible_text(part)
        if text:
            parts.append(TimelinePart(type="text", content=text, order=index, timestamp=stamp))

    if not parts:
        raise MalformedResponseError("No image or text found in API response")
    return TimelineResult(
        prompt=request.prompt,
        model=request.model,
        parts=parts,
        created_at=base,
        processing_ms=processing_ms,
    )


class SceneGenerator:
    """Dispatches one request at a time through a shared rate limiter."""

    def __init__(
        self,
        client: genai.Client,
        *,
        limiter: RateLimiter | None = None,
        max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS,
    ) -> None:
        self._client = client
        self.limiter = limiter or RateLimiter()
        self.max_prompt_chars = max_prompt_chars

    @classmethod
    def from_config(cls, limiter: RateLimiter | None = None) -> SceneGenerator:
        """Build a generator from the live config and the shared client pool.

        Pass the previous generator's *limiter* to keep its last-dispatch
        time across a rebuild.
        """
        cfg = get_config()
        return cls(
            GeminiClient.get(),
            limiter=limiter or RateLimiter(cfg.rate_limit_seconds),
            max_prompt_chars=cfg.max_prompt_chars,
        )

    def validate(self, request: GenerationRequest) -> None:
        validate_request(request, max_prompt_chars=self.max_prompt_chars)

    async def _dispatch(self, request: GenerationRequest) -> tuple[Any, int]:
        contents = build_contents(request)
        started: list[float] = []

        async def _attempt() -> Any:
            await self.limiter.wait()
            started.append(self.limiter.now())
            return await self._client.aio.models.generate_content(
                model=request.model,
                contents=contents,
            )

        logger.info(
            "Dispatching %s: %d chars, %d image(s)",
            request.model, len(request.prompt), len(request.images),
        )
        response = await with_retry(_attempt)
        elapsed_ms = int((self.limiter.now() - started[-1]) * 1000) if started else 0
        return response, elapsed_ms

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Validate, wait for the rate limiter, call Gemini, and parse the result.

        Raises:
            RequestValidationError: Before any network activity.
            MalformedResponseError: Response had neither image nor text.
        """
        self.validate(request)
        response, elapsed_ms = await self._dispatch(request)
        result = parse_generation_response(response, request, processing_ms=elapsed_ms)
        if isinstance(result, TextOnlyResult):
            logger.info("Model returned text only (%d chars)", len(result.text))
        else:
            logger.info(
                "Model returned %d image(s) (%d bytes)",
                len(result.images), sum(len(img.data) for img in result.images),
            )
        return result

    async def generate_timeline(self, request: GenerationRequest) -> TimelineResult:
        """Like ``generate`` but keeps every text/image part in order."""
        self.validate(request)
        response, elapsed_ms = await self._dispatch(request)
        return parse_timeline_response(response, request, processing_ms=elapsed_ms)
