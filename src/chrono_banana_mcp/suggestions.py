"""Draft scene or story text for the user to refine before generating images."""

from __future__ import annotations

import logging
import time

from google.genai import types

from .client import GeminiClient
from .config import get_config
from .errors import MalformedResponseError
from .models.generation import ReferenceImage
from .models.suggestion import SuggestionResult
from .prompts.suggestion import (
    EMPTY_INPUT_PLACEHOLDER,
    GENERATE_INSTRUCTION,
    REFERENCE_IMAGES_NOTE,
    STORY_PROMPT,
    VIDEO_SCENE_PROMPT,
)

logger = logging.getLogger(__name__)

SCENE_KEYWORDS: tuple[str, ...] = (
    "scene", "shot", "camera", "film", "video", "storyboard",
    "action", "close-up", "wide shot", "pan", "zoom", "cut",
    "frame", "angle", "cinemat", "direct",
)
STORY_KEYWORDS: tuple[str, ...] = (
    "story", "tale", "book", "chapter", "once upon",
    "narrative", "novel", "fairy", "adventure", "journey",
    "character", "plot",
)


def detect_suggestion_mode(text: str) -> str:
    """Score keyword hits; "scene" only when it strictly beats "story"."""
    lowered = text.lower()
    scene_score = sum(1 for kw in SCENE_KEYWORDS if kw in lowered)
    story_score = sum(1 for kw in STORY_KEYWORDS if kw in lowered)
    return "scene" if scene_score > story_score else "story"


def build_suggestion_prompt(text: str, image_count: int, mode: str) -> str:
    base = VIDEO_SCENE_PROMPT if mode == "scene" else STORY_PROMPT
    user_input = text if text.strip() else EMPTY_INPUT_PLACEHOLDER
    sections = [base, f"# User Input:\n{user_input}"]
    if image_count > 0:
        sections.append(REFERENCE_IMAGES_NOTE.format(count=image_count))
    sections.append(GENERATE_INSTRUCTION)
    return "\n\n".join(sections)


async def generate_suggestion(
    text: str,
    images: list[ReferenceImage] | None = None,
    mode: str = "auto",
    *,
    model: str | None = None,
) -> SuggestionResult:
    """Ask the text model for a story or storyboard draft.

    Raises:
        MalformedResponseError: The model returned no text.
    """
    images = images or []
    resolved_mode = detect_suggestion_mode(text) if mode == "auto" else mode
    resolved_model = model or get_config().text_model
    prompt = build_suggestion_prompt(text, len(images), resolved_mode)

    contents: list[types.Part] = [types.Part.from_text(text=prompt)]
    contents.extend(types.Part.from_bytes(data=img.data, mime_type=img.mime_type) for img in images)

    logger.info(
        "Suggestion request: mode=%s, %d chars, %d image(s)",
        resolved_mode, len(text), len(images),
    )
    started = time.monotonic()
    suggestion = await GeminiClient.generate(contents, model=resolved_model)
    if not suggestion.strip():
        raise MalformedResponseError("No suggestion generated")
    return SuggestionResult(
        suggestion=suggestion.strip(),
        mode=resolved_mode,
        model=resolved_model,
        processing_ms=int((time.monotonic() - started) * 1000),
    )
