"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ── Literal enums ────────────────────────────────────────────────────────────

AspectRatioToken = Literal["auto", "1:1", "16:9", "4:3", "3:4", "9:16"]
TimeUnit = Literal["seconds", "minutes", "hours", "days", "years"]
SuggestionMode = Literal["story", "scene", "auto"]
ModelPreset = Literal["flash-image", "flash-image-ga", "lite"]

TIME_UNITS: tuple[str, ...] = ("seconds", "minutes", "hours", "days", "years")
ACCEPTED_IMAGE_MIME_TYPES: frozenset[str] = frozenset(
    {"image/png", "image/jpeg", "image/jpg", "image/webp"}
)

# ── Annotated aliases ────────────────────────────────────────────────────────

ScenePrompt = Annotated[str, Field(description="Scene description to illustrate")]
ImageCount = Annotated[int, Field(ge=1, le=10, description="Number of images to request (1-10)")]
TimeOffset = Annotated[float, Field(
    description="Signed time offset: positive = future, negative = past, 0 = scene start/end",
)]
ReferenceImagePaths = Annotated[list[str] | None, Field(
    description="Local paths to reference images (PNG, JPEG or WebP), sent in order",
)]
