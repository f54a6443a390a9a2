"""Scene/story suggestion output model."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class SuggestionResult(BaseModel):
    """Draft text returned by scene_suggest."""

    suggestion: str
    mode: Literal["story", "scene"]
    model: str
    processing_ms: int = 0
