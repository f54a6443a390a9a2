"""Prompt composition — user text, time clause, aspect clause, and image order.

The aspect clause refers to "the last reference image", so the blank image
produced by the aspect-ratio resolver must come after every user image.
"""

from __future__ import annotations

from dataclasses import dataclass

from .aspect_ratio import get_aspect_ratio_config, resolve_aspect_ratio
from .models.generation import GenerationRequest, ReferenceImage
from .time_control import TimeControlState
from .time_instruction import instruction_for_state


def compose_prompt(user_text: str, time_clause: str, aspect_clause: str) -> str:
    """Concatenate the prompt pieces with no extra separators."""
    return user_text.strip() + time_clause + aspect_clause


@dataclass
class ComposedRequest:
    """A ready-to-dispatch request plus the details shown back to the caller."""

    request: GenerationRequest
    time_clause: str
    aspect_clause: str
    mode_label: str
    aspect_ratio: str
    width: int | None
    height: int | None

    def summary(self) -> dict:
        """Serialisable description of what will be sent (no image bytes)."""
        return {
            "final_prompt": self.request.prompt,
            "time_mode": self.mode_label,
            "aspect_ratio": self.aspect_ratio,
            "dimensions": (
                {"width": self.width, "height": self.height} if self.width else None
            ),
            "model": self.request.model,
            "images": [
                {"name": img.name, "mime_type": img.mime_type, "source": img.source,
                 "size_bytes": img.size_bytes}
                for img in self.request.images
            ],
        }


def build_generation_request(
    user_text: str,
    state: TimeControlState,
    aspect_ratio: str,
    images: list[ReferenceImage] | None,
    model: str,
) -> ComposedRequest:
    """Run the time synthesizer and aspect resolver and assemble the request.

    Raises:
        ValueError: Unknown aspect ratio token.
        BlankImageError: Blank reference image could not be built.
    """
    time_clause = instruction_for_state(state)
    aspect_clause, blank = resolve_aspect_ratio(aspect_ratio)

    ordered = list(images or [])
    if blank is not None:
        ordered.append(blank)

    prompt = compose_prompt(user_text, time_clause, aspect_clause)
    dims = None if aspect_ratio == "auto" else get_aspect_ratio_config(aspect_ratio)
    return ComposedRequest(
        request=GenerationRequest(prompt=prompt, model=model, images=ordered),
        time_clause=time_clause,
        aspect_clause=aspect_clause,
        mode_label=state.label,
        aspect_ratio=aspect_ratio,
        width=dims.width if dims else None,
        height=dims.height if dims else None,
    )
