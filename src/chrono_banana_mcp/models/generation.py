"""Generation models — requests sent to Gemini and the result variants it yields.

``GenerationResult`` is a discriminated union on ``kind``: an image result
carrying every returned image, or a text-only result (the model declined to
draw and explained why).
A response with neither is not a result at all; the parser raises
``MalformedResponseError`` instead.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


def new_result_id(prefix: str = "img") -> str:
    """Return a short unique id such as ``img_3f9c0a1b2c4d``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class ReferenceImage(BaseModel):
    """One image attached to a request — user-provided or the synthetic blank."""

    mime_type: str = ""
    data: bytes = Field(default=b"", exclude=True, repr=False)
    source: Literal["user", "blank"] = "user"
    name: str = ""

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class GenerationRequest(BaseModel):
    """Exactly what is dispatched: the final prompt, the model, and ordered images."""

    prompt: str
    model: str
    images: list[ReferenceImage] = Field(default_factory=list)


class _ResultBase(BaseModel):
    id: str = Field(default_factory=new_result_id)
    prompt: str = Field(description="Exact final prompt text that was sent")
    model: str
    created_at: datetime = Field(default_factory=datetime.now)
    processing_ms: int = 0


class GeneratedImage(BaseModel):
    """One inline image from a response; bytes stay out of dumps."""

    mime_type: str
    data: bytes = Field(default=b"", exclude=True, repr=False)
    data_uri: str = Field(default="", exclude=True, repr=False)


class ImageResult(_ResultBase):
    """The model returned one or more inline images, kept in response order."""

    kind: Literal["image"] = "image"
    images: list[GeneratedImage] = Field(min_length=1)
    accompanying_text: str = ""

    @property
    def mime_type(self) -> str:
        return self.images[0].mime_type

    @property
    def data(self) -> bytes:
        return self.images[0].data

    @property
    def data_uri(self) -> str:
        return self.images[0].data_uri


class TextOnlyResult(_ResultBase):
    """The model answered with text only — shown as an explanation, not an error."""

    kind: Literal["text"] = "text"
    text: str


GenerationResult = Annotated[Union[ImageResult, TextOnlyResult], Field(discriminator="kind")]


class TimelinePart(BaseModel):
    """One ordered part of a multi-modal timeline response."""

    type: Literal["text", "image"]
    content: str = Field(description="Text, or a data URI for image parts")
    order: int
    timestamp: datetime


class TimelineResult(BaseModel):
    """Ordered mix of narration and images returned for a single prompt."""

    id: str = Field(default_factory=lambda: new_result_id("timeline"))
    prompt: str
    model: str
    parts: list[TimelinePart] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    processing_ms: int = 0

    @property
    def text_parts(self) -> int:
        return sum(1 for p in self.parts if p.type == "text")

    @property
    def image_parts(self) -> int:
        return sum(1 for p in self.parts if p.type == "image")
