"""Aspect-ratio control through a trailing white reference image.

Gemini image models take no width/height parameter. The requested geometry
is encoded instead as a plain white PNG of the target size, appended as the
*last* reference image, together with a prompt sentence pointing at it.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image

from .errors import BlankImageError
from .models.generation import ReferenceImage

logger = logging.getLogger(__name__)

ASPECT_RATIO_SUFFIX = " Maintain the aspect ratio of the last reference white blank image."


@dataclass(frozen=True)
class AspectRatioConfig:
    """Display label and target pixel size for one ratio token."""

    label: str
    width: int
    height: int


ASPECT_RATIO_PRESETS: dict[str, AspectRatioConfig] = {
    "auto": AspectRatioConfig("Auto (Default)", 1024, 1024),
    "1:1": AspectRatioConfig("Square (1:1)", 1024, 1024),
    "16:9": AspectRatioConfig("Landscape (16:9)", 1920, 1080),
    "4:3": AspectRatioConfig("Classic (4:3)", 1600, 1200),
    "3:4": AspectRatioConfig("Portrait Classic (3:4)", 1200, 1600),
    "9:16": AspectRatioConfig("Mobile Portrait (9:16)", 1080, 1920),
}


def get_aspect_ratio_config(token: str) -> AspectRatioConfig:
    """Look up the preset for *token*.

    Raises:
        ValueError: If the token is not one of the known ratios.
    """
    try:
        return ASPECT_RATIO_PRESETS[token]
    except KeyError:
        allowed = ", ".join(ASPECT_RATIO_PRESETS)
        raise ValueError(f"Unknown aspect ratio '{token}'. Allowed: {allowed}") from None


def aspect_ratio_suffix(token: str) -> str:
    """Return the prompt sentence for *token* (empty for ``auto``)."""
    get_aspect_ratio_config(token)
    return "" if token == "auto" else ASPECT_RATIO_SUFFIX


def make_blank_png(width: int, height: int) -> bytes:
    """Render a solid white RGB image of exactly ``width`` x ``height`` as PNG bytes.

    Raises:
        BlankImageError: If Pillow cannot allocate or encode the image.
    """
    try:
        image = Image.new("RGB", (width, height), (255, 255, 255))
        buf = io.BytesIO()
        image.save(buf, format="PNG")
    except (OSError, ValueError, MemoryError) as exc:
        raise BlankImageError(f"Could not render {width}x{height} blank image: {exc}") from exc
    return buf.getvalue()


def resolve_aspect_ratio(token: str) -> tuple[str, ReferenceImage | None]:
    """Map a ratio token to its prompt suffix and blank reference image.

    ``auto`` yields ``("", None)``. Every other token yields the fixed
    suffix and a white PNG of the preset size, tagged ``source="blank"``.

    Raises:
        ValueError: Unknown token.
        BlankImageError: Image synthesis failed.
    """
    config = get_aspect_ratio_config(token)
    if token == "auto":
        return "", None

    data = make_blank_png(config.width, config.height)
    logger.debug(
        "Generated %dx%d blank reference image (%.1fKB)",
        config.width, config.height, len(data) / 1024,
    )
    blank = ReferenceImage(
        mime_type="image/png",
        data=data,
        source="blank",
        name=f"white-{config.width}x{config.height}.png",
    )
    return ASPECT_RATIO_SUFFIX, blank
