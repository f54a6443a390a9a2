"""Scene tools — 5 tools on a FastMCP sub-server.

The checkbox/slider parameters mirror the time controls of a scene editor:
``current_only``, ``scene_start`` and ``scene_end`` are resolved in that
priority order, then the sign of ``offset`` picks future or past.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..aspect_ratio import ASPECT_RATIO_PRESETS
from ..composer import ComposedRequest, build_generation_request
from ..config import get_config
from ..errors import GenerationBusyError, make_tool_error
from ..generator import SceneGenerator, validate_request
from ..models.generation import ImageResult, TextOnlyResult
from ..rate_limit import RateLimiter
from ..reference_images import load_reference_images
from ..suggestions import generate_suggestion
from ..time_control import TimeControlState, state_from_flags
from ..tracing import annotate, trace
from ..types import (
    AspectRatioToken,
    ImageCount,
    ReferenceImagePaths,
    ScenePrompt,
    SuggestionMode,
    TimeOffset,
    TimeUnit,
)

logger = logging.getLogger(__name__)
scene_server = FastMCP("scene")

_generator: SceneGenerator | None = None
_limiter: RateLimiter | None = None
_generation_lock = asyncio.Lock()

_MIME_SUFFIX: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}


def current_limiter() -> RateLimiter | None:
    """The limiter in use, or the one kept for the next generator."""
    if _generator is not None:
        return _generator.limiter
    return _limiter


def get_generator() -> SceneGenerator:
    """Return the process's SceneGenerator, building it from config on first use.

    The process-wide limiter is reused, so rebuilding never shortens the
    spacing since the last dispatch.
    """
    global _generator, _limiter
    if _generator is None:
        if _limiter is None:
            _limiter = RateLimiter(get_config().rate_limit_seconds)
        _generator = SceneGenerator.from_config(limiter=_limiter)
    return _generator


def reset_generator() -> None:
    """Drop the current generator so the next call picks up new config.

    Its limiter is kept for the replacement.
    """
    global _generator, _limiter
    if _generator is not None:
        _limiter = _generator.limiter
    _generator = None


def set_rate_limit(seconds: float) -> None:
    """Change the minimum spacing in place, keeping the last-dispatch time."""
    limiter = current_limiter()
    if limiter is not None:
        limiter.min_interval = seconds


def _span_attributes(state: TimeControlState, composed: ComposedRequest) -> dict:
    return {
        "chrono.time_mode": state.mode.value,
        "chrono.offset": state.offset,
        "chrono.unit": state.unit,
        "chrono.image_count": state.image_count,
        "chrono.aspect_ratio": composed.aspect_ratio,
        "chrono.reference_images": sum(
            1 for img in composed.request.images if img.source == "user"
        ),
        "chrono.prompt_chars": len(composed.request.prompt),
    }


def _state_summary(state: TimeControlState) -> dict:
    return {
        "mode": state.mode.value,
        "label": state.label,
        "offset": state.offset,
        "unit": state.unit,
        "image_count": state.image_count,
        "is_current_only_checked": state.is_current_only_checked,
        "is_scene_start_checked": state.is_scene_start_checked,
        "is_scene_end_checked": state.is_scene_end_checked,
        "image_count_locked": state.image_count_locked,
    }


def _compose(
    prompt: str,
    *,
    current_only: bool,
    scene_start: bool,
    scene_end: bool,
    offset: float,
    unit: str,
    image_count: int,
    aspect_ratio: str,
    reference_images: list[str] | None,
    model: str | None,
) -> tuple[TimeControlState, ComposedRequest]:
    state = state_from_flags(
        current_only=current_only,
        scene_start=scene_start,
        scene_end=scene_end,
        offset=offset,
        unit=unit,
        image_count=image_count,
    )
    images = load_reference_images(reference_images)
    composed = build_generation_request(
        prompt,
        state,
        aspect_ratio,
        images,
        model or get_config().image_model,
    )
    return state, composed


def _write_output(stem: str, mime_type: str, data: bytes) -> Path:
    """Write image bytes under ``output_dir`` and return the path."""
    out_dir = Path(get_config().output_dir).expanduser()
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{stem}{_MIME_SUFFIX.get(mime_type, '.bin')}"
    path.write_bytes(data)
    logger.info("Saved generated image to %s", path)
    return path


def _save_images(result: ImageResult) -> list[Path]:
    return [
        _write_output(f"{result.id}_{index:02d}", image.mime_type, image.data)
        for index, image in enumerate(result.images)
    ]


def _save_data_uri(stem: str, data_uri: str) -> Path:
    header, _, payload = data_uri.partition(",")
    mime_type = header.removeprefix("data:").removesuffix(";base64")
    return _write_output(stem, mime_type, base64.b64decode(payload))


@scene_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="scene_preview_prompt", span_type="TOOL")
async def scene_preview_prompt(
    prompt: ScenePrompt,
    current_only: Annotated[bool, Field(description="Only the current moment, one image")] = False,
    scene_start: Annotated[bool, Field(description="Start from the beginning of the scene")] = False,
    scene_end: Annotated[bool, Field(description="Run until the end of the scene")] = False,
    offset: TimeOffset = 0.0,
    unit: TimeUnit = "minutes",
    image_count: ImageCount = 1,
    aspect_ratio: AspectRatioToken = "auto",
    reference_images: ReferenceImagePaths = None,
) -> dict:
    """Show the exact prompt and image list a generation would send, without calling Gemini.

    Args:
        prompt: Scene description.
        current_only: Depict only the current moment (forces one image).
        scene_start: Depict the beginning of the scene.
        scene_end: Depict the end of the scene (default when offset is 0).
        offset: Positive = future, negative = past.
        unit: Unit for the offset.
        image_count: Number of images to request (ignored for current_only).
        aspect_ratio: Output geometry; anything but "auto" appends a blank reference image.
        reference_images: Local reference image paths.

    Returns:
        Dict with final_prompt, time_mode, aspect_ratio, dimensions, images and time_control.
    """
    try:
        state, composed = _compose(
            prompt,
            current_only=current_only,
            scene_start=scene_start,
            scene_end=scene_end,
            offset=offset,
            unit=unit,
            image_count=image_count,
            aspect_ratio=aspect_ratio,
            reference_images=reference_images,
            model=None,
        )
        validate_request(composed.request, max_prompt_chars=get_config().max_prompt_chars)
    except Exception as exc:
        return make_tool_error(exc)
    return {**composed.summary(), "time_control": _state_summary(state)}


@scene_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="scene_generate", span_type="TOOL")
async def scene_generate(
    prompt: ScenePrompt,
    current_only: Annotated[bool, Field(description="Only the current moment, one image")] = False,
    scene_start: Annotated[bool, Field(description="Start from the beginning of the scene")] = False,
    scene_end: Annotated[bool, Field(description="Run until the end of the scene")] = False,
    offset: TimeOffset = 0.0,
    unit: TimeUnit = "minutes",
    image_count: ImageCount = 1,
    aspect_ratio: AspectRatioToken = "auto",
    reference_images: ReferenceImagePaths = None,
    model: Annotated[str | None, Field(description="Image model override")] = None,
) -> dict:
    """Generate an image of the scene at the selected moment(s).

    The model may decline to draw and answer in text; that comes back as
    ``result.kind == "text"`` with the explanation, not as an error. Only one
    generation runs at a time per server process.

    Args:
        prompt: Scene description.
        current_only: Depict only the current moment (forces one image).
        scene_start: Depict the beginning of the scene.
        scene_end: Depict the end of the scene (default when offset is 0).
        offset: Positive = future, negative = past.
        unit: Unit for the offset.
        image_count: Number of images to request.
        aspect_ratio: Output geometry via a trailing blank reference image.
        reference_images: Local reference image paths, sent before the blank image.
        model: Override the configured image model.

    Returns:
        Dict with final_prompt, time_mode, aspect_ratio and result. Image
        results list every returned image with its image_path (also
        collected in image_paths); text-only results carry text.
    """
    if _generation_lock.locked():
        return make_tool_error(GenerationBusyError("A scene generation is already in progress"))

    async with _generation_lock:
        try:
            state, composed = _compose(
                prompt,
                current_only=current_only,
                scene_start=scene_start,
                scene_end=scene_end,
                offset=offset,
                unit=unit,
                image_count=image_count,
                aspect_ratio=aspect_ratio,
                reference_images=reference_images,
                model=model,
            )
            annotate(_span_attributes(state, composed))
            result = await get_generator().generate(composed.request)
        except Exception as exc:
            logger.warning("scene_generate failed: %s", exc)
            return make_tool_error(exc)

        payload = result.model_dump(mode="json")
        if isinstance(result, ImageResult):
            try:
                paths = [str(p) for p in _save_images(result)]
            except OSError as exc:
                return make_tool_error(exc)
            for entry, path in zip(payload["images"], paths):
                entry["image_path"] = path
            payload["image_paths"] = paths
            if len(paths) < state.image_count:
                logger.info(
                    "Requested %d image(s), model returned %d", state.image_count, len(paths),
                )
        elif isinstance(result, TextOnlyResult):
            payload["message"] = "The model responded with text instead of an image."

        return {
            "final_prompt": composed.request.prompt,
            "time_mode": composed.mode_label,
            "aspect_ratio": composed.aspect_ratio,
            "result": payload,
        }


@scene_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="scene_generate_timeline", span_type="TOOL")
async def scene_generate_timeline(
    prompt: ScenePrompt,
    current_only: Annotated[bool, Field(description="Only the current moment, one image")] = False,
    scene_start: Annotated[bool, Field(description="Start from the beginning of the scene")] = False,
    scene_end: Annotated[bool, Field(description="Run until the end of the scene")] = False,
    image_count: ImageCount = 3,
    offset: TimeOffset = 0.0,
    unit: TimeUnit = "minutes",
    aspect_ratio: AspectRatioToken = "auto",
    reference_images: ReferenceImagePaths = None,
    model: Annotated[str | None, Field(description="Image model override")] = None,
) -> dict:
    """Generate an interleaved narration + image sequence for the scene.

    Time selection works as in ``scene_generate``. Every text and image part
    of the response is kept in order. Images are written to the output
    directory and referenced by path.

    Returns:
        Dict with final_prompt, time_mode, parts (type, order, text or
        image_path), text_parts and image_parts.
    """
    if _generation_lock.locked():
        return make_tool_error(GenerationBusyError("A scene generation is already in progress"))

    async with _generation_lock:
        try:
            state, composed = _compose(
                prompt,
                current_only=current_only,
                scene_start=scene_start,
                scene_end=scene_end,
                offset=offset,
                unit=unit,
                image_count=image_count,
                aspect_ratio=aspect_ratio,
                reference_images=reference_images,
                model=model,
            )
            annotate(_span_attributes(state, composed))
            timeline = await get_generator().generate_timeline(composed.request)
        except Exception as exc:
            logger.warning("scene_generate_timeline failed: %s", exc)
            return make_tool_error(exc)

    parts = []
    try:
        for part in timeline.parts:
            if part.type == "text":
                parts.append({"type": "text", "order": part.order, "text": part.content})
            else:
                path = _save_data_uri(f"{timeline.id}_{part.order:02d}", part.content)
                parts.append({"type": "image", "order": part.order, "image_path": str(path)})
    except OSError as exc:
        return make_tool_error(exc)
    return {
        "id": timeline.id,
        "final_prompt": timeline.prompt,
        "time_mode": composed.mode_label,
        "model": timeline.model,
        "parts": parts,
        "text_parts": timeline.text_parts,
        "image_parts": timeline.image_parts,
        "processing_ms": timeline.processing_ms,
    }


@scene_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
@trace(name="scene_suggest", span_type="TOOL")
async def scene_suggest(
    text: Annotated[str, Field(description="Rough idea to expand; may be empty")] = "",
    mode: SuggestionMode = "auto",
    reference_images: ReferenceImagePaths = None,
) -> dict:
    """Draft a story or a shot-by-shot scene description to use as a prompt.

    Args:
        text: The user's rough idea.
        mode: "story", "scene", or "auto" (keyword detection).
        reference_images: Local images the draft should incorporate.

    Returns:
        Dict with suggestion, mode, model and processing_ms.
    """
    try:
        images = load_reference_images(reference_images)
        result = await generate_suggestion(text, images, mode)
        return result.model_dump(mode="json")
    except Exception as exc:
        return make_tool_error(exc)


@scene_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def scene_aspect_ratios() -> dict:
    """List the supported aspect ratio tokens and their target pixel sizes."""
    return {
        "aspect_ratios": [
            {"token": token, "label": cfg.label, "width": cfg.width, "height": cfg.height,
             "uses_blank_image": token != "auto"}
            for token, cfg in ASPECT_RATIO_PRESETS.items()
        ]
    }
