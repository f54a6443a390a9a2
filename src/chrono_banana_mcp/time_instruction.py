"""Time instruction synthesis — the sentence appended after the user's prompt.

The image model is sensitive to exact wording, so every clause here is a
fixed template. Multi-image custom modes spread the offset evenly over
``image_count`` points, rounded half-up to two decimals and printed without
trailing zeros (``5``, ``2.5``, ``3.33``).
"""

from __future__ import annotations

import math

from .time_control import TimeControlState, TimeMode

SCENE_START_SINGLE = (
    "\nGenerate the initial image of this scene, depicting its earliest moment."
)
SCENE_START_MULTI = (
    "\nGenerate {count} separate, independent images that proceed from the beginning "
    "of this scene, including its initial stages."
)
SCENE_END_SINGLE = "\nGenerate the final image of this scene, depicting how it ends."
SCENE_END_MULTI = (
    "\nGenerate {count} separate, independent images that show this scene in sequence, "
    "including its intermediate stages, through to its end."
)
FUTURE_SINGLE = "\nDepict this scene {value} {unit} after the present moment."
FUTURE_MULTI = (
    "\nGenerate {count} distinct, separate, independent images of this scene "
    "at the following intervals: {points}."
)
PAST_SINGLE = (
    "\nImagine this scene as it was {value} {unit} before the present moment "
    "and generate an image of it."
)
PAST_MULTI = (
    "\nGenerate {count} distinct, separate, independent images of this scene, "
    "ordered from the most distant past to the present, "
    "at the following intervals: {points}."
)

NOW_LABEL = "time 0 (now)"
PRESENT_LABEL = "present moment"


def round_time_point(value: float) -> float:
    """Round half-up to two decimals."""
    rounded = math.floor(value * 100 + 0.5) / 100
    return rounded + 0.0  # folds -0.0 into 0.0


def format_time_point(value: float) -> str:
    """Print *value* with the fewest decimals needed (at most two)."""
    rounded = round_time_point(value)
    if rounded.is_integer():
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0").rstrip(".")


def _format_offset(value: float) -> str:
    value = abs(value)
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def future_time_points(offset: float, unit: str, count: int) -> list[str]:
    """Labels for ``count`` evenly spaced points from now to ``offset`` later."""
    interval = offset / (count - 1)
    labels = []
    for i in range(count):
        if i == 0:
            labels.append(NOW_LABEL)
        else:
            labels.append(f"{format_time_point(interval * i)} {unit} later")
    return labels


def past_time_points(offset: float, unit: str, count: int) -> list[str]:
    """Labels for ``count`` evenly spaced points from ``|offset|`` ago to now."""
    abs_value = abs(offset)
    interval = abs_value / (count - 1)
    labels = []
    for i in range(count):
        point = round_time_point(abs_value - interval * i)
        if point == 0:
            labels.append(PRESENT_LABEL)
        else:
            labels.append(f"{format_time_point(point)} {unit} before")
    return labels


def synthesize_time_instruction(
    mode: TimeMode,
    offset: float,
    unit: str,
    image_count: int,
) -> str:
    """Return the time clause for the given selection.

    Empty for ``CURRENT_ONLY``; otherwise a sentence starting with a newline.
    A count of 1 never reaches the interval arithmetic.
    """
    multi = image_count > 1

    if mode == TimeMode.CURRENT_ONLY:
        return ""
    if mode == TimeMode.SCENE_START:
        return SCENE_START_MULTI.format(count=image_count) if multi else SCENE_START_SINGLE
    if mode == TimeMode.SCENE_END:
        return SCENE_END_MULTI.format(count=image_count) if multi else SCENE_END_SINGLE
    if mode == TimeMode.CUSTOM_FUTURE:
        if not multi:
            return FUTURE_SINGLE.format(value=_format_offset(offset), unit=unit)
        points = ", ".join(future_time_points(offset, unit, image_count))
        return FUTURE_MULTI.format(count=image_count, points=points)
    if mode == TimeMode.CUSTOM_PAST:
        if not multi:
            return PAST_SINGLE.format(value=_format_offset(offset), unit=unit)
        points = ", ".join(past_time_points(offset, unit, image_count))
        return PAST_MULTI.format(count=image_count, points=points)
    raise ValueError(f"Unknown time mode: {mode!r}")


def instruction_for_state(state: TimeControlState) -> str:
    """Shortcut for ``synthesize_time_instruction`` over a state record."""
    return synthesize_time_instruction(state.mode, state.offset, state.unit, state.image_count)
