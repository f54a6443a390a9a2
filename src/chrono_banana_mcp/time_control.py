"""Time control state and its transitions.

The selected moment is a single ``TimeMode`` rather than a set of
checkboxes, so conflicting selections cannot be represented. Transitions are
pure functions that return a new ``TimeControlState``; the flag-style view
(``is_scene_end_checked`` and friends) is derived from the mode.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

from .types import TIME_UNITS

MIN_IMAGE_COUNT = 1
MAX_IMAGE_COUNT = 10


class TimeMode(str, Enum):
    """Which moment(s) of the scene to depict."""

    CURRENT_ONLY = "current_only"
    SCENE_START = "scene_start"
    SCENE_END = "scene_end"
    CUSTOM_FUTURE = "custom_future"
    CUSTOM_PAST = "custom_past"


NAMED_MODES = frozenset({TimeMode.CURRENT_ONLY, TimeMode.SCENE_START, TimeMode.SCENE_END})

_MODE_LABELS: dict[TimeMode, str] = {
    TimeMode.CURRENT_ONLY: "Current Only",
    TimeMode.SCENE_START: "Scene Start",
    TimeMode.SCENE_END: "Scene End",
    TimeMode.CUSTOM_FUTURE: "Custom Future",
    TimeMode.CUSTOM_PAST: "Custom Past",
}


@dataclass(frozen=True)
class TimeControlState:
    """Current time selection.

    ``offset`` is non-zero only in the custom modes and its sign always
    agrees with the mode. Constructing an inconsistent state raises
    ``ValueError``; use the ``set_*`` transitions to move between states.
    """

    mode: TimeMode = TimeMode.SCENE_END
    offset: float = 0.0
    unit: str = "minutes"
    image_count: int = 1

    def __post_init__(self) -> None:
        if self.unit not in TIME_UNITS:
            raise ValueError(f"Unknown time unit '{self.unit}'")
        if not MIN_IMAGE_COUNT <= self.image_count <= MAX_IMAGE_COUNT:
            raise ValueError(f"image_count must be in [{MIN_IMAGE_COUNT}, {MAX_IMAGE_COUNT}]")
        if self.mode in NAMED_MODES and self.offset != 0:
            raise ValueError(f"{self.mode.value} requires offset 0, got {self.offset}")
        if self.mode == TimeMode.CUSTOM_FUTURE and not self.offset > 0:
            raise ValueError("custom_future requires a positive offset")
        if self.mode == TimeMode.CUSTOM_PAST and not self.offset < 0:
            raise ValueError("custom_past requires a negative offset")
        if self.mode == TimeMode.CURRENT_ONLY and self.image_count != 1:
            raise ValueError("current_only always uses a single image")

    @property
    def is_current_only_checked(self) -> bool:
        return self.mode == TimeMode.CURRENT_ONLY

    @property
    def is_scene_start_checked(self) -> bool:
        return self.mode == TimeMode.SCENE_START

    @property
    def is_scene_end_checked(self) -> bool:
        return self.mode == TimeMode.SCENE_END

    @property
    def image_count_locked(self) -> bool:
        return self.mode == TimeMode.CURRENT_ONLY

    @property
    def label(self) -> str:
        return mode_label(self.mode)


def mode_label(mode: TimeMode) -> str:
    """Human-readable name of *mode*."""
    return _MODE_LABELS[mode]


def derive_mode(
    current_only: bool = False,
    scene_start: bool = False,
    scene_end: bool = False,
    offset: float = 0.0,
) -> TimeMode:
    """Resolve flag-style selections to one mode.

    Priority: current-only, scene start, scene end, then the sign of the
    offset. A zero offset with no flag set means scene end.
    """
    if current_only:
        return TimeMode.CURRENT_ONLY
    if scene_start:
        return TimeMode.SCENE_START
    if scene_end or offset == 0:
        return TimeMode.SCENE_END
    return TimeMode.CUSTOM_FUTURE if offset > 0 else TimeMode.CUSTOM_PAST


def _normalize_offset(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def _named(state: TimeControlState, mode: TimeMode) -> TimeControlState:
    count = 1 if mode == TimeMode.CURRENT_ONLY else state.image_count
    return replace(state, mode=mode, offset=0.0, image_count=count)


def _toggle(state: TimeControlState, mode: TimeMode, checked: bool) -> TimeControlState:
    if checked:
        return _named(state, mode)
    if state.mode == mode:
        # offset is 0 here, which only scene end may represent on its own
        return _named(state, TimeMode.SCENE_END)
    return state


def set_current_only(state: TimeControlState, checked: bool) -> TimeControlState:
    """Check or uncheck "current time point only"; checking locks the count at 1."""
    return _toggle(state, TimeMode.CURRENT_ONLY, checked)


def set_scene_start(state: TimeControlState, checked: bool) -> TimeControlState:
    """Check or uncheck "from the start of the scene"."""
    return _toggle(state, TimeMode.SCENE_START, checked)


def set_scene_end(state: TimeControlState, checked: bool) -> TimeControlState:
    """Check or uncheck "until the end of the scene"."""
    return _toggle(state, TimeMode.SCENE_END, checked)


def set_offset(state: TimeControlState, value: float) -> TimeControlState:
    """Apply a slider or text-box offset.

    A non-zero value switches to a custom mode by sign. Zero keeps
    current-only or scene-start when one is active and otherwise falls back
    to scene end. Non-finite input is treated as zero.
    """
    value = _normalize_offset(value)
    if value == 0:
        if state.mode in (TimeMode.CURRENT_ONLY, TimeMode.SCENE_START):
            return replace(state, offset=0.0)
        return _named(state, TimeMode.SCENE_END)
    mode = TimeMode.CUSTOM_FUTURE if value > 0 else TimeMode.CUSTOM_PAST
    return replace(state, mode=mode, offset=value)


def set_image_count(state: TimeControlState, count: int) -> TimeControlState:
    """Change the image count; ignored while locked or when out of range."""
    if state.image_count_locked:
        return state
    if isinstance(count, bool) or not isinstance(count, int):
        return state
    if not MIN_IMAGE_COUNT <= count <= MAX_IMAGE_COUNT:
        return state
    return replace(state, image_count=count)


def set_unit(state: TimeControlState, unit: str) -> TimeControlState:
    """Change the time unit; unknown units are ignored."""
    if unit not in TIME_UNITS:
        return state
    return replace(state, unit=unit)


def state_from_flags(
    *,
    current_only: bool = False,
    scene_start: bool = False,
    scene_end: bool = False,
    offset: float = 0.0,
    unit: str = "minutes",
    image_count: int = 1,
) -> TimeControlState:
    """Build a consistent state from checkbox-style inputs.

    Flags win over the offset in ``derive_mode`` order; a winning named
    mode discards the offset. Unit and count go through the normal setters,
    so invalid values fall back to the defaults.
    """
    offset = _normalize_offset(offset)
    mode = derive_mode(current_only, scene_start, scene_end, offset)
    state = set_unit(TimeControlState(), unit)
    state = set_image_count(state, image_count)
    if mode in NAMED_MODES:
        return _named(state, mode)
    return set_offset(state, offset)
