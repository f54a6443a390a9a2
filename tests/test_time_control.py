"""Tests for the time control state and its transitions."""

from __future__ import annotations

import itertools
import math

import pytest

from chrono_banana_mcp.time_control import (
    NAMED_MODES,
    TimeControlState,
    TimeMode,
    derive_mode,
    set_current_only,
    set_image_count,
    set_offset,
    set_scene_end,
    set_scene_start,
    set_unit,
    state_from_flags,
)


def _assert_invariants(state: TimeControlState) -> None:
    flags = [state.is_current_only_checked, state.is_scene_start_checked, state.is_scene_end_checked]
    assert sum(flags) <= 1
    if state.mode in NAMED_MODES:
        assert state.offset == 0
        assert sum(flags) == 1
    if state.mode == TimeMode.CUSTOM_FUTURE:
        assert state.offset > 0
    if state.mode == TimeMode.CUSTOM_PAST:
        assert state.offset < 0
    if state.is_current_only_checked:
        assert state.image_count == 1
    assert 1 <= state.image_count <= 10


class TestDefaults:
    def test_default_state(self):
        state = TimeControlState()
        assert state.mode == TimeMode.SCENE_END
        assert state.offset == 0
        assert state.unit == "minutes"
        assert state.image_count == 1
        assert state.is_scene_end_checked
        assert not state.image_count_locked

    @pytest.mark.parametrize("kwargs", [
        {"mode": TimeMode.SCENE_END, "offset": 5.0},
        {"mode": TimeMode.CUSTOM_FUTURE, "offset": -1.0},
        {"mode": TimeMode.CUSTOM_PAST, "offset": 0.0},
        {"mode": TimeMode.CURRENT_ONLY, "image_count": 3},
        {"unit": "weeks"},
        {"image_count": 11},
    ])
    def test_inconsistent_construction_rejected(self, kwargs):
        with pytest.raises(ValueError):
            TimeControlState(**kwargs)


class TestDeriveMode:
    def test_current_only_wins_over_everything(self):
        assert derive_mode(True, True, True, 5) == TimeMode.CURRENT_ONLY

    def test_scene_start_beats_scene_end(self):
        assert derive_mode(False, True, True, -3) == TimeMode.SCENE_START

    def test_scene_end_beats_offset(self):
        assert derive_mode(False, False, True, 7) == TimeMode.SCENE_END

    def test_sign_of_offset(self):
        assert derive_mode(offset=2.5) == TimeMode.CUSTOM_FUTURE
        assert derive_mode(offset=-2.5) == TimeMode.CUSTOM_PAST

    def test_zero_offset_without_flags_is_scene_end(self):
        assert derive_mode() == TimeMode.SCENE_END


class TestTransitions:
    def test_current_only_locks_count(self):
        state = set_image_count(TimeControlState(), 4)
        state = set_current_only(state, True)
        assert state.mode == TimeMode.CURRENT_ONLY
        assert state.image_count == 1
        assert state.image_count_locked
        assert set_image_count(state, 5) == state

    def test_clearing_current_only_unlocks_count(self):
        state = set_current_only(TimeControlState(), True)
        state = set_current_only(state, False)
        assert state.mode == TimeMode.SCENE_END
        assert not state.image_count_locked
        assert set_image_count(state, 5).image_count == 5

    def test_scene_start_clears_offset_and_unlocks(self):
        state = set_offset(set_current_only(TimeControlState(), True), 0)
        state = set_offset(state, 30)
        state = set_scene_start(state, True)
        assert state.mode == TimeMode.SCENE_START
        assert state.offset == 0
        assert not state.image_count_locked

    def test_scene_start_from_current_only(self):
        state = set_scene_start(set_current_only(TimeControlState(), True), True)
        assert state.mode == TimeMode.SCENE_START
        assert not state.is_current_only_checked

    def test_unchecking_inactive_flag_is_noop(self):
        state = set_scene_start(TimeControlState(), True)
        assert set_current_only(state, False) == state

    def test_unchecking_scene_end_stays_scene_end(self):
        state = set_scene_end(TimeControlState(), False)
        assert state.mode == TimeMode.SCENE_END

    def test_positive_offset_is_future(self):
        state = set_offset(set_current_only(TimeControlState(), True), 10)
        assert state.mode == TimeMode.CUSTOM_FUTURE
        assert state.offset == 10
        assert not state.image_count_locked

    def test_negative_offset_is_past(self):
        state = set_offset(TimeControlState(), -4)
        assert state.mode == TimeMode.CUSTOM_PAST
        assert state.offset == -4

    def test_offset_back_to_zero_selects_scene_end(self):
        state = set_offset(set_offset(TimeControlState(), 10), 0)
        assert state.mode == TimeMode.SCENE_END
        assert state.offset == 0

    def test_zero_offset_keeps_scene_start(self):
        state = set_offset(set_scene_start(TimeControlState(), True), 0)
        assert state.mode == TimeMode.SCENE_START

    def test_zero_offset_keeps_current_only(self):
        state = set_offset(set_current_only(TimeControlState(), True), 0)
        assert state.mode == TimeMode.CURRENT_ONLY

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_offset_normalized_to_zero(self, value):
        state = set_offset(set_offset(TimeControlState(), 3), value)
        assert state.mode == TimeMode.SCENE_END
        assert state.offset == 0

    @pytest.mark.parametrize("count", [0, -1, 11, 100])
    def test_out_of_range_count_is_noop(self, count):
        state = set_image_count(TimeControlState(), 3)
        assert set_image_count(state, count).image_count == 3

    def test_unit_change_survives_mode_change(self):
        state = set_unit(TimeControlState(), "hours")
        state = set_offset(set_scene_start(state, True), 2)
        assert state.unit == "hours"

    def test_unknown_unit_ignored(self):
        assert set_unit(TimeControlState(), "fortnights").unit == "minutes"


class TestInvariantsUnderSequences:
    _OPS = [
        lambda s: set_current_only(s, True),
        lambda s: set_current_only(s, False),
        lambda s: set_scene_start(s, True),
        lambda s: set_scene_start(s, False),
        lambda s: set_scene_end(s, True),
        lambda s: set_scene_end(s, False),
        lambda s: set_offset(s, 12.5),
        lambda s: set_offset(s, -3),
        lambda s: set_offset(s, 0),
        lambda s: set_image_count(s, 7),
        lambda s: set_image_count(s, 42),
    ]

    def test_all_three_step_sequences(self):
        for ops in itertools.product(self._OPS, repeat=3):
            state = TimeControlState()
            for op in ops:
                state = op(state)
                _assert_invariants(state)


class TestStateFromFlags:
    def test_flags_discard_offset(self):
        state = state_from_flags(scene_start=True, offset=15, image_count=4)
        assert state.mode == TimeMode.SCENE_START
        assert state.offset == 0
        assert state.image_count == 4

    def test_current_only_forces_single_image(self):
        state = state_from_flags(current_only=True, image_count=6)
        assert state.image_count == 1
        assert state.image_count_locked

    def test_offset_only(self):
        state = state_from_flags(offset=-10, unit="years", image_count=3)
        assert state.mode == TimeMode.CUSTOM_PAST
        assert state.unit == "years"
        assert state.image_count == 3

    def test_invalid_count_falls_back_to_default(self):
        assert state_from_flags(offset=5, image_count=99).image_count == 1

    def test_label(self):
        assert state_from_flags(offset=1).label == "Custom Future"
