"""Tests for aspect-ratio resolution and blank reference images."""

from __future__ import annotations

import io
from unittest.mock import patch

import pytest
from PIL import Image

from chrono_banana_mcp.aspect_ratio import (
    ASPECT_RATIO_PRESETS,
    ASPECT_RATIO_SUFFIX,
    aspect_ratio_suffix,
    get_aspect_ratio_config,
    make_blank_png,
    resolve_aspect_ratio,
)
from chrono_banana_mcp.errors import BlankImageError


class TestPresets:
    @pytest.mark.parametrize("token,size", [
        ("auto", (1024, 1024)),
        ("1:1", (1024, 1024)),
        ("16:9", (1920, 1080)),
        ("4:3", (1600, 1200)),
        ("3:4", (1200, 1600)),
        ("9:16", (1080, 1920)),
    ])
    def test_preset_sizes(self, token, size):
        config = get_aspect_ratio_config(token)
        assert (config.width, config.height) == size

    def test_unknown_token(self):
        with pytest.raises(ValueError, match="Unknown aspect ratio"):
            get_aspect_ratio_config("21:9")

    def test_suffix(self):
        assert aspect_ratio_suffix("auto") == ""
        assert aspect_ratio_suffix("16:9") == ASPECT_RATIO_SUFFIX


class TestResolve:
    def test_auto_has_no_blank(self):
        assert resolve_aspect_ratio("auto") == ("", None)

    def test_square(self):
        suffix, blank = resolve_aspect_ratio("1:1")
        assert suffix == " Maintain the aspect ratio of the last reference white blank image."
        assert blank.mime_type == "image/png"
        assert blank.source == "blank"
        with Image.open(io.BytesIO(blank.data)) as img:
            assert img.size == (1024, 1024)
            assert img.getpixel((0, 0)) == (255, 255, 255)

    @pytest.mark.parametrize("token", [t for t in ASPECT_RATIO_PRESETS if t != "auto"])
    def test_blank_matches_preset(self, token):
        _, blank = resolve_aspect_ratio(token)
        config = ASPECT_RATIO_PRESETS[token]
        with Image.open(io.BytesIO(blank.data)) as img:
            assert img.format == "PNG"
            assert img.size == (config.width, config.height)
        assert blank.name == f"white-{config.width}x{config.height}.png"

    def test_unknown_token(self):
        with pytest.raises(ValueError):
            resolve_aspect_ratio("2:1")

    def test_blank_bytes_not_serialised(self):
        _, blank = resolve_aspect_ratio("4:3")
        assert "data" not in blank.model_dump()
        assert blank.size_bytes == len(blank.data)


class TestBlankImageFailure:
    def test_allocation_error_wrapped(self):
        with patch("chrono_banana_mcp.aspect_ratio.Image.new", side_effect=MemoryError("oom")):
            with pytest.raises(BlankImageError, match="1920x1080"):
                make_blank_png(1920, 1080)

    def test_resolve_propagates(self):
        with patch("chrono_banana_mcp.aspect_ratio.Image.new", side_effect=ValueError("bad size")):
            with pytest.raises(BlankImageError):
                resolve_aspect_ratio("9:16")
