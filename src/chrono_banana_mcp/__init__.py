"""Chrono Banana — scene-over-time image generation with Gemini."""

__version__ = "0.1.0"
