"""Pydantic models for generation requests, results and suggestions."""
