"""Structured error handling — exception types, categories, and tool error model."""

from __future__ import annotations

from enum import Enum

from google.genai import errors as genai_errors
from pydantic import BaseModel


class RequestValidationError(ValueError):
    """A generation request failed client-side checks and was never sent."""


class MalformedResponseError(RuntimeError):
    """The generation backend returned neither an image nor usable text."""


class BlankImageError(RuntimeError):
    """The white reference image for an aspect ratio could not be synthesized."""


class GenerationBusyError(RuntimeError):
    """A generation is already in flight for this process."""


class MutationPolicyError(RuntimeError):
    """A runtime reconfiguration was refused by the infra mutation policy."""


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    IMAGE_SYNTHESIS_FAILED = "IMAGE_SYNTHESIS_FAILED"
    GENERATION_BUSY = "GENERATION_BUSY"
    INFRA_MUTATION_DENIED = "INFRA_MUTATION_DENIED"
    API_KEY_MISSING = "API_KEY_MISSING"
    API_PERMISSION_DENIED = "API_PERMISSION_DENIED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    API_INVALID_ARGUMENT = "API_INVALID_ARGUMENT"
    API_NOT_FOUND = "API_NOT_FOUND"
    CONTENT_BLOCKED = "CONTENT_BLOCKED"
    NETWORK_ERROR = "NETWORK_ERROR"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_ACCESS_DENIED = "FILE_ACCESS_DENIED"
    UNKNOWN = "UNKNOWN"


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


_QUOTA = (
    ErrorCategory.API_QUOTA_EXCEEDED,
    "Rate limit hit — wait and retry, or raise CHRONO_RATE_LIMIT_SECONDS",
)
_UNAVAILABLE = (
    ErrorCategory.NETWORK_ERROR,
    "Gemini is temporarily unavailable — try again shortly",
)

# HTTP status codes carried by google-genai APIError
_API_CODE_CATEGORIES: dict[int, tuple[ErrorCategory, str]] = {
    400: (ErrorCategory.API_INVALID_ARGUMENT, "Bad request — check input format"),
    403: (ErrorCategory.API_PERMISSION_DENIED, "API key lacks permission for this model"),
    404: (ErrorCategory.API_NOT_FOUND, "Model not found — check CHRONO_IMAGE_MODEL"),
    429: _QUOTA,
    500: _UNAVAILABLE,
    503: _UNAVAILABLE,
    504: _UNAVAILABLE,
}


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, RequestValidationError):
        return (ErrorCategory.VALIDATION_FAILED, str(error))
    if isinstance(error, MalformedResponseError):
        return (
            ErrorCategory.MALFORMED_RESPONSE,
            "Generation failed — the model returned no image and no text. Try again",
        )
    if isinstance(error, BlankImageError):
        return (
            ErrorCategory.IMAGE_SYNTHESIS_FAILED,
            "Could not build the aspect-ratio reference image — retry or use aspect_ratio='auto'",
        )
    if isinstance(error, GenerationBusyError):
        return (
            ErrorCategory.GENERATION_BUSY,
            "A generation is already running — wait for it to finish",
        )
    if isinstance(error, MutationPolicyError):
        return (
            ErrorCategory.INFRA_MUTATION_DENIED,
            "Set INFRA_MUTATIONS_ENABLED=true, and pass auth_token when INFRA_ADMIN_TOKEN is set",
        )
    if isinstance(error, genai_errors.APIError):
        category = _API_CODE_CATEGORIES.get(error.code)
        if category is not None:
            return category
    if isinstance(error, FileNotFoundError):
        return (ErrorCategory.FILE_NOT_FOUND, "File not found — check the path")
    if isinstance(error, PermissionError):
        return (ErrorCategory.FILE_ACCESS_DENIED, str(error))
    if isinstance(error, TimeoutError):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )

    s = str(error).lower()

    if "no gemini api key" in s:
        return (
            ErrorCategory.API_KEY_MISSING,
            "Set GEMINI_API_KEY (https://aistudio.google.com/apikey)",
        )
    if "403" in s or "permission" in s:
        return (
            ErrorCategory.API_PERMISSION_DENIED,
            "API key lacks permission for this model",
        )
    if "429" in s or "quota" in s or "resource_exhausted" in s:
        return _QUOTA
    if "safety" in s or "blocked" in s:
        return (
            ErrorCategory.CONTENT_BLOCKED,
            "The request was blocked by the model's safety filters — rephrase the prompt",
        )
    if "400" in s and "mime" in s:
        return (
            ErrorCategory.API_INVALID_ARGUMENT,
            "A reference image was rejected — use PNG, JPEG or WebP",
        )
    if "400" in s:
        return (ErrorCategory.API_INVALID_ARGUMENT, "Bad request — check input format")
    if "404" in s:
        return (ErrorCategory.API_NOT_FOUND, "Model not found — check CHRONO_IMAGE_MODEL")
    if "timeout" in s or "timed out" in s or "connection" in s:
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.NETWORK_ERROR,
        ErrorCategory.MALFORMED_RESPONSE,
        ErrorCategory.GENERATION_BUSY,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
