"""Infrastructure tools — 2 tools on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..client import check_api_key_format, mask_key
from ..config import MODEL_PRESETS, get_config, update_config
from ..errors import MutationPolicyError, make_tool_error
from ..tracing import trace
from ..types import ModelPreset
from . import scene as scene_mod

infra_server = FastMCP("infra")
_SENSITIVE_CONFIG_FIELDS = {"gemini_api_key", "infra_admin_token"}


def _redacted_config() -> dict:
    """Return runtime config with secret-bearing fields removed."""
    return get_config().model_dump(exclude=_SENSITIVE_CONFIG_FIELDS)


def _enforce_mutation_policy(auth_token: str | None) -> None:
    """Gate mutating infra operations behind explicit policy + optional token."""
    cfg = get_config()
    if not cfg.infra_mutations_enabled:
        raise MutationPolicyError(
            "Infra mutations are disabled by policy. "
            "Set INFRA_MUTATIONS_ENABLED=true to enable mutating infra tools."
        )
    if cfg.infra_admin_token and auth_token != cfg.infra_admin_token:
        raise MutationPolicyError(
            "Invalid or missing infra auth token for mutating operation."
        )


def _rate_limit_status() -> dict:
    limiter = scene_mod.current_limiter()
    if limiter is None:
        return {
            "can_make_request": True,
            "wait_seconds": 0.0,
            "delay_seconds": get_config().rate_limit_seconds,
        }
    ready, wait = limiter.status()
    return {
        "can_make_request": ready,
        "wait_seconds": round(wait, 2),
        "delay_seconds": limiter.min_interval,
    }


@infra_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="infra_status", span_type="TOOL")
async def infra_status() -> dict:
    """Report API key presence/format, rate-limit state and active models.

    Returns:
        Dict with api_key (present, masked_key, valid, message), rate_limit
        (can_make_request, wait_seconds, delay_seconds) and models.
    """
    cfg = get_config()
    valid, message = check_api_key_format(cfg.gemini_api_key)
    return {
        "api_key": {
            "present": bool(cfg.gemini_api_key),
            "masked_key": mask_key(cfg.gemini_api_key),
            "valid": valid,
            "message": message,
        },
        "rate_limit": _rate_limit_status(),
        "models": {"image_model": cfg.image_model, "text_model": cfg.text_model},
    }


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="infra_configure", span_type="TOOL")
async def infra_configure(
    preset: Annotated[ModelPreset | None, Field(
        description='Named model preset: "flash-image", "flash-image-ga" or "lite"',
    )] = None,
    image_model: Annotated[str | None, Field(description="Image model ID override")] = None,
    text_model: Annotated[str | None, Field(description="Suggestion model ID override")] = None,
    rate_limit_seconds: Annotated[float | None, Field(
        ge=0.0, description="Minimum seconds between generation requests",
    )] = None,
    auth_token: Annotated[str | None, Field(
        description="Optional infra auth token (required when INFRA_ADMIN_TOKEN is configured)",
    )] = None,
) -> dict:
    """Reconfigure the server at runtime — preset, models, or rate-limit delay.

    Changes take effect for the next generation. The rate limiter is kept,
    so a new delay applies from the last dispatch already made.

    Returns:
        Dict with current_config, active_preset, and available_presets.
    """
    try:
        overrides: dict[str, object] = {}

        if preset is not None:
            if preset not in MODEL_PRESETS:
                valid = ", ".join(sorted(MODEL_PRESETS))
                raise ValueError(f"Unknown preset '{preset}'. Available: {valid}")
            p = MODEL_PRESETS[preset]
            overrides["image_model"] = p["image_model"]
            overrides["text_model"] = p["text_model"]

        # Explicit models override the preset
        if image_model is not None:
            overrides["image_model"] = image_model
        if text_model is not None:
            overrides["text_model"] = text_model
        if rate_limit_seconds is not None:
            overrides["rate_limit_seconds"] = rate_limit_seconds

        if overrides:
            _enforce_mutation_policy(auth_token)
            cfg = update_config(**overrides)
            scene_mod.reset_generator()
            scene_mod.set_rate_limit(cfg.rate_limit_seconds)
        else:
            cfg = get_config()

        active = None
        for name, p in MODEL_PRESETS.items():
            if cfg.image_model == p["image_model"] and cfg.text_model == p["text_model"]:
                active = name
                break

        return {
            "current_config": _redacted_config(),
            "active_preset": active,
            "available_presets": {k: v["label"] for k, v in MODEL_PRESETS.items()},
        }
    except Exception as exc:
        return make_tool_error(exc)
