"""Server configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

from .dotenv import is_placeholder, load_dotenv

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"

MODEL_PRESETS: dict[str, dict[str, str]] = {
    "flash-image": {
        "image_model": "gemini-2.5-flash-image-preview",
        "text_model": "gemini-2.5-flash",
        "label": "Default — 2.5 Flash Image for scenes + 2.5 Flash for suggestions",
    },
    "flash-image-ga": {
        "image_model": "gemini-2.5-flash-image",
        "text_model": "gemini-2.5-flash",
        "label": "GA — 2.5 Flash Image (stable) + 2.5 Flash",
    },
    "lite": {
        "image_model": "gemini-2.5-flash-image-preview",
        "text_model": "gemini-2.5-flash-lite",
        "label": "Cost-optimized — Flash Lite for suggestions",
    },
}


def _resolve_api_key() -> str:
    """Pick the Gemini key from ``GEMINI_API_KEY``, then the legacy public name.

    Blank values and unresolved placeholders (``${GEMINI_API_KEY}``) count as unset.
    """
    for name in ("GEMINI_API_KEY", "NEXT_PUBLIC_GEMINI_API_KEY"):
        value = os.getenv(name, "").strip()
        if value and not is_placeholder(value):
            return value
    return ""


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``CHRONO_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    gemini_api_key: str = Field(default="")
    image_model: str = Field(default=DEFAULT_IMAGE_MODEL)
    text_model: str = Field(default=DEFAULT_TEXT_MODEL)
    rate_limit_seconds: float = Field(default=8.0)
    max_prompt_chars: int = Field(default=2000)
    output_dir: str = Field(default="")
    retry_max_attempts: int = Field(default=3)
    retry_base_delay: float = Field(default=1.0)
    retry_max_delay: float = Field(default=60.0)
    local_file_access_root: str = Field(default="")
    infra_mutations_enabled: bool = Field(default=False)
    infra_admin_token: str = Field(default="")
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="chrono-banana-mcp")

    @field_validator("rate_limit_seconds")
    @classmethod
    def validate_rate_limit(cls, value: float) -> float:
        if value < 0:
            raise ValueError("rate_limit_seconds must be >= 0")
        return value

    @field_validator("max_prompt_chars", "retry_max_attempts")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("retry_base_delay", "retry_max_delay")
    @classmethod
    def validate_retry_delays(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Retry delay must be > 0")
        return value

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        from pathlib import Path

        output_default = str(Path.home() / ".cache" / "chrono-banana-mcp" / "images")
        return cls(
            gemini_api_key=_resolve_api_key(),
            image_model=os.getenv("CHRONO_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            text_model=os.getenv("CHRONO_TEXT_MODEL", DEFAULT_TEXT_MODEL),
            rate_limit_seconds=float(os.getenv("CHRONO_RATE_LIMIT_SECONDS", "8.0")),
            max_prompt_chars=int(os.getenv("CHRONO_MAX_PROMPT_CHARS", "2000")),
            output_dir=os.getenv("CHRONO_OUTPUT_DIR", output_default),
            retry_max_attempts=int(os.getenv("GEMINI_RETRY_MAX_ATTEMPTS", "3")),
            retry_base_delay=float(os.getenv("GEMINI_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(os.getenv("GEMINI_RETRY_MAX_DELAY", "60.0")),
            local_file_access_root=os.getenv("LOCAL_FILE_ACCESS_ROOT", ""),
            infra_mutations_enabled=_env_flag("INFRA_MUTATIONS_ENABLED"),
            infra_admin_token=os.getenv("INFRA_ADMIN_TOKEN", ""),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("CHRONO_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "chrono-banana-mcp"),
        )


_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/chrono-banana-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config (used by the ``infra_configure`` tool)."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
