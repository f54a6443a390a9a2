"""Fill unset environment variables from ``~/.config/chrono-banana-mcp/.env``."""

from __future__ import annotations

import os
import re
from pathlib import Path

DEFAULT_ENV_PATH = Path.home() / ".config" / "chrono-banana-mcp" / ".env"

# $NAME, ${NAME} or ${NAME:-default}, left unexpanded by some MCP hosts
_PLACEHOLDER = re.compile(r"^\$(?:\w+|\{\w+(?::-[^}]*)?\})$")


def is_placeholder(value: str) -> bool:
    return bool(_PLACEHOLDER.match(value.strip()))


def parse_dotenv(path: Path) -> dict[str, str]:
    """``KEY=VALUE`` lines, optionally quoted or prefixed with ``export``; ``#`` comments."""
    if not path.is_file():
        return {}
    result: dict[str, str] = {}
    for raw in path.read_text().splitlines():
        line = raw.strip().removeprefix("export ")
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = (s.strip() for s in line.partition("="))
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        if key:
            result[key] = value
    return result


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Copy file values into ``os.environ`` where the variable is empty or a placeholder.

    Returns the variables that were set.
    """
    injected: dict[str, str] = {}
    for key, value in parse_dotenv(path or DEFAULT_ENV_PATH).items():
        current = os.environ.get(key, "").strip()
        if current and not is_placeholder(current):
            continue
        os.environ[key] = value
        injected[key] = value
    return injected
