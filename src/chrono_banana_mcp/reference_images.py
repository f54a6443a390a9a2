"""Loading user reference images from local paths."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import get_config
from .errors import RequestValidationError
from .models.generation import ReferenceImage
from .types import ACCEPTED_IMAGE_MIME_TYPES

logger = logging.getLogger(__name__)

MAX_REFERENCE_BYTES = 10 * 1024 * 1024

_SUFFIX_MIME: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


def resolve_path(path_value: str) -> Path:
    """Resolve a user-supplied path to an absolute filesystem path."""
    return Path(path_value).expanduser().resolve()


def enforce_local_access_root(path: Path) -> Path:
    """Enforce the LOCAL_FILE_ACCESS_ROOT boundary when configured.

    Raises:
        PermissionError: If the path falls outside the configured access root.
    """
    cfg = get_config()
    if not cfg.local_file_access_root:
        return path

    root = Path(cfg.local_file_access_root).expanduser().resolve()
    if not path.is_relative_to(root):
        raise PermissionError(
            f"Path '{path}' is outside LOCAL_FILE_ACCESS_ROOT '{root}'"
        )
    return path


def mime_type_for(path: Path) -> str:
    """Guess an accepted image MIME type from the file suffix.

    Raises:
        RequestValidationError: For suffixes other than png/jpg/jpeg/webp.
    """
    mime = _SUFFIX_MIME.get(path.suffix.lower(), "")
    if mime not in ACCEPTED_IMAGE_MIME_TYPES:
        raise RequestValidationError(f"Unsupported image type: {path.suffix or path.name}")
    return mime


def load_reference_image(path_value: str) -> ReferenceImage:
    """Read one reference image from disk.

    Raises:
        FileNotFoundError: Missing file.
        PermissionError: Outside the configured access root.
        RequestValidationError: Unsupported type, empty or oversized file.
    """
    path = enforce_local_access_root(resolve_path(path_value))
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path_value}")
    mime = mime_type_for(path)
    data = path.read_bytes()
    if not data:
        raise RequestValidationError(f"Reference image is empty: {path.name}")
    if len(data) > MAX_REFERENCE_BYTES:
        raise RequestValidationError(
            f"Reference image too large: {path.name} ({len(data) // 1024}KB, max 10MB)"
        )
    return ReferenceImage(mime_type=mime, data=data, source="user", name=path.name)


def load_reference_images(paths: list[str] | None) -> list[ReferenceImage]:
    """Load images in the given order."""
    images = [load_reference_image(p) for p in (paths or [])]
    if images:
        logger.debug("Loaded %d reference image(s)", len(images))
    return images
