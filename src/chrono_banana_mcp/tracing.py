"""Optional MLflow spans for the scene tools.

Each tool call becomes a ``TOOL`` span via ``trace()``; once the request is
composed, ``annotate()`` stamps the span with what was asked for (time mode,
aspect ratio, image count). With ``mlflow.gemini.autolog()`` enabled the
Gemini call shows up as a child ``CHAT_MODEL`` span.

Everything here is a no-op unless ``mlflow-tracing`` is installed and
``MLFLOW_TRACKING_URI`` is set (``CHRONO_TRACING_ENABLED=false`` opts out).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

try:
    import mlflow
    import mlflow.gemini

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False


def is_enabled() -> bool:
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str | None = None,
) -> Callable:
    """``@mlflow.trace`` when tracing is on, otherwise the identity decorator."""
    if not is_enabled():
        return func if func is not None else (lambda f: f)
    return mlflow.trace(func, name=name, span_type=span_type)


def annotate(attributes: dict[str, Any]) -> None:
    """Attach *attributes* to the active span, if there is one."""
    if not is_enabled():
        return
    span = mlflow.get_current_active_span()
    if span is None:
        logger.debug("No active span for %d attribute(s)", len(attributes))
        return
    span.set_attributes(attributes)


def setup() -> None:
    """Point MLflow at the configured tracker and turn on Gemini autologging.

    A tracker that cannot be reached is logged and ignored; the server
    still starts.
    """
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    try:
        mlflow.set_tracking_uri(cfg.mlflow_tracking_uri)
        mlflow.set_experiment(cfg.mlflow_experiment_name)
        mlflow.gemini.autolog()
    except Exception:
        logger.warning("Tracing disabled: could not reach %s", cfg.mlflow_tracking_uri, exc_info=True)
        return
    logger.info(
        "Tracing scene tools to %s (experiment=%s)",
        cfg.mlflow_tracking_uri, cfg.mlflow_experiment_name,
    )


def shutdown() -> None:
    if not is_enabled():
        return
    try:
        mlflow.flush_trace_async_logging()
    except Exception:
        logger.warning("Trace flush failed", exc_info=True)
