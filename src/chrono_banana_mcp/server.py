"""Main FastMCP server — mounts all sub-servers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import GeminiClient
from .tools.infra import infra_server
from .tools.scene import reset_generator, scene_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — tracing setup and client teardown."""
    tracing.setup()
    yield {}
    reset_generator()
    closed = await GeminiClient.close_all()
    tracing.shutdown()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)


app = FastMCP(
    "chrono-banana",
    instructions=(
        "Scene-over-time image generation with Gemini. Describe a scene, pick a "
        "moment (current, scene start/end, or a past/future offset) and an "
        "aspect ratio, optionally attach reference images, then generate."
    ),
    lifespan=_lifespan,
)

app.mount(scene_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``chrono-banana-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
