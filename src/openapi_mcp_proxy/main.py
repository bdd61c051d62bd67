"""CLI entry point for the OpenAPI MCP proxy."""

from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn

from .config import get_settings
from .logging import configure_logging
from .openapi import SpecLoadError
from .server import build_server, http_app

logger = logging.getLogger(__name__)


async def _run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    mcp = await build_server(settings)
    app = http_app(mcp, settings.transport)
    if app is not None:
        config = uvicorn.Config(app, host=settings.host, port=settings.port)
        server = uvicorn.Server(config)
        await server.serve()
        return
    await mcp.run_stdio_async()


def main() -> None:
    try:
        asyncio.run(_run())
    except SpecLoadError as exc:
        logger.error("Fatal error during startup: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
