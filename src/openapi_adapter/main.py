"""CLI entry point for the OpenAPI Adapter."""

from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn

from .config import ConfigurationError, Settings, get_settings
from .logging import configure_logging
from .server import build_server, create_http_client

logger = logging.getLogger(__name__)

HTTP_TRANSPORTS = {"http", "streamable-http", "streamablehttp", "sse"}


async def _serve_http(app, settings: Settings) -> None:  # type: ignore[no-untyped-def]
    config = uvicorn.Config(
        app,
        host=settings.adapter_host,
        port=settings.adapter_port,
        log_level=settings.adapter_log_level.lower(),
    )
    await uvicorn.Server(config).serve()


async def _run(settings: Settings) -> None:
    async with create_http_client(settings) as client:
        mcp, app = await build_server(settings, client)
        transport = settings.adapter_transport.lower()

        if transport in HTTP_TRANSPORTS:
            if not app:
                raise RuntimeError(f"HTTP app unavailable for transport={transport}")
            logger.info(
                "Serving on %s:%s (%s)", settings.adapter_host, settings.adapter_port, transport
            )
            await _serve_http(app, settings)
            return
        await mcp.run_stdio_async()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.adapter_log_level)
    try:
        asyncio.run(_run(settings))
    except ConfigurationError as exc:
        logger.error("Startup aborted: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
