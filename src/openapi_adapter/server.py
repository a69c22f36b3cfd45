"""MCP server setup for the OpenAPI Adapter."""

import json
import logging
from typing import Any, Dict

import httpx
from fastmcp import FastMCP
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import TextContent
from pydantic import PrivateAttr
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from .config import Settings
from .executors import RestExecutor
from .models import RegistryEntry
from .openapi import OpenAPILoader
from .service import AdapterService
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class ApiTool(Tool):
    """MCP tool backed by one registry entry."""

    _entry: RegistryEntry = PrivateAttr()
    _service: AdapterService = PrivateAttr()

    def __init__(self, entry: RegistryEntry, service: AdapterService) -> None:
        super().__init__(
            name=entry.tool_name,
            description=entry.description,
            parameters=json.loads(entry.input_schema),
        )
        self._entry = entry
        self._service = service

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        text = await self._service.invoke(self._entry, arguments)
        return ToolResult(content=[TextContent(type="text", text=text)])


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Pooled client shared by every tool call; the caller owns and closes it."""
    return httpx.AsyncClient(
        timeout=settings.adapter_request_timeout_seconds,
        limits=httpx.Limits(max_connections=settings.adapter_max_connections),
    )


async def build_server(
    settings: Settings, client: httpx.AsyncClient
) -> tuple[FastMCP, object | None]:
    openapi_loader = OpenAPILoader(timeout_seconds=settings.adapter_request_timeout_seconds)
    registry = ToolRegistry(settings, openapi_loader)
    entries = await registry.load_tools()

    service = AdapterService(
        RestExecutor(timeout_seconds=settings.adapter_request_timeout_seconds, client=client)
    )

    mcp = FastMCP(settings.service_name, instructions=_instructions(registry))
    for entry in entries:
        mcp.add_tool(ApiTool(entry, service))
        logger.info("Registered tool: %s", entry.tool_name)

    app = _get_http_app(mcp, settings)
    _attach_auth(app, settings)
    _attach_healthcheck(app)
    return mcp, app


def _attach_auth(app, settings: Settings) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return
    if not settings.adapter_auth_token:
        logger.warning("ADAPTER_AUTH_TOKEN not set; HTTP endpoints are unauthenticated")
        return

    async def auth_middleware(request, call_next):  # type: ignore[no-untyped-def]
        if request.method == "OPTIONS":
            return await call_next(request)
        if request.url.path.endswith("/health"):
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        token = auth_header.replace("Bearer", "").strip()
        if token == settings.adapter_auth_token:
            return await call_next(request)

        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    app.add_middleware(BaseHTTPMiddleware, dispatch=auth_middleware)


def _attach_healthcheck(app) -> None:  # type: ignore[no-untyped-def]
    if not app:
        return

    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        return JSONResponse({"status": "ok"})

    app.router.routes.append(Route("/health", healthcheck, methods=["GET"]))


def _instructions(registry: ToolRegistry) -> str:
    specs = ", ".join(sorted({entry.spec_key for entry in registry.entries})) or "none"
    return (
        "OpenAPI Adapter. "
        f"Each tool calls one operation of a configured REST API (specs: {specs})."
    )


def _get_http_app(mcp: FastMCP, settings: Settings):  # type: ignore[no-untyped-def]
    transport = settings.adapter_transport.lower()
    if transport in {"http"}:
        app = mcp.http_app(transport="http", stateless_http=True, json_response=True)
        _attach_cors(app)
        return app
    if transport in {"streamable-http", "streamablehttp"}:
        app = mcp.http_app(
            transport="streamable-http", stateless_http=True, json_response=True
        )
        _attach_cors(app)
        return app
    if transport in {"sse"}:
        app = mcp.http_app(transport="sse")
        _attach_cors(app)
        return app
    return None


def _attach_cors(app) -> None:  # type: ignore[no-untyped-def]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
