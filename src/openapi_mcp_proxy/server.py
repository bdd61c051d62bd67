"""MCP server setup for the OpenAPI proxy."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Sequence

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ImageContent, TextContent, Tool as MCPTool

from .config import Settings
from .http_client import HttpClient
from .models import StaticTool
from .openapi import OpenAPILoader, ensure_base_url
from .proxy import DispatchProxy, ToolNotFoundError
from .tool_registry import build_registry

logger = logging.getLogger(__name__)


class ProxyMCP(FastMCP):
    """FastMCP whose tool listing and calls are served by a DispatchProxy."""

    def __init__(self, name: str, proxy: DispatchProxy, **settings: Any) -> None:
        super().__init__(name, instructions=_instructions(), **settings)
        self.proxy = proxy

    async def list_tools(self) -> List[MCPTool]:
        return [
            MCPTool(name=tool["name"], description=tool["description"], inputSchema=tool["inputSchema"])
            for tool in self.proxy.list_tools()
        ]

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> Sequence[TextContent | ImageContent]:
        try:
            result = await self.proxy.call_tool(name, arguments)
        except ToolNotFoundError as exc:
            raise ToolError(str(exc)) from exc
        return [_content_block(block) for block in result.get("content") or []]


def _content_block(block: Dict[str, Any]) -> TextContent | ImageContent:
    if block.get("type") == "text":
        return TextContent.model_validate(block)
    if block.get("type") == "image":
        return ImageContent.model_validate(block)
    return TextContent(type="text", text=json.dumps(block))


async def build_server(settings: Settings, static_tools: Iterable[StaticTool] = ()) -> ProxyMCP:
    static_tools = list(static_tools)
    loader = OpenAPILoader(timeout_seconds=settings.spec_timeout_seconds)
    document = await loader.load_spec(settings.openapi_url)
    base_url = ensure_base_url(document, settings.api_base_url, settings.openapi_url)

    registry = build_registry(
        document,
        group_name=settings.tool_group,
        reserved_names=[tool.name for tool in static_tools],
    )
    http_client = HttpClient(
        base_url,
        document,
        headers=settings.request_headers(),
        timeout_seconds=settings.http_timeout_seconds,
        max_retries=settings.http_max_retries,
    )
    proxy = DispatchProxy(registry, http_client, static_tools)

    mcp = ProxyMCP(settings.service_name, proxy, host=settings.host, port=settings.port)
    for name in registry.names():
        logger.debug("Registered tool: %s", name)
    logger.info(
        "Serving %s OpenAPI tools and %s static tools against %s",
        len(registry),
        len(static_tools),
        base_url,
    )
    return mcp


def http_app(mcp: ProxyMCP, transport: str):  # type: ignore[no-untyped-def]
    transport = transport.lower()
    if transport in {"streamable-http", "streamablehttp", "http"}:
        app = mcp.streamable_http_app()
    elif transport == "sse":
        app = mcp.sse_app()
    else:
        return None
    _attach_healthcheck(app)
    _attach_cors(app)
    return app


def _attach_healthcheck(app) -> None:  # type: ignore[no-untyped-def]
    async def healthcheck(_request):  # type: ignore[no-untyped-def]
        from starlette.responses import JSONResponse

        return JSONResponse({"status": "ok"})

    app.add_route("/health", healthcheck, methods=["GET"])


def _attach_cors(app) -> None:  # type: ignore[no-untyped-def]
    from starlette.middleware.cors import CORSMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _instructions() -> str:
    return (
        "Proxy for a remote HTTP API described by OpenAPI. "
        "Each tool maps to one API operation; errors come back as JSON with status=error."
    )
