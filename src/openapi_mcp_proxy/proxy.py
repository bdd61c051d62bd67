"""Dispatch of list-tools and call-tool requests."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from .http_client import HttpClient, HttpClientError
from .logging import redact_payload
from .models import (
    CallToolResult,
    OperationCall,
    SchemaNode,
    StaticTool,
    StaticToolCall,
    text_result,
)
from .schema import DEFS_PREFIX
from .tool_registry import ToolRegistry


logger = logging.getLogger(__name__)

ResolvedCall = Union[StaticToolCall, OperationCall]


class ToolNotFoundError(LookupError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Method {name} not found")
        self.name = name


def strip_descriptions(node: Any) -> None:
    """Remove description text in place, leaving properties named ``description``."""
    if isinstance(node, list):
        for item in node:
            strip_descriptions(item)
    elif isinstance(node, dict):
        if isinstance(node.get("description"), str):
            del node["description"]
        for value in node.values():
            strip_descriptions(value)


def collect_refs(node: Any) -> List[str]:
    refs: List[str] = []
    if isinstance(node, list):
        for item in node:
            refs.extend(collect_refs(item))
    elif isinstance(node, dict):
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str):
                refs.append(value.replace(DEFS_PREFIX, ""))
            else:
                refs.extend(collect_refs(value))
    return refs


def reduce_schema(input_schema: SchemaNode) -> SchemaNode:
    """Shrink an input schema for the tool listing.

    Descriptions are dropped, and ``$defs`` is kept only for definitions the
    ``body`` property points at directly.
    """
    schema = copy.deepcopy(input_schema)
    strip_descriptions(schema)

    body = (input_schema.get("properties") or {}).get("body")
    refs = collect_refs(body) if isinstance(body, dict) else []
    if not refs:
        schema.pop("$defs", None)
    elif isinstance(schema.get("$defs"), dict):
        schema["$defs"] = {name: value for name, value in schema["$defs"].items() if name in refs}
    return schema


class DispatchProxy:
    def __init__(
        self,
        registry: ToolRegistry,
        http_client: HttpClient,
        static_tools: Iterable[StaticTool] = (),
    ) -> None:
        self.registry = registry
        self.http_client = http_client
        self.static_tools: Dict[str, StaticTool] = {}
        for tool in static_tools:
            if tool.name in self.static_tools or tool.name in registry:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self.static_tools[tool.name] = tool

    def list_tools(self) -> List[Dict[str, Any]]:
        tools: List[Dict[str, Any]] = []
        for methods in self.registry.groups.values():
            for method in methods:
                tools.append(
                    {
                        "name": method.name,
                        "description": method.description,
                        "inputSchema": reduce_schema(method.input_schema),
                    }
                )
        for tool in self.static_tools.values():
            tools.append(
                {
                    "name": tool.name,
                    "description": tool.description,
                    "inputSchema": tool.input_model.model_json_schema(),
                }
            )
        return tools

    def resolve(self, name: str) -> ResolvedCall:
        static_tool = self.static_tools.get(name)
        if static_tool is not None:
            return StaticToolCall(tool=static_tool)
        record = self.registry.operations.get(name)
        if record is not None:
            return OperationCall(name=name, record=record)
        raise ToolNotFoundError(name)

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> CallToolResult:
        arguments = arguments or {}
        logger.info("Calling tool=%s arguments=%s", name, redact_payload(arguments))
        call = self.resolve(name)

        if isinstance(call, StaticToolCall):
            payload = call.tool.input_model.model_validate(arguments)
            return await call.tool.handler(payload)

        try:
            response = await self.http_client.execute_operation(call.record, arguments)
        except HttpClientError as exc:
            logger.warning("Tool %s returned a structured error: %s", name, exc)
            return text_result(json.dumps(self._error_payload(exc.data)))
        return text_result(json.dumps(response.data))

    @staticmethod
    def _error_payload(data: Any) -> Dict[str, Any]:
        if data is None:
            return {"status": "error"}
        if isinstance(data, dict):
            return {"status": "error", **data}
        return {"status": "error", "data": data}
