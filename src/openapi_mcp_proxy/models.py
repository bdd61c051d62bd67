"""Internal models for compiled tools and dispatch targets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel


SchemaNode = Dict[str, Any]
CallToolResult = Dict[str, Any]


@dataclass(frozen=True)
class ToolMethod:
    name: str
    description: str
    input_schema: SchemaNode
    return_schema: Optional[SchemaNode] = None


@dataclass(frozen=True)
class OperationRecord:
    method: str
    path: str
    operation: Dict[str, Any]
    path_parameters: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def operation_id(self) -> Optional[str]:
        return self.operation.get("operationId")


@dataclass(frozen=True)
class StaticTool:
    """A hand-written tool that bypasses OpenAPI compilation."""

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel], Awaitable[CallToolResult]]


@dataclass(frozen=True)
class StaticToolCall:
    tool: StaticTool


@dataclass(frozen=True)
class OperationCall:
    name: str
    record: OperationRecord


@dataclass(frozen=True)
class HttpResponse:
    data: Any
    status: int
    headers: Dict[str, str] = field(default_factory=dict)


def text_result(text: str) -> CallToolResult:
    return {"content": [{"type": "text", "text": text}]}
