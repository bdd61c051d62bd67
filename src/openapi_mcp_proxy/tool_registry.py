"""Tool registry built from an OpenAPI document."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .inliner import RefInliner
from .models import OperationRecord, ToolMethod
from .operations import OperationCompiler
from .resolver import RefResolver
from .schema import SchemaConverter


logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "patch")
MAX_TOOL_NAME_LENGTH = 64
SUFFIX_WIDTH = 4


@dataclass
class ToolRegistry:
    groups: Dict[str, List[ToolMethod]] = field(default_factory=dict)
    operations: Dict[str, OperationRecord] = field(default_factory=dict)
    methods: Dict[str, ToolMethod] = field(default_factory=dict)

    def names(self) -> List[str]:
        return list(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    def __contains__(self, name: object) -> bool:
        return name in self.operations


def iter_operations(document: Dict[str, Any]) -> Iterator[Tuple[str, str, Dict[str, Any], List[Dict[str, Any]]]]:
    """Yield ``(method, path, operation, path_parameters)`` in declaration order."""
    for path, path_item in (document.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        shared_parameters = path_item.get("parameters") or []
        for method, operation in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            yield method.lower(), path, operation, shared_parameters


class ToolRegistryBuilder:
    """One compilation session over a document.

    Owns the schema conversion cache and the name suffix counter, so a new
    builder must be created for every document load.
    """

    def __init__(
        self,
        document: Dict[str, Any],
        group_name: str = "API",
        reserved_names: Optional[Iterable[str]] = None,
    ) -> None:
        self.document = document
        self.group_name = group_name
        self.reserved_names: Set[str] = set(reserved_names or ())
        resolver = RefResolver(document)
        self.converter = SchemaConverter(document, resolver)
        self.compiler = OperationCompiler(self.converter, RefInliner(self.converter))
        self._name_counter = 0

    def build(self) -> ToolRegistry:
        registry = ToolRegistry(groups={self.group_name: []})

        for method, path, operation, shared_parameters in iter_operations(self.document):
            tool_method = self.compiler.compile(operation, method, path, shared_parameters)
            if tool_method is None:
                continue

            name = self._unique_name(f"{self.group_name}-{tool_method.name}", registry)
            compiled = ToolMethod(
                name=name,
                description=tool_method.description,
                input_schema=tool_method.input_schema,
                return_schema=tool_method.return_schema,
            )
            registry.groups[self.group_name].append(compiled)
            registry.methods[name] = compiled
            registry.operations[name] = OperationRecord(
                method=method,
                path=path,
                operation=operation,
                path_parameters=list(shared_parameters),
            )

        logger.info("Compiled %s tools from OpenAPI document", len(registry))
        return registry

    def _unique_name(self, name: str, registry: ToolRegistry) -> str:
        if len(name) > MAX_TOOL_NAME_LENGTH:
            name = self._with_suffix(name)
        while name in registry.operations or name in self.reserved_names:
            logger.warning("Tool name collision for %s, adding suffix", name)
            name = self._with_suffix(name)
        return name

    def _with_suffix(self, name: str) -> str:
        self._name_counter += 1
        suffix = f"{self._name_counter:0{SUFFIX_WIDTH}d}"
        # suffix grows past SUFFIX_WIDTH digits after 9999
        return f"{name[:MAX_TOOL_NAME_LENGTH - len(suffix) - 1]}-{suffix}"


def build_registry(
    document: Dict[str, Any],
    group_name: str = "API",
    reserved_names: Optional[Iterable[str]] = None,
) -> ToolRegistry:
    return ToolRegistryBuilder(document, group_name, reserved_names).build()
