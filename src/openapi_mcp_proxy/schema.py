"""Conversion of OpenAPI Schema Objects into tool input schemas."""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from .models import SchemaNode
from .resolver import RefResolver


logger = logging.getLogger(__name__)

COMPONENTS_PREFIX = "#/components/schemas/"
DEFS_PREFIX = "#/$defs/"
BINARY_NOTE = "absolute paths to local files"
COMPOSITION_KEYWORDS = ("oneOf", "anyOf", "allOf")


def to_defs_ref(ref: str) -> str:
    if ref.startswith(COMPONENTS_PREFIX):
        return DEFS_PREFIX + ref[len(COMPONENTS_PREFIX):]
    return ref


def to_components_ref(ref: str) -> str:
    if ref.startswith(DEFS_PREFIX):
        return COMPONENTS_PREFIX + ref[len(DEFS_PREFIX):]
    return ref


def placeholder_schema(description: str) -> SchemaNode:
    return {"type": "object", "additionalProperties": True, "description": description}


class SchemaConverter:
    """Converts OpenAPI schemas, one instance per compilation pass.

    In pointer mode component references become ``#/$defs/<name>`` pointers.
    In resolve mode they are expanded inline. The cache only saves work; it
    is keyed by reference and mode.
    """

    def __init__(self, document: Dict[str, Any], resolver: Optional[RefResolver] = None) -> None:
        self.document = document
        self.resolver = resolver or RefResolver(document)
        self._cache: Dict[Tuple[str, bool], SchemaNode] = {}

    def convert(
        self,
        schema: Dict[str, Any],
        visited: Iterable[str] = frozenset(),
        resolve_refs: bool = False,
    ) -> SchemaNode:
        if not isinstance(schema, dict):
            return {}
        branch: FrozenSet[str] = frozenset(visited)
        if "$ref" in schema:
            return self._convert_ref(schema, branch, resolve_refs)

        result: SchemaNode = {}
        if "type" in schema:
            result["type"] = schema["type"]

        if schema.get("format") == "binary":
            result["format"] = "uri-reference"
            description = schema.get("description")
            result["description"] = f"{description} ({BINARY_NOTE})" if description else BINARY_NOTE
        else:
            if schema.get("format"):
                result["format"] = schema["format"]
            if schema.get("description"):
                result["description"] = schema["description"]

        if "enum" in schema:
            result["enum"] = list(schema["enum"])
        if "default" in schema:
            result["default"] = schema["default"]

        if schema.get("type") == "object":
            properties = schema.get("properties")
            if properties:
                result["properties"] = {
                    name: self.convert(prop, branch, resolve_refs)
                    for name, prop in properties.items()
                }
            if schema.get("required"):
                result["required"] = list(schema["required"])
            additional = schema.get("additionalProperties")
            if additional is None or additional is True:
                result["additionalProperties"] = True
            elif isinstance(additional, dict):
                result["additionalProperties"] = self.convert(additional, branch, resolve_refs)
            else:
                result["additionalProperties"] = False

        if schema.get("type") == "array" and schema.get("items"):
            result["items"] = self.convert(schema["items"], branch, resolve_refs)

        for keyword in COMPOSITION_KEYWORDS:
            if schema.get(keyword):
                result[keyword] = [self.convert(item, branch, resolve_refs) for item in schema[keyword]]

        return result

    def convert_components(self) -> Dict[str, SchemaNode]:
        schemas = (self.document.get("components") or {}).get("schemas") or {}
        return {name: self.convert(value) for name, value in schemas.items()}

    def _convert_ref(
        self, schema: Dict[str, Any], visited: FrozenSet[str], resolve_refs: bool
    ) -> SchemaNode:
        ref = schema["$ref"]
        description = schema.get("description")

        if not resolve_refs:
            if isinstance(ref, str) and ref.startswith(COMPONENTS_PREFIX):
                pointer: SchemaNode = {"$ref": to_defs_ref(ref)}
                if description:
                    pointer["description"] = description
                return pointer
            logger.error("Reference %s is not in the components collection, resolving inline", ref)

        cached = self._cache.get((ref, resolve_refs))
        if cached is not None:
            return self._with_description(copy.deepcopy(cached), description)

        if ref in visited:
            logger.warning("Circular reference while converting %s", ref)
            return placeholder_schema(f"Circular reference to {ref}")

        branch = set(visited)
        resolved = self.resolver.resolve(ref, branch)
        if resolved is None:
            logger.error("Failed to resolve reference %s", ref)
            return placeholder_schema(f"Unresolved reference: {ref}")

        converted = self.convert(resolved, branch, resolve_refs)
        self._cache[(ref, resolve_refs)] = converted
        return self._with_description(copy.deepcopy(converted), description)

    @staticmethod
    def _with_description(node: SchemaNode, description: Optional[str]) -> SchemaNode:
        if description:
            node["description"] = description
        return node
