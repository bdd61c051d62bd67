"""Expansion of `$defs` pointers into self-contained schemas."""

from __future__ import annotations

import copy
import logging
from typing import Dict, FrozenSet, Optional

from .models import SchemaNode
from .schema import (
    COMPOSITION_KEYWORDS,
    DEFS_PREFIX,
    SchemaConverter,
    placeholder_schema,
    to_components_ref,
)


logger = logging.getLogger(__name__)


class RefInliner:
    """Replaces every ``$ref`` in a converted schema with its definition.

    ``inline`` always terminates: a reference met again while it is still
    being expanded on the current branch becomes a permissive sentinel
    schema. Fully expanded references are cached for the duration of one
    ``inline`` call.
    """

    def __init__(self, converter: SchemaConverter) -> None:
        self.converter = converter

    def inline(self, schema: SchemaNode, defs: Optional[Dict[str, SchemaNode]] = None) -> SchemaNode:
        if defs is None:
            defs = schema.get("$defs") if isinstance(schema, dict) else None
        cache: Dict[str, SchemaNode] = {}
        result = self._inline(schema, frozenset(), cache, defs or {})
        if isinstance(result, dict):
            result.pop("$defs", None)
        return result

    def _inline(
        self,
        schema: SchemaNode,
        stack: FrozenSet[str],
        cache: Dict[str, SchemaNode],
        defs: Dict[str, SchemaNode],
    ) -> SchemaNode:
        if not isinstance(schema, dict):
            return schema

        ref = schema.get("$ref")
        if isinstance(ref, str):
            return self._inline_ref(schema, ref, stack, cache, defs)

        result = dict(schema)
        result.pop("$defs", None)

        items = schema.get("items")
        if isinstance(items, dict):
            result["items"] = self._inline(items, stack, cache, defs)

        properties = schema.get("properties")
        if isinstance(properties, dict):
            result["properties"] = {
                name: self._inline(prop, stack, cache, defs) for name, prop in properties.items()
            }

        additional = schema.get("additionalProperties")
        if isinstance(additional, dict):
            result["additionalProperties"] = self._inline(additional, stack, cache, defs)

        for keyword in COMPOSITION_KEYWORDS:
            members = schema.get(keyword)
            if isinstance(members, list):
                result[keyword] = [self._inline(member, stack, cache, defs) for member in members]

        return result

    def _inline_ref(
        self,
        schema: SchemaNode,
        ref: str,
        stack: FrozenSet[str],
        cache: Dict[str, SchemaNode],
        defs: Dict[str, SchemaNode],
    ) -> SchemaNode:
        if ref in stack:
            logger.warning("Circular reference detected for %s, using simplified schema", ref)
            return placeholder_schema(f"Circular reference to {ref}")

        if ref in cache:
            expanded = copy.deepcopy(cache[ref])
        else:
            definition = self._definition(ref, defs)
            if definition is None:
                logger.error("Failed to resolve reference %s", ref)
                return placeholder_schema(f"Unresolved reference: {ref}")
            expanded = self._inline(definition, stack | {ref}, cache, defs)
            cache[ref] = copy.deepcopy(expanded)

        description = schema.get("description")
        if description and not expanded.get("description"):
            expanded["description"] = description
        return expanded

    def _definition(self, ref: str, defs: Dict[str, SchemaNode]) -> Optional[SchemaNode]:
        if ref.startswith(DEFS_PREFIX):
            name = ref[len(DEFS_PREFIX):]
            if name in defs:
                return defs[name]
        resolved = self.converter.resolver.resolve(to_components_ref(ref), set())
        if resolved is None:
            return None
        return self.converter.convert(resolved)
