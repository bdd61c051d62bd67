"""Compilation of one OpenAPI operation into a tool method."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .inliner import RefInliner
from .models import SchemaNode, ToolMethod
from .schema import SchemaConverter


logger = logging.getLogger(__name__)

SUCCESS_CODES = ("200", "201", "202", "204")
IMAGE_TYPES = ("image/png", "image/jpeg")
MULTIPART = "multipart/form-data"
JSON = "application/json"


def merge_parameters(
    path_parameters: List[Dict[str, Any]], operation_parameters: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Path-item parameters first, overridden by operation ones with the same key."""
    merged: Dict[Any, Dict[str, Any]] = {}
    for parameter in [*path_parameters, *operation_parameters]:
        if not isinstance(parameter, dict):
            continue
        if "$ref" in parameter:
            key: Any = parameter["$ref"]
        else:
            key = (parameter.get("name"), parameter.get("in"))
        merged.pop(key, None)
        merged[key] = parameter
    return list(merged.values())


class OperationCompiler:
    def __init__(
        self,
        converter: SchemaConverter,
        inliner: Optional[RefInliner] = None,
    ) -> None:
        self.converter = converter
        self.resolver = converter.resolver
        self.inliner = inliner or RefInliner(converter)

    def compile(
        self,
        operation: Dict[str, Any],
        method: str,
        path: str,
        path_parameters: Optional[List[Dict[str, Any]]] = None,
    ) -> Optional[ToolMethod]:
        operation_id = operation.get("operationId")
        if not operation_id:
            logger.warning("Operation without operationId at %s %s", method.upper(), path)
            return None

        return ToolMethod(
            name=str(operation_id).replace(".", "_"),
            description=self.build_description(operation),
            input_schema=self.build_input_schema(operation, path_parameters),
            return_schema=self.extract_return_schema(operation.get("responses")),
        )

    def build_input_schema(
        self,
        operation: Dict[str, Any],
        path_parameters: Optional[List[Dict[str, Any]]] = None,
    ) -> SchemaNode:
        schema = self.build_parameters_schema(operation, path_parameters, full=True)
        inlined = self.inliner.inline(schema)
        inlined.pop("$defs", None)
        return inlined

    def build_parameters_schema(
        self,
        operation: Dict[str, Any],
        path_parameters: Optional[List[Dict[str, Any]]] = None,
        full: bool = False,
    ) -> SchemaNode:
        """Input schema that still points into a private ``$defs`` mapping.

        With ``full`` set, multipart forms are merged and a JSON body that is
        not an object is exposed as a required ``body`` property.
        """
        schema: SchemaNode = {
            "$defs": self.converter.convert_components(),
            "type": "object",
            "properties": {},
            "required": [],
        }
        properties: Dict[str, SchemaNode] = schema["properties"]
        required: List[str] = schema["required"]

        parameters = merge_parameters(path_parameters or [], operation.get("parameters") or [])
        for raw in parameters:
            parameter = self.resolver.resolve_parameter(raw)
            if not parameter or not parameter.get("schema"):
                continue
            name = parameter["name"]
            param_schema = self.converter.convert(parameter["schema"])
            if parameter.get("description"):
                param_schema["description"] = parameter["description"]
            properties[name] = param_schema
            if parameter.get("required") and name not in required:
                required.append(name)

        raw_body = operation.get("requestBody")
        body = self.resolver.resolve_request_body(raw_body) if isinstance(raw_body, dict) else None
        content = (body or {}).get("content") or {}

        multipart = (content.get(MULTIPART) or {}).get("schema")
        json_schema = (content.get(JSON) or {}).get("schema")
        if full and multipart:
            form_schema = self._body_schema(multipart)
            if form_schema.get("type") == "object" and form_schema.get("properties"):
                self._merge_object(form_schema, properties, required)
        elif json_schema:
            body_schema = self._body_schema(json_schema)
            if body_schema.get("type") == "object" and body_schema.get("properties"):
                self._merge_object(body_schema, properties, required)
            elif full:
                properties["body"] = body_schema
                if "body" not in required:
                    required.append("body")

        return schema

    def build_description(self, operation: Dict[str, Any]) -> str:
        description = operation.get("summary") or operation.get("description") or ""
        error_lines = []
        for code, response in (operation.get("responses") or {}).items():
            code = str(code)
            if not (code.startswith("4") or code.startswith("5")):
                continue
            resolved = self.resolver.resolve_response(response) if isinstance(response, dict) else None
            error_lines.append(f"{code}: {(resolved or {}).get('description') or ''}")
        if error_lines:
            description += "\nError Responses:\n" + "\n".join(error_lines)
        return description

    def extract_return_schema(self, responses: Optional[Dict[str, Any]]) -> Optional[SchemaNode]:
        responses = {str(code): value for code, value in (responses or {}).items()}
        success = next((responses[code] for code in SUCCESS_CODES if responses.get(code)), None)
        if not isinstance(success, dict):
            return None

        response = self.resolver.resolve_response(success)
        if not response or not response.get("content"):
            return None
        content = response["content"]
        description = response.get("description") or ""

        json_schema = (content.get(JSON) or {}).get("schema")
        if json_schema:
            return_schema = self.converter.convert(json_schema)
            return_schema["$defs"] = self.converter.convert_components()
            if description and not return_schema.get("description"):
                return_schema["description"] = description
            return return_schema

        if any(image in content for image in IMAGE_TYPES):
            return {"type": "string", "format": "binary", "description": description}

        return {"type": "string", "description": description}

    def _body_schema(self, schema: Dict[str, Any]) -> SchemaNode:
        converted = self.converter.convert(schema)
        if "$ref" in converted:
            # merge decisions need the object shape behind a pointer
            expanded = self.inliner.inline(converted, {})
            if expanded.get("type") == "object" and expanded.get("properties"):
                return expanded
        return converted

    @staticmethod
    def _merge_object(source: SchemaNode, properties: Dict[str, SchemaNode], required: List[str]) -> None:
        for name, prop in source["properties"].items():
            properties[name] = prop
        for name in source.get("required") or []:
            if name not in required:
                required.append(name)
