"""HTTP execution of compiled OpenAPI operations."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple
from urllib.parse import quote

import httpx

from .logging import redact_payload
from .models import HttpResponse, OperationRecord
from .operations import JSON, MULTIPART, merge_parameters
from .resolver import RefResolver


logger = logging.getLogger(__name__)


class HttpClientError(Exception):
    """A downstream call failed; ``data`` holds the decoded error payload."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.data = data
        self.headers = headers or {}


class HttpClient:
    def __init__(
        self,
        base_url: str,
        document: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: float = 30,
        max_retries: int = 2,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.resolver = RefResolver(document)

    async def execute_operation(
        self, operation: OperationRecord, params: Optional[Dict[str, Any]]
    ) -> HttpResponse:
        payload = dict(params or {})
        method = operation.method.upper()
        headers = dict(self.headers)
        query: Dict[str, Any] = {}
        cookies: Dict[str, str] = {}
        path = operation.path

        parameters = merge_parameters(
            operation.path_parameters, operation.operation.get("parameters") or []
        )
        for raw in parameters:
            parameter = self.resolver.resolve_parameter(raw)
            if not parameter or parameter["name"] not in payload:
                continue
            name = parameter["name"]
            value = payload.pop(name)
            location = parameter.get("in")
            if location == "path":
                path = path.replace(f"{{{name}}}", quote(str(value), safe=""))
            elif location == "header":
                headers[name] = str(value)
            elif location == "cookie":
                cookies[name] = str(value)
            else:
                query[name] = self._query_value(value)

        request_kwargs: Dict[str, Any] = {}
        content = self._request_content(operation.operation)
        if MULTIPART in content:
            data, files = self._multipart(content[MULTIPART].get("schema") or {}, payload)
            request_kwargs["data"] = data
            if files:
                request_kwargs["files"] = files
        elif JSON in content:
            body_schema = self._resolve_schema(content[JSON].get("schema") or {})
            if body_schema.get("type") == "object" and body_schema.get("properties"):
                if payload:
                    request_kwargs["json"] = payload
            elif "body" in payload:
                request_kwargs["json"] = payload["body"]
        else:
            for key, value in payload.items():
                if isinstance(value, (str, int, float, bool)):
                    query[key] = self._query_value(value)

        url = self.base_url + path
        attempt = 0
        while True:
            attempt += 1
            try:
                async with httpx.AsyncClient(timeout=self.timeout_seconds, cookies=cookies) as client:
                    response = await client.request(
                        method, url, headers=headers, params=query, **request_kwargs
                    )
                break
            except httpx.TransportError as exc:
                if attempt > self.max_retries:
                    raise HttpClientError(str(exc), data={"message": str(exc)}) from exc
                backoff = min(2 ** attempt, 6)
                logger.warning(
                    "HTTP call failed (attempt %s/%s). Retrying in %ss. %s %s params=%s",
                    attempt,
                    self.max_retries,
                    backoff,
                    method,
                    operation.path,
                    redact_payload(params or {}),
                )
                await asyncio.sleep(backoff)

        data = self._decode(response)
        response_headers = dict(response.headers)
        if response.status_code >= 400:
            raise HttpClientError(
                f"{method} {operation.path} returned {response.status_code}",
                status=response.status_code,
                data=data,
                headers=response_headers,
            )
        return HttpResponse(data=data, status=response.status_code, headers=response_headers)

    def _request_content(self, operation: Dict[str, Any]) -> Dict[str, Any]:
        raw_body = operation.get("requestBody")
        if not isinstance(raw_body, dict):
            return {}
        body = self.resolver.resolve_request_body(raw_body)
        return (body or {}).get("content") or {}

    def _resolve_schema(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        """Follow ``$ref`` chains until a concrete schema, ``{}`` on a dead end or loop."""
        visited: Set[str] = set()
        while isinstance(schema, dict) and "$ref" in schema:
            resolved = self.resolver.resolve(schema["$ref"], visited)
            if resolved is None:
                return {}
            schema = resolved
        return schema if isinstance(schema, dict) else {}

    def _multipart(
        self, schema: Dict[str, Any], payload: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], List[Tuple[str, Tuple[str, bytes]]]]:
        properties = self._resolve_schema(schema).get("properties") or {}
        data: Dict[str, Any] = {}
        files: List[Tuple[str, Tuple[str, bytes]]] = []
        for key, value in payload.items():
            prop = self._resolve_schema(properties.get(key) or {})
            if self._is_binary(prop):
                paths = value if isinstance(value, list) else [value]
                for file_path in paths:
                    files.append((key, self._read_file(str(file_path))))
            elif isinstance(value, (dict, list)):
                data[key] = json.dumps(value)
            else:
                data[key] = self._query_value(value)
        return data, files

    def _is_binary(self, schema: Dict[str, Any]) -> bool:
        if schema.get("format") == "binary":
            return True
        if schema.get("type") == "array":
            return self._resolve_schema(schema.get("items") or {}).get("format") == "binary"
        return False

    @staticmethod
    def _read_file(file_path: str) -> Tuple[str, bytes]:
        path = Path(file_path).expanduser()
        try:
            return path.name, path.read_bytes()
        except OSError as exc:
            raise HttpClientError(
                f"Cannot read file {file_path}", data={"message": f"Cannot read file {file_path}: {exc}"}
            ) from exc

    @staticmethod
    def _query_value(value: Any) -> Any:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, list):
            return [HttpClient._query_value(item) for item in value]
        return value

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return response.json()
            except ValueError:
                logger.warning("Response declared JSON but could not be decoded")
        return response.text
