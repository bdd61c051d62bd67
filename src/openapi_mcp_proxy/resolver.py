"""Local `$ref` resolution against an OpenAPI document."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Set


logger = logging.getLogger(__name__)

LOCAL_PREFIX = "#/"


def _decode_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


class RefResolver:
    """Resolves same-document references.

    The document is only read. Cycle detection relies on the ``visited`` set
    passed in by the caller, which must be scoped to one resolution attempt.
    """

    def __init__(self, document: Dict[str, Any]) -> None:
        self.document = document

    def resolve(self, ref: str, visited: Optional[Set[str]] = None) -> Optional[Dict[str, Any]]:
        if not isinstance(ref, str) or not ref.startswith(LOCAL_PREFIX):
            logger.warning("Unsupported reference (only %s... is supported): %s", LOCAL_PREFIX, ref)
            return None
        if visited is not None and ref in visited:
            logger.debug("Reference already on the resolution path: %s", ref)
            return None

        current: Any = self.document
        for raw_token in ref[len(LOCAL_PREFIX):].split("/"):
            token = _decode_token(raw_token)
            if isinstance(current, dict) and token in current:
                current = current[token]
            elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
                current = current[int(token)]
            else:
                logger.warning("Reference target not found: %s", ref)
                return None

        if not isinstance(current, dict):
            logger.warning("Reference does not point to an object: %s", ref)
            return None

        if visited is not None:
            visited.add(ref)
        return current

    def resolve_parameter(self, parameter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        resolved = self.resolve(parameter["$ref"], set()) if "$ref" in parameter else parameter
        if resolved and resolved.get("name"):
            return resolved
        logger.warning("Skipping parameter without a name: %s", parameter)
        return None

    def resolve_request_body(self, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if "$ref" not in body:
            return body
        return self.resolve(body["$ref"], set())

    def resolve_response(self, response: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if "$ref" not in response:
            return response
        return self.resolve(response["$ref"], set())
