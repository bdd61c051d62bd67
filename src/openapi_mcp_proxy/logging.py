"""Log setup for the proxy and masking of secrets in logged tool arguments."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, Dict


REDACTED = "***REDACTED***"

_SENSITIVE_KEYS = re.compile(
    r"(token|secret|api[_-]?key|password|authorization|cookie)", re.IGNORECASE
)

# httpx logs every request line at INFO, query strings included
_CHATTY_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: str) -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.handlers:
        # stdout carries the stdio transport
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return redact_payload(value)
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def redact_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``payload`` with sensitive keys masked at any depth, lists included."""
    return {
        key: REDACTED if _SENSITIVE_KEYS.search(str(key)) else _redact(value)
        for key, value in payload.items()
    }
