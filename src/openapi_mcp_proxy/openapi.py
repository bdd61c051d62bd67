"""OpenAPI document loader."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger(__name__)


class SpecLoadError(Exception):
    """The OpenAPI document could not be loaded; the server must not start."""


class OpenAPILoader:
    def __init__(self, timeout_seconds: float = 30) -> None:
        self.timeout_seconds = timeout_seconds

    async def load_spec(self, url: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise SpecLoadError(f"Failed to fetch OpenAPI spec {url}: {exc}") from exc

        if response.status_code != 200:
            raise SpecLoadError(f"Failed to fetch OpenAPI spec {url}: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise SpecLoadError(f"OpenAPI spec at {url} is not valid JSON") from exc

        if not isinstance(data, dict) or not isinstance(data.get("paths"), dict):
            raise SpecLoadError(f"OpenAPI spec at {url} has no paths object")

        logger.info("Loaded OpenAPI spec %s with %s paths", url, len(data["paths"]))
        return data


def ensure_base_url(
    document: Dict[str, Any],
    base_url: Optional[str] = None,
    spec_url: Optional[str] = None,
) -> str:
    """Return the server URL for downstream calls, injecting ``base_url`` if given.

    Relative server URLs are resolved against ``spec_url``.
    """
    if base_url:
        document["servers"] = [{"url": base_url}]
        return base_url

    servers = document.get("servers") or []
    server = servers[0] if servers else None
    if isinstance(server, dict) and server.get("url"):
        url = server["url"]
        if spec_url and not url.startswith(("http://", "https://")):
            url = str(httpx.URL(spec_url).join(url))
        return url
    raise SpecLoadError("No base URL found in OpenAPI spec")
