"""Configuration for the OpenAPI MCP proxy."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="OPENAPI_MCP_", case_sensitive=False)

    service_name: str = Field(default="openapi-mcp-proxy")

    openapi_url: str = Field(default="http://localhost:8000/openapi.json")
    api_base_url: Optional[str] = Field(default=None)
    api_token: Optional[str] = Field(default=None)
    auth_scheme: str = Field(default="Bearer")
    headers: Optional[str] = Field(default=None, description="JSON object of extra headers")

    tool_group: str = Field(default="API")

    http_timeout_seconds: float = Field(default=30)
    http_max_retries: int = Field(default=2)
    spec_timeout_seconds: float = Field(default=30)

    transport: str = Field(default="stdio")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    log_level: str = Field(default="INFO")

    def extra_headers(self) -> Dict[str, str]:
        if not self.headers:
            return {}
        try:
            parsed = json.loads(self.headers)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring OPENAPI_MCP_HEADERS, invalid JSON: %s", exc)
            return {}
        if not isinstance(parsed, dict):
            logger.warning(
                "Ignoring OPENAPI_MCP_HEADERS, expected a JSON object, got %s",
                type(parsed).__name__,
            )
            return {}
        return {str(key): str(value) for key, value in parsed.items()}

    def request_headers(self) -> Dict[str, str]:
        headers = self.extra_headers()
        if self.api_token:
            headers["Authorization"] = f"{self.auth_scheme} {self.api_token}".strip()
        return headers


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
