"""Export OpenAPI operations as OpenAI or Anthropic tool definitions."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_settings
from .openapi import OpenAPILoader, SpecLoadError
from .operations import OperationCompiler
from .schema import SchemaConverter
from .tool_registry import iter_operations


def _described_operations(document: Dict[str, Any]):
    compiler = OperationCompiler(SchemaConverter(document))
    for _method, _path, operation, shared_parameters in iter_operations(document):
        if not operation.get("operationId"):
            continue
        parameters = compiler.build_parameters_schema(operation, shared_parameters)
        description = operation.get("summary") or operation.get("description") or ""
        yield operation["operationId"], description, parameters


def to_openai_tools(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {"name": name, "description": description, "parameters": parameters},
        }
        for name, description, parameters in _described_operations(document)
    ]


def to_anthropic_tools(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {"name": name, "description": description, "input_schema": parameters}
        for name, description, parameters in _described_operations(document)
    ]


EXPORTERS = {
    "openai": to_openai_tools,
    "anthropic": to_anthropic_tools,
}


def load_document(source: str, timeout_seconds: float) -> Dict[str, Any]:
    """Read a local JSON file, or fetch ``source`` as a URL."""
    path = Path(source).expanduser()
    if path.is_file():
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except ValueError as exc:
            raise SpecLoadError(f"OpenAPI spec at {path} is not valid JSON") from exc
        if not isinstance(document, dict) or not isinstance(document.get("paths"), dict):
            raise SpecLoadError(f"OpenAPI spec at {path} has no paths object")
        return document
    return asyncio.run(OpenAPILoader(timeout_seconds=timeout_seconds).load_spec(source))


def main(argv: Optional[List[str]] = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Export OpenAPI operations as LLM tool definitions")
    parser.add_argument(
        "source",
        nargs="?",
        default=settings.openapi_url,
        help="OpenAPI JSON file or URL (default: OPENAPI_MCP_OPENAPI_URL)",
    )
    parser.add_argument(
        "--format",
        default="openai",
        choices=sorted(EXPORTERS),
        help="Tool definition format (default: openai)",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indentation (default: 2)",
    )

    args = parser.parse_args(argv)
    try:
        document = load_document(args.source, settings.spec_timeout_seconds)
    except SpecLoadError as exc:
        raise SystemExit(str(exc)) from exc

    tools = EXPORTERS[args.format](document)
    json.dump(tools, sys.stdout, indent=args.indent)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
