import copy

import pytest


BASE_URL = "https://api.example.com"

PETSTORE = {
    "openapi": "3.0.3",
    "info": {"title": "Pet store", "version": "1.0.0"},
    "servers": [{"url": BASE_URL}],
    "paths": {
        "/items/{id}": {
            "parameters": [{"name": "X-Trace", "in": "header", "schema": {"type": "string"}}],
            "get": {
                "operationId": "getItem",
                "summary": "Get an item",
                "parameters": [
                    {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}},
                    {"$ref": "#/components/parameters/Limit"},
                ],
                "responses": {
                    "200": {
                        "description": "The item",
                        "content": {
                            "application/json": {"schema": {"$ref": "#/components/schemas/Item"}}
                        },
                    },
                    "404": {"description": "Item not found"},
                },
            },
            "x-internal": True,
        },
        "/pets": {
            "post": {
                "operationId": "pets.create",
                "description": "Create a pet",
                "requestBody": {
                    "content": {
                        "application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}
                    }
                },
                "responses": {
                    "201": {
                        "description": "Created",
                        "content": {
                            "application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}
                        },
                    },
                    "400": {"description": "Invalid pet"},
                    "500": {"$ref": "#/components/responses/ServerError"},
                },
            },
            "get": {"summary": "List pets without an operationId", "responses": {}},
        },
        "/tags": {
            "put": {
                "operationId": "replaceTags",
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {"type": "array", "items": {"type": "string"}}
                        }
                    }
                },
                "responses": {"204": {"description": "Replaced"}},
            }
        },
        "/upload": {
            "post": {
                "operationId": "uploadFile",
                "requestBody": {
                    "content": {
                        "multipart/form-data": {
                            "schema": {
                                "type": "object",
                                "properties": {
                                    "file": {
                                        "type": "string",
                                        "format": "binary",
                                        "description": "File to upload",
                                    },
                                    "note": {"type": "string"},
                                },
                                "required": ["file"],
                            }
                        }
                    }
                },
                "responses": {
                    "200": {
                        "description": "Upload receipt",
                        "content": {"text/plain": {"schema": {"type": "string"}}},
                    }
                },
            }
        },
    },
    "components": {
        "schemas": {
            "Item": {
                "type": "object",
                "description": "An item",
                "properties": {
                    "id": {"type": "string"},
                    "description": {"type": "string", "description": "Free text"},
                },
            },
            "Pet": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "description": "Pet name"},
                    "owner": {"$ref": "#/components/schemas/Owner"},
                    "tags": {"type": "array", "items": {"$ref": "#/components/schemas/Tag"}},
                },
            },
            "Owner": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "pets": {"type": "array", "items": {"$ref": "#/components/schemas/Pet"}},
                },
            },
            "Tag": {"type": "string", "enum": ["a", "b"]},
            "Unused": {"type": "object"},
        },
        "parameters": {
            "Limit": {
                "name": "limit",
                "in": "query",
                "description": "Max results",
                "schema": {"type": "integer", "default": 10},
            }
        },
        "responses": {"ServerError": {"description": "Server exploded"}},
    },
}


def find_refs(node):
    """All ``$ref`` values anywhere below ``node``."""
    if isinstance(node, list):
        return [ref for item in node for ref in find_refs(item)]
    if isinstance(node, dict):
        refs = [node["$ref"]] if isinstance(node.get("$ref"), str) else []
        for value in node.values():
            refs.extend(find_refs(value))
        return refs
    return []


@pytest.fixture
def petstore():
    return copy.deepcopy(PETSTORE)
