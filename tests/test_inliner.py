"""Tests for `$defs` inlining."""

from conftest import find_refs

from openapi_mcp_proxy.inliner import RefInliner
from openapi_mcp_proxy.schema import SchemaConverter


DOCUMENT = {
    "paths": {},
    "components": {
        "schemas": {
            "A": {"type": "object", "properties": {"b": {"$ref": "#/components/schemas/B"}}},
            "B": {"type": "object", "properties": {"a": {"$ref": "#/components/schemas/A"}}},
            "Pet": {"type": "object", "properties": {"name": {"type": "string"}}},
            "Described": {"type": "string", "description": "Own text"},
            "Diamond": {
                "type": "object",
                "properties": {
                    "left": {"$ref": "#/components/schemas/Pet"},
                    "right": {"$ref": "#/components/schemas/Pet"},
                },
            },
        }
    },
}


def make_inliner():
    converter = SchemaConverter(DOCUMENT)
    return RefInliner(converter), converter.convert_components()


class TestCycles:
    def test_mutual_reference_terminates_with_sentinel(self):
        inliner, defs = make_inliner()
        inlined = inliner.inline({"$ref": "#/$defs/A"}, defs)
        assert inlined["properties"]["b"]["properties"]["a"] == {
            "type": "object",
            "additionalProperties": True,
            "description": "Circular reference to #/$defs/A",
        }
        assert find_refs(inlined) == []

    def test_defs_are_removed(self):
        inliner, defs = make_inliner()
        schema = {"$defs": defs, "type": "object", "properties": {"x": {"$ref": "#/$defs/B"}}}
        inlined = inliner.inline(schema)
        assert "$defs" not in inlined
        assert inlined["properties"]["x"]["properties"]["a"]["properties"]["b"]["description"] == (
            "Circular reference to #/$defs/B"
        )


class TestExpansion:
    def test_reference_site_description_is_kept(self):
        inliner, defs = make_inliner()
        inlined = inliner.inline({"$ref": "#/$defs/Pet", "description": "Site text"}, defs)
        assert inlined["description"] == "Site text"
        assert inlined["properties"] == {"name": {"type": "string"}}

    def test_expansion_description_wins(self):
        inliner, defs = make_inliner()
        inlined = inliner.inline({"$ref": "#/$defs/Described", "description": "Site text"}, defs)
        assert inlined["description"] == "Own text"

    def test_composition_and_additional_properties_are_walked(self):
        inliner, defs = make_inliner()
        schema = {
            "type": "object",
            "additionalProperties": {"$ref": "#/$defs/Pet"},
            "anyOf": [{"$ref": "#/$defs/Pet"}, {"type": "string"}],
            "oneOf": [{"type": "array", "items": {"$ref": "#/$defs/Pet"}}],
            "allOf": [{"$ref": "#/$defs/Described"}],
        }
        inlined = inliner.inline(schema, defs)
        assert inlined["additionalProperties"]["type"] == "object"
        assert inlined["anyOf"][0]["properties"]["name"] == {"type": "string"}
        assert inlined["anyOf"][1] == {"type": "string"}
        assert inlined["oneOf"][0]["items"]["type"] == "object"
        assert inlined["allOf"][0]["description"] == "Own text"
        assert find_refs(inlined) == []

    def test_diamond_references_are_independent_copies(self):
        inliner, defs = make_inliner()
        inlined = inliner.inline({"$ref": "#/$defs/Diamond"}, defs)
        left = inlined["properties"]["left"]
        right = inlined["properties"]["right"]
        assert left == right
        left["properties"]["name"]["type"] = "integer"
        assert right["properties"]["name"]["type"] == "string"

    def test_unresolved_reference_yields_placeholder(self):
        inliner, defs = make_inliner()
        inlined = inliner.inline({"$ref": "#/$defs/Missing"}, defs)
        assert inlined == {
            "type": "object",
            "additionalProperties": True,
            "description": "Unresolved reference: #/$defs/Missing",
        }

    def test_falls_back_to_document_without_defs(self):
        inliner, _defs = make_inliner()
        inlined = inliner.inline({"type": "array", "items": {"$ref": "#/$defs/Pet"}})
        assert inlined["items"]["properties"] == {"name": {"type": "string"}}

    def test_plain_nodes_pass_through(self):
        inliner, defs = make_inliner()
        assert inliner.inline({"type": "integer", "enum": [1, 2]}, defs) == {
            "type": "integer",
            "enum": [1, 2],
        }
