"""Unit tests for schema_engine.json_schema.resolver."""

from __future__ import annotations

import copy

import pytest

from schema_engine.config import load_settings
from schema_engine.json_schema.generator import generate
from schema_engine.json_schema.resolver import ResolveOptions, flatten, optimize_for_llm, resolve
from schema_engine.json_schema.walker import count_refs
from schema_engine.registry.builder import build
from schema_engine.types.canonical import ref


def _make_node_document():
    node = build([("value", "integer"), ("next", ref("Node"), {"optional": True})], name="Node")
    return generate(node)


def _make_person_document():
    address = build([("city", "string")], name="Address")
    return generate(build([("home", address)], name="Person"))


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


class TestResolve:
    def test_non_recursive_fully_inlined(self):
        resolved = resolve(_make_person_document())
        assert resolved["properties"]["home"] == {
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
        }
        assert "definitions" not in resolved
        assert count_refs(resolved) == 0

    def test_self_reference_bounded(self):
        resolved = resolve(_make_node_document(), max_depth=2)
        assert count_refs(resolved) <= 1
        innermost = resolved["properties"]["next"]["properties"]["next"]["properties"]["next"]
        assert innermost == {"$ref": "#/definitions/Node"}

    def test_definitions_dropped_at_depth_limit(self):
        resolved = resolve(_make_node_document(), max_depth=1)
        assert "definitions" not in resolved
        assert resolved["properties"]["next"]["properties"]["next"] == {"$ref": "#/definitions/Node"}

    def test_defs_key_dropped_at_depth_limit(self):
        document = {
            "properties": {"a": {"$ref": "#/$defs/A"}},
            "$defs": {"A": {"type": "object", "properties": {"a": {"$ref": "#/$defs/A"}}}},
        }
        resolved = resolve(document, max_depth=3)
        assert "$defs" not in resolved
        assert count_refs(resolved) == 1

    def test_max_depth_zero_leaves_refs(self):
        document = _make_node_document()
        resolved = resolve(document, max_depth=0)
        assert resolved["properties"]["next"] == {"$ref": "#/definitions/Node"}
        assert resolved == {k: v for k, v in document.items() if k != "definitions"}

    def test_input_not_modified(self):
        document = _make_person_document()
        snapshot = copy.deepcopy(document)
        resolve(document)
        assert document == snapshot

    def test_sibling_title_preserved(self):
        document = {
            "type": "object",
            "properties": {"a": {"$ref": "#/definitions/A", "title": "Local"}},
            "definitions": {"A": {"type": "object", "title": "Original"}},
        }
        assert resolve(document)["properties"]["a"]["title"] == "Local"
        assert resolve(document, preserve_titles=False)["properties"]["a"]["title"] == "Original"

    def test_sibling_description_preserved(self):
        document = {
            "properties": {"a": {"$ref": "#/definitions/A", "description": "Local"}},
            "definitions": {"A": {"type": "string", "description": "Original"}},
        }
        assert resolve(document)["properties"]["a"]["description"] == "Local"
        assert resolve(document, preserve_descriptions=False)["properties"]["a"]["description"] == "Original"

    def test_defs_key_supported(self):
        document = {
            "properties": {"a": {"$ref": "#/$defs/A"}},
            "$defs": {"A": {"type": "integer"}},
        }
        assert resolve(document) == {"properties": {"a": {"type": "integer"}}}

    def test_unknown_ref_left_alone(self):
        document = {"properties": {"a": {"$ref": "https://example.com/schema.json"}}}
        assert resolve(document) == document

    def test_negative_depth_rejected(self):
        with pytest.raises(ValueError):
            ResolveOptions(max_depth=-1)

    def test_options_from_settings(self):
        assert ResolveOptions.from_settings(load_settings(resolve_max_depth=3)).max_depth == 3


# ---------------------------------------------------------------------------
# flatten
# ---------------------------------------------------------------------------


class TestFlatten:
    def test_non_recursive_inlined(self):
        flat = flatten(_make_person_document())
        assert flat["properties"]["home"]["properties"] == {"city": {"type": "string"}}
        assert "definitions" not in flat

    def test_recursive_refs_kept(self):
        flat = flatten(_make_node_document())
        assert flat["properties"]["next"] == {"$ref": "#/definitions/Node"}
        assert "Node" in flat["definitions"]

    def test_mutual_recursion_kept(self):
        document = {
            "properties": {"a": {"$ref": "#/definitions/A"}},
            "definitions": {
                "A": {"type": "object", "properties": {"b": {"$ref": "#/definitions/B"}}},
                "B": {"type": "object", "properties": {"a": {"$ref": "#/definitions/A"}}},
            },
        }
        flat = flatten(document)
        assert flat["properties"]["a"] == {"$ref": "#/definitions/A"}
        assert set(flat["definitions"]) == {"A", "B"}

    def test_preserve_complex_refs(self):
        flat = flatten(_make_person_document(), preserve_complex_refs=True)
        assert flat["properties"]["home"] == {"$ref": "#/definitions/Address"}
        assert "Address" in flat["definitions"]

    def test_preserve_complex_refs_inlines_scalars(self):
        document = {
            "properties": {"code": {"$ref": "#/definitions/Code"}},
            "definitions": {"Code": {"type": "string", "pattern": "^[A-Z]{3}$"}},
        }
        flat = flatten(document, preserve_complex_refs=True)
        assert flat == {"properties": {"code": {"type": "string", "pattern": "^[A-Z]{3}$"}}}

    def test_preserve_complex_refs_with_boolean_definition(self):
        document = {
            "properties": {"anything": {"$ref": "#/definitions/Anything"}},
            "definitions": {"Anything": True},
        }
        flat = flatten(document, preserve_complex_refs=True)
        assert flat == {"properties": {"anything": {"allOf": [True]}}}

    def test_single_member_any_of_collapsed(self):
        document = {"properties": {"a": {"anyOf": [{"type": "string"}], "description": "A"}}}
        assert flatten(document)["properties"]["a"] == {"type": "string", "description": "A"}

    def test_multi_member_any_of_kept(self):
        document = {"properties": {"a": {"anyOf": [{"type": "string"}, {"type": "null"}]}}}
        assert flatten(document) == document

    def test_unused_definitions_pruned(self):
        document = {"properties": {"a": {"type": "string"}}, "definitions": {"Unused": {"type": "integer"}}}
        assert flatten(document) == {"properties": {"a": {"type": "string"}}}


# ---------------------------------------------------------------------------
# optimize_for_llm
# ---------------------------------------------------------------------------


class TestOptimizeForLlm:
    def _document(self):
        return {
            "type": "object",
            "description": "Root",
            "properties": {
                "a": {"type": "string", "description": "A"},
                "b": {"anyOf": [{"type": "string"}, {"type": "integer"}, {"type": "null"}]},
                "c": {"type": "boolean"},
            },
            "required": ["a", "c"],
        }

    def test_noop_by_default(self):
        assert optimize_for_llm(self._document()) == self._document()

    def test_remove_descriptions(self):
        result = optimize_for_llm(self._document(), remove_descriptions=True)
        assert "description" not in result
        assert "description" not in result["properties"]["a"]

    def test_property_named_description_survives(self):
        document = {"type": "object", "properties": {"description": {"type": "string"}}}
        result = optimize_for_llm(document, remove_descriptions=True)
        assert "description" in result["properties"]

    def test_max_union_variants(self):
        result = optimize_for_llm(self._document(), max_union_variants=2)
        assert len(result["properties"]["b"]["anyOf"]) == 2

    def test_max_properties(self):
        result = optimize_for_llm(self._document(), max_properties=2)
        assert list(result["properties"]) == ["a", "b"]
        assert result["required"] == ["a"]

    def test_input_not_modified(self):
        document = self._document()
        optimize_for_llm(document, remove_descriptions=True, max_properties=1)
        assert document == self._document()
