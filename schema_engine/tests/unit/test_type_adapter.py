"""Unit tests for schema_engine.type_adapter."""

from __future__ import annotations

import pytest

from schema_engine.config import DefinitionsKey
from schema_engine.json_schema.reference_store import SchemaGenerationError
from schema_engine.pipeline.result import ErrorKind
from schema_engine.registry.builder import build
from schema_engine.registry.catalog import SchemaCatalog
from schema_engine.type_adapter import type_schema, validate_value
from schema_engine.types.canonical import array, integer, ref, string
from schema_engine.types.normalizer import NormalizationError


class TestValidateValue:
    def test_valid_list(self):
        result = validate_value(["string"], ["a", "b"])
        assert result.ok
        assert result.value == ["a", "b"]

    def test_element_errors_located_by_index(self):
        result = validate_value(array(integer(gt=0)), [1, 0, "x"])
        assert [e.path for e in result.errors] == [[1], [2]]
        assert [e.kind for e in result.errors] == [ErrorKind.CONSTRAINT_VIOLATED, ErrorKind.TYPE_MISMATCH]
        assert result.value is None

    def test_scalar_constraint(self):
        result = validate_value(string(max_length=3), "toolong")
        assert result.errors[0].constraint == "max_length"
        assert result.errors[0].path == []

    def test_registry_runs_full_pipeline(self):
        address = build([("city", string(min_length=2))], name="Address")
        result = validate_value([address], [{"city": "Oslo"}, {"city": "X"}])
        assert result.errors[0].path == [1, "city"]

    def test_reference_through_catalog(self):
        catalog = SchemaCatalog()
        catalog.register(build([("code", "string")], name="Country"))
        assert validate_value(ref("Country"), {"code": "NO"}, catalog=catalog).ok

    def test_invalid_type_expression(self):
        with pytest.raises(NormalizationError):
            validate_value("strng", "a")


class TestTypeSchema:
    def test_map(self):
        assert type_schema({"string": "integer"}) == {
            "type": "object",
            "additionalProperties": {"type": "integer"},
        }

    def test_registry_definitions(self):
        address = build([("city", "string")], name="Address")
        schema = type_schema([address], definitions_key=DefinitionsKey.DEFS)
        assert schema["items"] == {"$ref": "#/$defs/Address"}
        assert list(schema["$defs"]) == ["Address"]

    def test_unresolvable_reference(self):
        with pytest.raises(SchemaGenerationError):
            type_schema(ref("Nowhere"))
