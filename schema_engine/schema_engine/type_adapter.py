"""Validation and schema generation for bare type expressions.

Useful when a value has to be checked against a type without declaring a
whole registry, e.g. a list of tags or a single configuration value::

    from schema_engine.type_adapter import validate_value, type_schema

    result = validate_value(["string"], ["a", "b"])
    assert result.ok
    type_schema({"string": "integer"})
    # {"type": "object", "additionalProperties": {"type": "integer"}}
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from schema_engine.config import DefinitionsKey
from schema_engine.json_schema.generator import GenerateOptions, drain_definitions
from schema_engine.json_schema.reference_store import ReferenceStore
from schema_engine.json_schema.type_mapper import map_type
from schema_engine.pipeline.result import ValidationError
from schema_engine.pipeline.validator import check_value
from schema_engine.registry.catalog import SchemaCatalog
from schema_engine.types.normalizer import normalize

logger = logging.getLogger(__name__)


class ValueResult(BaseModel):
    """Outcome of validating a single value."""

    value: Any = Field(default=None, description="The validated value. None when validation failed.")
    errors: list[ValidationError] = Field(default_factory=list, description="Collected errors.")

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_value(type_expr: Any, value: Any, catalog: SchemaCatalog | None = None) -> ValueResult:
    """Validate *value* against a type expression.

    Parameters
    ----------
    type_expr:
        Any expression :func:`~schema_engine.types.normalizer.normalize`
        accepts.
    value:
        The value to check.
    catalog:
        Catalog for schema references given by name.

    Raises
    ------
    NormalizationError
        If *type_expr* is invalid.  Data errors are returned, not raised.
    """
    canonical = normalize(type_expr)
    checked, errors = check_value(canonical, value, catalog=catalog)
    if errors:
        return ValueResult(errors=errors)
    return ValueResult(value=checked)


def type_schema(
    type_expr: Any,
    catalog: SchemaCatalog | None = None,
    definitions_key: DefinitionsKey = DefinitionsKey.DEFINITIONS,
) -> dict[str, Any]:
    """Return the JSON Schema for a bare type expression.

    Referenced registries are generated into the definitions map, as
    :func:`~schema_engine.json_schema.generator.generate` does.
    """
    canonical = normalize(type_expr)
    store = ReferenceStore(definitions_key.value)
    schema = map_type(canonical, store, None, catalog)

    drain_definitions(store, GenerateOptions(definitions_key=definitions_key, catalog=catalog))
    if store.definitions:
        schema[definitions_key.value] = store.definitions
    return schema
