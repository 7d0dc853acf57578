"""Canonical type to JSON Schema mapping."""

from __future__ import annotations

import logging
from typing import Any

from schema_engine.json_schema.reference_store import ReferenceStore, SchemaGenerationError
from schema_engine.registry.catalog import SchemaCatalog, lookup_ref
from schema_engine.registry.models import FieldRegistry
from schema_engine.types.canonical import (
    Array,
    CanonicalType,
    Constraint,
    ConstraintKind,
    MapType,
    Primitive,
    PrimitiveKind,
    SchemaRef,
    Union,
)

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES: dict[PrimitiveKind, str | None] = {
    PrimitiveKind.STRING: "string",
    PrimitiveKind.INTEGER: "integer",
    PrimitiveKind.FLOAT: "number",
    PrimitiveKind.BOOLEAN: "boolean",
    PrimitiveKind.NULL: "null",
    PrimitiveKind.ANY: None,
}

_CONSTRAINT_KEYWORDS: dict[ConstraintKind, str] = {
    ConstraintKind.MIN_LENGTH: "minLength",
    ConstraintKind.MAX_LENGTH: "maxLength",
    ConstraintKind.PATTERN: "pattern",
    ConstraintKind.GT: "exclusiveMinimum",
    ConstraintKind.LT: "exclusiveMaximum",
    ConstraintKind.GTEQ: "minimum",
    ConstraintKind.LTEQ: "maximum",
    ConstraintKind.CHOICES: "enum",
    ConstraintKind.MIN_ITEMS: "minItems",
    ConstraintKind.MAX_ITEMS: "maxItems",
    ConstraintKind.MIN_PROPERTIES: "minProperties",
    ConstraintKind.MAX_PROPERTIES: "maxProperties",
}


def constraint_keywords(constraints: tuple[Constraint, ...]) -> dict[str, Any]:
    """Return the JSON Schema keywords for *constraints*."""
    keywords: dict[str, Any] = {}
    for constraint in constraints:
        keyword = _CONSTRAINT_KEYWORDS[constraint.kind]
        value = constraint.value
        if constraint.kind == ConstraintKind.CHOICES:
            value = list(value)
        keywords[keyword] = value
    return keywords


def map_type(
    type_: CanonicalType,
    store: ReferenceStore,
    owner: FieldRegistry | None = None,
    catalog: SchemaCatalog | None = None,
) -> dict[str, Any]:
    """Map a canonical type to a JSON Schema fragment.

    Parameters
    ----------
    type_:
        The canonical type.
    store:
        Reference store of the current ``generate`` call.  Every schema
        reference is recorded here.
    owner:
        Registry the type belongs to, used to resolve self references.
    catalog:
        Fallback catalog for late-bound references.

    Raises
    ------
    SchemaGenerationError
        If a schema reference cannot be resolved.
    """
    if isinstance(type_, Primitive):
        schema: dict[str, Any] = {}
        json_type = _PRIMITIVE_TYPES[type_.kind]
        if json_type is not None:
            schema["type"] = json_type
        schema.update(constraint_keywords(type_.constraints))
        return schema

    if isinstance(type_, Array):
        schema = {"type": "array", "items": map_type(type_.element, store, owner, catalog)}
        schema.update(constraint_keywords(type_.constraints))
        return schema

    if isinstance(type_, MapType):
        schema = {"type": "object", "additionalProperties": map_type(type_.value, store, owner, catalog)}
        key = type_.key
        if isinstance(key, Primitive) and key.kind == PrimitiveKind.STRING and key.constraints:
            schema["propertyNames"] = map_type(key, store, owner, catalog)
        schema.update(constraint_keywords(type_.constraints))
        return schema

    if isinstance(type_, Union):
        return {"anyOf": [map_type(v, store, owner, catalog) for v in type_.variants]}

    if isinstance(type_, SchemaRef):
        target = lookup_ref(type_.target_id, type_.target, owner, catalog)
        if target is None:
            raise SchemaGenerationError(f"Schema reference '{type_.target_id}' cannot be resolved.")
        return {"$ref": store.add_reference(type_.target_id, target)}

    raise TypeError(f"Unknown canonical type: {type_!r}")
