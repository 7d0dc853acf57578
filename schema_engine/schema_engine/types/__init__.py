"""Canonical type system, normaliser and constraint engine."""

from schema_engine.types.canonical import (
    CANONICAL_TYPES,
    Array,
    CanonicalType,
    Constraint,
    ConstraintKind,
    MapType,
    Primitive,
    PrimitiveKind,
    SchemaRef,
    TypeSpec,
    Union,
    any_type,
    array,
    boolean,
    integer,
    is_canonical,
    map_of,
    null,
    number,
    ref,
    string,
    union,
)
from schema_engine.types.constraints import check, constraint_message, failed_constraints
from schema_engine.types.normalizer import BuildError, NormalizationError, normalize, parse_constraints

__all__ = [
    "CANONICAL_TYPES",
    "Array",
    "BuildError",
    "CanonicalType",
    "Constraint",
    "ConstraintKind",
    "MapType",
    "NormalizationError",
    "Primitive",
    "PrimitiveKind",
    "SchemaRef",
    "TypeSpec",
    "Union",
    "any_type",
    "array",
    "boolean",
    "check",
    "constraint_message",
    "failed_constraints",
    "integer",
    "is_canonical",
    "map_of",
    "normalize",
    "null",
    "number",
    "parse_constraints",
    "ref",
    "string",
    "union",
]
