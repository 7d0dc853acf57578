"""Recursive validation of a single value against a canonical type.

Dispatch is an ``isinstance`` chain over the closed set of canonical
variants.  Arrays and maps validate every element, so all element errors
are collected.  Unions accept the first variant that produces no errors.
Schema references hand the value to the referenced registry's pipeline
through :attr:`ValueContext.run_nested`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from schema_engine.pipeline.result import ErrorKind, ValidationError
from schema_engine.registry.catalog import SchemaCatalog, lookup_ref
from schema_engine.registry.models import FieldRegistry
from schema_engine.types.canonical import (
    Array,
    CanonicalType,
    MapType,
    Primitive,
    PrimitiveKind,
    SchemaRef,
    Union,
)
from schema_engine.types.constraints import constraint_message, failed_constraints

logger = logging.getLogger(__name__)

Path = tuple[str | int, ...]
NestedRunner = Callable[[FieldRegistry, Any, Path], tuple[dict[str, Any] | None, list[ValidationError]]]


@dataclass(frozen=True, slots=True)
class ValueContext:
    """Everything value validation needs besides the type and the value.

    ``owner`` is the registry whose field is being validated; it resolves
    self references.  ``shape_only`` skips constraints and nested
    pipelines, checking only that the value has the right shape.
    """

    owner: FieldRegistry | None = None
    catalog: SchemaCatalog | None = None
    shape_only: bool = False
    run_nested: NestedRunner | None = None


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------


def type_name_of(value: Any) -> str:
    """Describe a Python value in the engine's type vocabulary."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def matches_primitive(kind: PrimitiveKind, value: Any) -> bool:
    """Return True if *value* has the shape of primitive *kind*.

    Booleans are not integers and ``None`` only matches ``null``.  Integers
    are accepted where a float is expected.
    """
    if kind == PrimitiveKind.ANY:
        return True
    if kind == PrimitiveKind.NULL:
        return value is None
    if kind == PrimitiveKind.STRING:
        return isinstance(value, str)
    if kind == PrimitiveKind.BOOLEAN:
        return isinstance(value, bool)
    if kind == PrimitiveKind.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    if kind == PrimitiveKind.FLOAT:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    raise TypeError(f"Unknown primitive kind: {kind!r}")


def _mismatch(expected: CanonicalType, value: Any, path: Path) -> list[ValidationError]:
    return [
        ValidationError(
            path=list(path),
            kind=ErrorKind.TYPE_MISMATCH,
            message=f"expected {expected.describe()}, got {type_name_of(value)}",
        )
    ]


def _constraint_errors(type_: CanonicalType, value: Any, path: Path) -> list[ValidationError]:
    return [
        ValidationError(
            path=list(path),
            kind=ErrorKind.CONSTRAINT_VIOLATED,
            message=constraint_message(c),
            constraint=c.kind.value,
        )
        for c in failed_constraints(type_.constraints, value)
    ]


def _key_path_element(key: Any) -> str | int:
    if isinstance(key, (str, int)) and not isinstance(key, bool):
        return key
    return str(key)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_value(
    type_: CanonicalType,
    value: Any,
    path: Path,
    context: ValueContext,
) -> tuple[Any, list[ValidationError]]:
    """Validate *value* against *type_*.

    Returns
    -------
    tuple
        ``(validated_value, errors)``.  The validated value is a fresh list
        or dict for arrays and maps and the nested pipeline's output for
        schema references; it is only meaningful when ``errors`` is empty.
    """
    if isinstance(type_, Primitive):
        if not matches_primitive(type_.kind, value):
            return value, _mismatch(type_, value, path)
        if context.shape_only:
            return value, []
        return value, _constraint_errors(type_, value, path)

    if isinstance(type_, Array):
        if not isinstance(value, (list, tuple)):
            return value, _mismatch(type_, value, path)
        errors = [] if context.shape_only else _constraint_errors(type_, value, path)
        items: list[Any] = []
        for index, item in enumerate(value):
            checked, item_errors = validate_value(type_.element, item, (*path, index), context)
            errors.extend(item_errors)
            items.append(checked)
        return items, errors

    if isinstance(type_, MapType):
        if not isinstance(value, Mapping):
            return value, _mismatch(type_, value, path)
        errors = [] if context.shape_only else _constraint_errors(type_, dict(value), path)
        entries: dict[Any, Any] = {}
        for key, item in value.items():
            entry_path = (*path, _key_path_element(key))
            _, key_errors = validate_value(type_.key, key, entry_path, context)
            checked, item_errors = validate_value(type_.value, item, entry_path, context)
            errors.extend(key_errors)
            errors.extend(item_errors)
            entries[key] = checked
        return entries, errors

    if isinstance(type_, Union):
        for variant in type_.variants:
            checked, variant_errors = validate_value(variant, value, path, context)
            if not variant_errors:
                return checked, []
        return value, _mismatch(type_, value, path)

    if isinstance(type_, SchemaRef):
        target = lookup_ref(type_.target_id, type_.target, context.owner, context.catalog)
        if target is None:
            return value, [
                ValidationError(
                    path=list(path),
                    kind=ErrorKind.TYPE_MISMATCH,
                    message=f"schema reference '{type_.target_id}' cannot be resolved",
                )
            ]
        if not isinstance(value, Mapping):
            return value, _mismatch(type_, value, path)
        if context.shape_only or context.run_nested is None:
            return dict(value), []
        data, errors = context.run_nested(target, value, path)
        return data, errors

    raise TypeError(f"Unknown canonical type: {type_!r}")
