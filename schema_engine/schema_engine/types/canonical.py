"""Canonical type representation shared by every engine component.

Every author-supplied type expression is normalised into one of the frozen
dataclasses below.  The set is closed: the normaliser, the value validator
and the JSON Schema type mapper each dispatch over exactly these five
variants and raise :class:`TypeError` on anything else.

All instances are immutable and hashable, so canonical types can be shared
freely between registries and across threads.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------


class PrimitiveKind(str, enum.Enum):
    """Scalar kinds understood by the engine."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ANY = "any"
    NULL = "null"


class ConstraintKind(str, enum.Enum):
    """Named, parameterised predicates that can be bound to a type."""

    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    PATTERN = "pattern"
    GT = "gt"
    LT = "lt"
    GTEQ = "gteq"
    LTEQ = "lteq"
    CHOICES = "choices"
    MIN_ITEMS = "min_items"
    MAX_ITEMS = "max_items"
    MIN_PROPERTIES = "min_properties"
    MAX_PROPERTIES = "max_properties"


# Author-facing spellings accepted in field options.
CONSTRAINT_ALIASES: dict[str, ConstraintKind] = {
    "format": ConstraintKind.PATTERN,
    "regex": ConstraintKind.PATTERN,
    "ge": ConstraintKind.GTEQ,
    "le": ConstraintKind.LTEQ,
    "enum": ConstraintKind.CHOICES,
}


# ---------------------------------------------------------------------------
# Constraint
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Constraint:
    """A single constraint bound to a canonical type.

    ``message`` overrides the default failure message produced by the
    constraint engine.
    """

    kind: ConstraintKind
    value: Any
    message: str | None = None

    def __str__(self) -> str:
        return f"{self.kind.value}={self.value!r}"


# ---------------------------------------------------------------------------
# Canonical type variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Primitive:
    """A scalar type such as ``string`` or ``integer``."""

    kind: PrimitiveKind
    constraints: tuple[Constraint, ...] = ()

    def describe(self) -> str:
        return self.kind.value


@dataclass(frozen=True, slots=True)
class Array:
    """A homogeneous list whose items share one element type."""

    element: CanonicalType
    constraints: tuple[Constraint, ...] = ()

    def describe(self) -> str:
        return f"array[{self.element.describe()}]"


@dataclass(frozen=True, slots=True)
class MapType:
    """A mapping with uniformly typed keys and values."""

    key: CanonicalType
    value: CanonicalType
    constraints: tuple[Constraint, ...] = ()

    def describe(self) -> str:
        return f"map[{self.key.describe()}, {self.value.describe()}]"


@dataclass(frozen=True, slots=True)
class Union:
    """A value matching any one of ``variants``; the first match wins."""

    variants: tuple[CanonicalType, ...]
    constraints: tuple[Constraint, ...] = ()

    def describe(self) -> str:
        return "union[" + ", ".join(v.describe() for v in self.variants) + "]"


@dataclass(frozen=True, slots=True)
class SchemaRef:
    """A reference to another field registry, identified by name.

    ``target`` optionally carries the registry object itself.  It is
    excluded from ``__eq__`` / ``__hash__`` so two references to the same
    name compare equal whether or not they were bound eagerly.  Refs that
    carry no target are late-bound through the owning registry (self
    reference) or its schema catalog.
    """

    target_id: str
    target: Any = field(default=None, repr=False, compare=False, hash=False)

    @property
    def constraints(self) -> tuple[Constraint, ...]:
        return ()

    def describe(self) -> str:
        return f"ref[{self.target_id}]"


CanonicalType = Primitive | Array | MapType | Union | SchemaRef

CANONICAL_TYPES: tuple[type, ...] = (Primitive, Array, MapType, Union, SchemaRef)


def is_canonical(value: object) -> bool:
    """Return True if *value* is one of the canonical type variants."""
    return isinstance(value, CANONICAL_TYPES)


# ---------------------------------------------------------------------------
# Builder helpers
# ---------------------------------------------------------------------------
#
# These return *un-normalised* canonical instances carrying raw constraint
# keywords; :func:`schema_engine.types.normalizer.normalize` checks and
# canonicalises them.  They exist so authors can write
# ``string(min_length=2)`` instead of hand-assembling dataclasses.


@dataclass(frozen=True, slots=True)
class TypeSpec:
    """An author-level type expression with attached constraint keywords."""

    base: Any
    constraints: tuple[tuple[str, Any], ...] = ()


def _spec(base: Any, constraints: dict[str, Any]) -> TypeSpec:
    return TypeSpec(base=base, constraints=tuple(constraints.items()))


def string(**constraints: Any) -> TypeSpec:
    return _spec(PrimitiveKind.STRING, constraints)


def integer(**constraints: Any) -> TypeSpec:
    return _spec(PrimitiveKind.INTEGER, constraints)


def number(**constraints: Any) -> TypeSpec:
    return _spec(PrimitiveKind.FLOAT, constraints)


def boolean(**constraints: Any) -> TypeSpec:
    return _spec(PrimitiveKind.BOOLEAN, constraints)


def any_type(**constraints: Any) -> TypeSpec:
    return _spec(PrimitiveKind.ANY, constraints)


def null() -> TypeSpec:
    return TypeSpec(base=PrimitiveKind.NULL)


def array(element: Any, **constraints: Any) -> TypeSpec:
    return _spec(("array", element), constraints)


def map_of(key: Any, value: Any, **constraints: Any) -> TypeSpec:
    return _spec(("map", key, value), constraints)


def union(*variants: Any, **constraints: Any) -> TypeSpec:
    return _spec(("union", list(variants)), constraints)


def ref(name: str) -> SchemaRef:
    """Reference a registry by name (resolved via self-name or catalog)."""
    return SchemaRef(target_id=name)
