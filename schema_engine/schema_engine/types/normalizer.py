"""Expansion of author-supplied type expressions into canonical types.

The normaliser accepts several shorthand spellings and produces one of the
canonical dataclasses from :mod:`schema_engine.types.canonical`:

* primitive identifiers: ``"string"``, ``"int"``, ``str``, ``None`` ...
* ``[inner]``: an array of ``inner``
* ``{key: value}``: a map (exactly one entry)
* tagged tuples: ``("array", inner)``, ``("map", key, value)``,
  ``("union", [a, b])``, ``("ref", "Name")``, each optionally followed by a
  constraint mapping
* builder helpers (``string(min_length=2)`` ...)
* a built field registry, which becomes a :class:`SchemaRef`

Constraints are checked against the type kind exactly once, here.  A
pairing such as ``pattern`` on ``integer`` is a schema-authoring error and
raises :class:`NormalizationError`; it is never deferred to instance
validation.
"""

from __future__ import annotations

import logging
import numbers
import re
from collections.abc import Mapping
from typing import Any

from schema_engine.types.canonical import (
    CONSTRAINT_ALIASES,
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
)

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Raised when a schema cannot be built from its definitions.

    Covers field-name collisions, constraint/type mismatches, unreachable
    hook or schema references and invalid defaults.  Always raised at
    build time, never during instance validation.
    """


class NormalizationError(BuildError):
    """Raised when a type expression cannot be normalised."""


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

_PRIMITIVE_NAMES: dict[str, PrimitiveKind] = {
    "string": PrimitiveKind.STRING,
    "str": PrimitiveKind.STRING,
    "integer": PrimitiveKind.INTEGER,
    "int": PrimitiveKind.INTEGER,
    "float": PrimitiveKind.FLOAT,
    "number": PrimitiveKind.FLOAT,
    "boolean": PrimitiveKind.BOOLEAN,
    "bool": PrimitiveKind.BOOLEAN,
    "any": PrimitiveKind.ANY,
    "null": PrimitiveKind.NULL,
    "none": PrimitiveKind.NULL,
}

_PRIMITIVE_PYTHON_TYPES: dict[Any, PrimitiveKind] = {
    str: PrimitiveKind.STRING,
    int: PrimitiveKind.INTEGER,
    float: PrimitiveKind.FLOAT,
    bool: PrimitiveKind.BOOLEAN,
    type(None): PrimitiveKind.NULL,
    Any: PrimitiveKind.ANY,
    object: PrimitiveKind.ANY,
}

_LENGTH_BOUNDS = frozenset(
    {
        ConstraintKind.MIN_LENGTH,
        ConstraintKind.MAX_LENGTH,
        ConstraintKind.MIN_ITEMS,
        ConstraintKind.MAX_ITEMS,
        ConstraintKind.MIN_PROPERTIES,
        ConstraintKind.MAX_PROPERTIES,
    }
)

_COMPARISONS = frozenset({ConstraintKind.GT, ConstraintKind.LT, ConstraintKind.GTEQ, ConstraintKind.LTEQ})

# Which constraint kinds each canonical type kind accepts.
_PRIMITIVE_CONSTRAINTS: dict[PrimitiveKind, frozenset[ConstraintKind]] = {
    PrimitiveKind.STRING: frozenset(
        {ConstraintKind.MIN_LENGTH, ConstraintKind.MAX_LENGTH, ConstraintKind.PATTERN, ConstraintKind.CHOICES}
    ),
    PrimitiveKind.INTEGER: _COMPARISONS | {ConstraintKind.CHOICES},
    PrimitiveKind.FLOAT: _COMPARISONS | {ConstraintKind.CHOICES},
    PrimitiveKind.BOOLEAN: frozenset({ConstraintKind.CHOICES}),
    PrimitiveKind.ANY: frozenset({ConstraintKind.CHOICES}),
    PrimitiveKind.NULL: frozenset(),
}

_ARRAY_CONSTRAINTS = frozenset({ConstraintKind.MIN_ITEMS, ConstraintKind.MAX_ITEMS})
_MAP_CONSTRAINTS = frozenset({ConstraintKind.MIN_PROPERTIES, ConstraintKind.MAX_PROPERTIES})
_UNION_CONSTRAINTS: frozenset[ConstraintKind] = frozenset()


# ---------------------------------------------------------------------------
# Constraint parsing
# ---------------------------------------------------------------------------


def constraint_kind(name: str | ConstraintKind) -> ConstraintKind:
    """Map an author-facing constraint name (or alias) to its kind.

    Raises
    ------
    NormalizationError
        If *name* is not a known constraint.
    """
    if isinstance(name, ConstraintKind):
        return name
    if name in CONSTRAINT_ALIASES:
        return CONSTRAINT_ALIASES[name]
    try:
        return ConstraintKind(name)
    except ValueError:
        raise NormalizationError(f"Unknown constraint '{name}'.") from None


def is_constraint_name(name: str) -> bool:
    """Return True if *name* spells a constraint (directly or via alias)."""
    if name in CONSTRAINT_ALIASES:
        return True
    return name in ConstraintKind._value2member_map_


def parse_constraints(
    raw: Mapping[str, Any] | tuple[tuple[str, Any], ...] | list[Any] | None,
    messages: Mapping[str, str] | None = None,
) -> tuple[Constraint, ...]:
    """Turn raw ``name -> value`` pairs into :class:`Constraint` objects.

    Already-built :class:`Constraint` instances in a list pass through.
    ``messages`` maps constraint names (or aliases) to custom failure
    messages.
    """
    if not raw:
        return ()

    custom: dict[ConstraintKind, str] = {}
    for name, message in (messages or {}).items():
        custom[constraint_kind(name)] = message

    if isinstance(raw, Mapping):
        items: list[Any] = list(raw.items())
    else:
        items = list(raw)

    constraints: list[Constraint] = []
    for item in items:
        if isinstance(item, Constraint):
            if item.message is None and item.kind in custom:
                item = Constraint(kind=item.kind, value=item.value, message=custom[item.kind])
            constraints.append(item)
            continue
        name, value = item
        kind = constraint_kind(name)
        constraints.append(Constraint(kind=kind, value=_freeze_constraint_value(kind, value), message=custom.get(kind)))
    return tuple(constraints)


def _freeze_constraint_value(kind: ConstraintKind, value: Any) -> Any:
    if kind == ConstraintKind.CHOICES and isinstance(value, (list, set, frozenset)):
        return tuple(value)
    if kind == ConstraintKind.PATTERN and isinstance(value, re.Pattern):
        return value.pattern
    return value


def _check_constraint(constraint: Constraint, allowed: frozenset[ConstraintKind], type_label: str) -> None:
    kind = constraint.kind
    if kind not in allowed:
        raise NormalizationError(f"Constraint '{kind.value}' is not valid for type {type_label}.")

    value = constraint.value
    if kind in _LENGTH_BOUNDS:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise NormalizationError(
                f"Constraint '{kind.value}' on {type_label} requires a non-negative integer, got {value!r}."
            )
    elif kind in _COMPARISONS:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise NormalizationError(f"Constraint '{kind.value}' on {type_label} requires a number, got {value!r}.")
    elif kind == ConstraintKind.PATTERN:
        if not isinstance(value, str):
            raise NormalizationError(f"Constraint 'pattern' on {type_label} requires a string, got {value!r}.")
        try:
            re.compile(value)
        except re.error as exc:
            raise NormalizationError(f"Constraint 'pattern' on {type_label} is not a valid regex: {exc}") from exc
    elif kind == ConstraintKind.CHOICES:
        if not isinstance(value, tuple) or not value:
            raise NormalizationError(
                f"Constraint 'choices' on {type_label} requires a non-empty list of values, got {value!r}."
            )


def _check_bounds_order(constraints: tuple[Constraint, ...], type_label: str) -> None:
    by_kind = {c.kind: c.value for c in constraints}
    for low, high in (
        (ConstraintKind.MIN_LENGTH, ConstraintKind.MAX_LENGTH),
        (ConstraintKind.MIN_ITEMS, ConstraintKind.MAX_ITEMS),
        (ConstraintKind.MIN_PROPERTIES, ConstraintKind.MAX_PROPERTIES),
    ):
        if low in by_kind and high in by_kind and by_kind[low] > by_kind[high]:
            raise NormalizationError(
                f"Constraint '{low.value}' ({by_kind[low]}) exceeds '{high.value}' ({by_kind[high]}) on {type_label}."
            )


def _allowed_constraints(canonical: CanonicalType) -> frozenset[ConstraintKind]:
    if isinstance(canonical, Primitive):
        return _PRIMITIVE_CONSTRAINTS[canonical.kind]
    if isinstance(canonical, Array):
        return _ARRAY_CONSTRAINTS
    if isinstance(canonical, MapType):
        return _MAP_CONSTRAINTS
    if isinstance(canonical, Union):
        return _UNION_CONSTRAINTS
    if isinstance(canonical, SchemaRef):
        return frozenset()
    raise TypeError(f"Unknown canonical type: {canonical!r}")


def _with_constraints(canonical: CanonicalType, extra: tuple[Constraint, ...]) -> CanonicalType:
    """Return *canonical* with *extra* appended and checked."""
    if not extra:
        return canonical
    if isinstance(canonical, SchemaRef):
        raise NormalizationError(
            f"Constraints cannot be attached to schema reference '{canonical.target_id}': "
            f"{', '.join(c.kind.value for c in extra)}."
        )

    allowed = _allowed_constraints(canonical)
    label = canonical.describe()
    for constraint in extra:
        _check_constraint(constraint, allowed, label)
    merged = canonical.constraints + extra
    _check_bounds_order(merged, label)

    if isinstance(canonical, Primitive):
        return Primitive(kind=canonical.kind, constraints=merged)
    if isinstance(canonical, Array):
        return Array(element=canonical.element, constraints=merged)
    if isinstance(canonical, MapType):
        return MapType(key=canonical.key, value=canonical.value, constraints=merged)
    if isinstance(canonical, Union):
        return Union(variants=canonical.variants, constraints=merged)
    raise TypeError(f"Unknown canonical type: {canonical!r}")


# ---------------------------------------------------------------------------
# Canonical input
# ---------------------------------------------------------------------------


def _verify_canonical(canonical: CanonicalType) -> None:
    """Check constraints throughout an already-canonical tree."""
    if isinstance(canonical, SchemaRef):
        if not canonical.target_id:
            raise NormalizationError("Schema reference requires a non-empty target name.")
        return

    allowed = _allowed_constraints(canonical)
    label = canonical.describe()
    for constraint in canonical.constraints:
        _check_constraint(constraint, allowed, label)
    _check_bounds_order(canonical.constraints, label)

    if isinstance(canonical, Array):
        _verify_canonical(canonical.element)
    elif isinstance(canonical, MapType):
        _verify_canonical(canonical.key)
        _verify_canonical(canonical.value)
    elif isinstance(canonical, Union):
        if not canonical.variants:
            raise NormalizationError("Union requires at least one variant.")
        for variant in canonical.variants:
            _verify_canonical(variant)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize(
    type_expr: Any,
    constraints: Mapping[str, Any] | tuple[Constraint, ...] | None = None,
    *,
    messages: Mapping[str, str] | None = None,
) -> CanonicalType:
    """Expand *type_expr* into a canonical type.

    Parameters
    ----------
    type_expr:
        Any supported type expression (see module docstring).
    constraints:
        Optional extra constraints attached to the top-level type, either as
        a ``name -> value`` mapping or as built :class:`Constraint` objects.
    messages:
        Optional custom failure messages keyed by constraint name.

    Returns
    -------
    CanonicalType
        The canonical type.  Already-canonical input without extra
        constraints is returned unchanged (the same object).

    Raises
    ------
    NormalizationError
        If the expression is not understood or a constraint does not fit
        the type kind.
    """
    extra = parse_constraints(constraints, messages)
    canonical = _with_constraints(_expand(type_expr), extra)
    if messages:
        canonical = _apply_messages(canonical, messages)
    return canonical


def _apply_messages(canonical: CanonicalType, messages: Mapping[str, str]) -> CanonicalType:
    """Attach custom messages to top-level constraints that have none."""
    custom = {constraint_kind(name): message for name, message in messages.items()}
    constraints = tuple(
        Constraint(kind=c.kind, value=c.value, message=custom[c.kind])
        if c.message is None and c.kind in custom
        else c
        for c in canonical.constraints
    )
    if isinstance(canonical, Primitive):
        return Primitive(kind=canonical.kind, constraints=constraints)
    if isinstance(canonical, Array):
        return Array(element=canonical.element, constraints=constraints)
    if isinstance(canonical, MapType):
        return MapType(key=canonical.key, value=canonical.value, constraints=constraints)
    if isinstance(canonical, Union):
        return Union(variants=canonical.variants, constraints=constraints)
    return canonical


def _expand(type_expr: Any) -> CanonicalType:
    if isinstance(type_expr, (Primitive, Array, MapType, Union, SchemaRef)):
        _verify_canonical(type_expr)
        return type_expr

    if isinstance(type_expr, TypeSpec):
        base = _expand(type_expr.base)
        return _with_constraints(base, parse_constraints(type_expr.constraints))

    if isinstance(type_expr, PrimitiveKind):
        return Primitive(kind=type_expr)

    if isinstance(type_expr, str):
        kind = _PRIMITIVE_NAMES.get(type_expr.strip().lower())
        if kind is None:
            raise NormalizationError(
                f"Unknown type name '{type_expr}'. Expected one of: {sorted(set(_PRIMITIVE_NAMES))}."
            )
        return Primitive(kind=kind)

    if type_expr is None:
        return Primitive(kind=PrimitiveKind.NULL)

    try:
        if type_expr in _PRIMITIVE_PYTHON_TYPES:
            return Primitive(kind=_PRIMITIVE_PYTHON_TYPES[type_expr])
    except TypeError:
        # Unhashable expressions (lists, dicts) fall through.
        pass

    if isinstance(type_expr, list):
        if len(type_expr) != 1:
            raise NormalizationError(f"Array shorthand takes exactly one element type, got {type_expr!r}.")
        return Array(element=_expand(type_expr[0]))

    if isinstance(type_expr, dict):
        if len(type_expr) != 1:
            raise NormalizationError(f"Map shorthand takes exactly one key/value pair, got {type_expr!r}.")
        ((key_expr, value_expr),) = type_expr.items()
        return MapType(key=_expand(key_expr), value=_expand(value_expr))

    if isinstance(type_expr, tuple):
        return _expand_tagged(type_expr)

    # Built registries are referenced by name and carried on the ref.
    name = getattr(type_expr, "name", None)
    if isinstance(name, str) and hasattr(type_expr, "fields") and hasattr(type_expr, "derived_hooks"):
        return SchemaRef(target_id=name, target=type_expr)

    raise NormalizationError(f"Unsupported type expression: {type_expr!r}.")


def _expand_tagged(type_expr: tuple[Any, ...]) -> CanonicalType:
    if not type_expr or not isinstance(type_expr[0], str):
        raise NormalizationError(f"Tagged type expression must start with a tag, got {type_expr!r}.")

    tag = type_expr[0].lower()
    args = type_expr[1:]

    if tag == "array":
        if len(args) not in (1, 2):
            raise NormalizationError(f"('array', element[, constraints]) expected, got {type_expr!r}.")
        canonical: CanonicalType = Array(element=_expand(args[0]))
        trailing = args[1] if len(args) == 2 else None
    elif tag == "map":
        if len(args) not in (2, 3):
            raise NormalizationError(f"('map', key, value[, constraints]) expected, got {type_expr!r}.")
        canonical = MapType(key=_expand(args[0]), value=_expand(args[1]))
        trailing = args[2] if len(args) == 3 else None
    elif tag == "union":
        if len(args) not in (1, 2) or not isinstance(args[0], (list, tuple)):
            raise NormalizationError(f"('union', [variants][, constraints]) expected, got {type_expr!r}.")
        if not args[0]:
            raise NormalizationError("Union requires at least one variant.")
        canonical = Union(variants=tuple(_expand(v) for v in args[0]))
        trailing = args[1] if len(args) == 2 else None
    elif tag == "ref":
        if len(args) != 1 or not isinstance(args[0], str) or not args[0]:
            raise NormalizationError(f"('ref', name) expected, got {type_expr!r}.")
        return SchemaRef(target_id=args[0])
    elif tag in _PRIMITIVE_NAMES:
        # ("string", {"min_length": 1}) style.
        if len(args) > 1:
            raise NormalizationError(f"({tag!r}[, constraints]) expected, got {type_expr!r}.")
        canonical = Primitive(kind=_PRIMITIVE_NAMES[tag])
        trailing = args[0] if args else None
    else:
        raise NormalizationError(f"Unknown type tag '{type_expr[0]}'.")

    if trailing is not None and not isinstance(trailing, Mapping):
        raise NormalizationError(f"Constraints must be a mapping, got {trailing!r}.")
    return _with_constraints(canonical, parse_constraints(trailing))
