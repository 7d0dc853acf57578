"""Immutable data models produced by the schema builder.

A :class:`FieldRegistry` is the unit every other component consumes: the
validation pipeline walks its fields and hooks, the JSON Schema generator
emits them and the schema catalog stores them by name.  Registries are
built once by :func:`schema_engine.registry.builder.build` and never
mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from schema_engine.types.canonical import CanonicalType

# ---------------------------------------------------------------------------
# Sentinel for "no default"
# ---------------------------------------------------------------------------


class _Missing:
    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One declared field of a registry.

    ``derived`` is True only for computed fields: they are never required
    and callers can never set them.
    """

    name: str
    type: CanonicalType
    required: bool = True
    default: Any = field(default=MISSING, compare=False, hash=False)
    description: str | None = None
    examples: tuple[Any, ...] = field(default=(), hash=False)
    derived: bool = False
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


class HookKind(str, Enum):
    """Stage a hook runs in."""

    CROSS_FIELD = "cross_field"
    DERIVED = "derived"


@dataclass(frozen=True, slots=True)
class HookSpec:
    """A hook resolved at build time.

    ``identity`` is stable across runs: ``module.qualname`` for named
    functions, a synthesized positional name for lambdas and nested
    functions.  ``field_name`` is set for derived-field hooks only.
    """

    identity: str
    kind: HookKind
    func: Callable[[dict[str, Any]], Any] = field(repr=False, compare=False, hash=False)
    field_name: str | None = None
    anonymous: bool = False

    @property
    def module(self) -> str | None:
        return getattr(self.func, "__module__", None)

    @property
    def function_name(self) -> str:
        return getattr(self.func, "__name__", type(self.func).__name__)


@dataclass(frozen=True, slots=True)
class DerivedFieldDef:
    """Declaration of a derived (computed) field before building.

    ``hook`` may be a callable, a ``"package.module:function"`` string or a
    bare name looked up in the build's hook namespace.
    """

    name: str
    type: Any
    hook: Any
    description: str | None = None
    examples: tuple[Any, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)
    constraints: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, eq=False)
class FieldRegistry:
    """An immutable, ordered collection of fields plus their hooks.

    Field order drives error reporting order and container layout.
    Equality is identity: two separately built registries are distinct
    even when their definitions match.
    """

    name: str
    fields: tuple[FieldDescriptor, ...]
    cross_field_hooks: tuple[HookSpec, ...] = ()
    derived_hooks: tuple[HookSpec, ...] = ()
    title: str | None = None
    description: str | None = None
    strict: bool = False
    container: type | None = field(default=None, repr=False)
    catalog: Any = field(default=None, repr=False)

    # -- lookups ------------------------------------------------------------

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def regular_fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if not f.derived)

    @property
    def derived_fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if f.derived)

    @property
    def required_fields(self) -> list[str]:
        """Names of regular required fields, in declaration order."""
        return [f.name for f in self.fields if f.required and not f.derived]

    def get_field(self, name: str) -> FieldDescriptor | None:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None

    def has_field(self, name: str) -> bool:
        return self.get_field(name) is not None

    @property
    def materialized(self) -> bool:
        return self.container is not None

    def __repr__(self) -> str:
        return f"FieldRegistry(name={self.name!r}, fields={self.field_names!r}, strict={self.strict})"
