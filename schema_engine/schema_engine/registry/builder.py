"""Schema builder: the single path from field definitions to a registry.

:func:`build` normalises every field type, resolves every hook, checks
defaults and schema references, and returns an immutable
:class:`FieldRegistry`.  Every authoring mistake it can detect raises
:class:`BuildError` here rather than surfacing during validation.

Example::

    from schema_engine.registry import build
    from schema_engine.types import integer, string

    user = build(
        [
            ("name", string(min_length=2)),
            ("age", integer(gt=0), {"required": False}),
        ],
        name="User",
        strict=True,
    )
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from schema_engine.pipeline.materializer import build_container
from schema_engine.pipeline.validator import check_value
from schema_engine.registry.catalog import SchemaCatalog, lookup_ref
from schema_engine.registry.hooks import make_hook_spec
from schema_engine.registry.models import (
    MISSING,
    DerivedFieldDef,
    FieldDescriptor,
    FieldRegistry,
    HookKind,
    HookSpec,
)
from schema_engine.types.canonical import Array, CanonicalType, MapType, Primitive, SchemaRef, Union
from schema_engine.types.normalizer import BuildError, is_constraint_name, normalize

if TYPE_CHECKING:
    from schema_engine.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class BuildOptions(BaseModel):
    """Registry-level options for :func:`build`."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, extra="forbid")

    name: str = Field(default="Schema", min_length=1, description="Registry name; also its schema reference name.")
    title: str | None = Field(default=None, description="Title emitted into JSON Schema.")
    description: str | None = Field(default=None, description="Description emitted into JSON Schema.")
    strict: bool = Field(
        default=False,
        description="Reject unknown keys and emit additionalProperties: false.",
    )
    materialize: bool = Field(default=False, description="Build a typed container class for validated data.")
    cross_field_hooks: list[Any] = Field(
        default_factory=list,
        description="Cross-field hooks, run in this order after field validation.",
    )
    derived_fields: list[Any] = Field(
        default_factory=list,
        description="Derived field declarations: (name, type, hook[, options]) tuples or DerivedFieldDef.",
    )
    catalog: SchemaCatalog | None = Field(
        default=None,
        description="Catalog used to late-bind schema references by name.",
    )
    hook_namespace: Any = Field(
        default=None,
        description="Object, module or mapping used to resolve hooks given by bare name.",
    )

    @classmethod
    def preset(cls, name: str, **overrides: Any) -> BuildOptions:
        """Return options for a named preset.

        ``strict`` rejects unknown keys, ``lenient`` drops them, ``api`` is
        strict and materializes a container, ``llm_output`` is strict for
        schemas handed to structured-output producers.

        Raises
        ------
        ValueError
            If *name* is not a known preset.
        """
        presets: dict[str, dict[str, Any]] = {
            "strict": {"strict": True},
            "lenient": {"strict": False},
            "api": {"strict": True, "materialize": True},
            "llm_output": {"strict": True, "materialize": False},
        }
        if name not in presets:
            raise ValueError(f"Unknown preset '{name}'. Expected one of: {sorted(presets)}.")
        return cls(**{**presets[name], **overrides})

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> BuildOptions:
        """Return options whose defaults come from *settings*."""
        values: dict[str, Any] = {
            "strict": settings.strict_default,
            "materialize": settings.materialize_default,
        }
        return cls(**{**values, **overrides})

    def merged(self, **overrides: Any) -> BuildOptions:
        """Return a copy with *overrides* applied and validated."""
        if not overrides:
            return self
        values = {name: getattr(self, name) for name in type(self).model_fields}
        return type(self)(**{**values, **overrides})


# ---------------------------------------------------------------------------
# Field definitions
# ---------------------------------------------------------------------------

_FIELD_OPTIONS = frozenset(
    {"required", "optional", "default", "description", "example", "examples", "extra", "messages"}
)


def _split_options(name: str, raw: Mapping[str, Any] | None) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split field options into (metadata options, constraint keywords)."""
    metadata: dict[str, Any] = {}
    constraints: dict[str, Any] = {}
    for key, value in (raw or {}).items():
        if key in _FIELD_OPTIONS:
            metadata[key] = value
        elif is_constraint_name(key):
            constraints[key] = value
        else:
            raise BuildError(f"Field '{name}': unknown option '{key}'.")
    return metadata, constraints


def _examples(name: str, metadata: dict[str, Any]) -> tuple[Any, ...]:
    examples: list[Any] = []
    if "example" in metadata:
        examples.append(metadata["example"])
    if "examples" in metadata:
        raw = metadata["examples"]
        if not isinstance(raw, (list, tuple)):
            raise BuildError(f"Field '{name}': 'examples' must be a list.")
        examples.extend(raw)
    return tuple(examples)


def _extra(name: str, metadata: dict[str, Any]) -> dict[str, Any]:
    raw = metadata.get("extra") or {}
    if not isinstance(raw, Mapping):
        raise BuildError(f"Field '{name}': 'extra' must be a mapping.")
    return dict(raw)


def _unpack_definition(definition: Any, index: int) -> tuple[str, Any, Mapping[str, Any] | None]:
    if not isinstance(definition, (tuple, list)) or len(definition) not in (2, 3):
        raise BuildError(
            f"Field definition #{index + 1} must be (name, type) or (name, type, options), got {definition!r}."
        )
    name = definition[0]
    options = definition[2] if len(definition) == 3 else None
    if not isinstance(name, str) or not name:
        raise BuildError(f"Field definition #{index + 1}: name must be a non-empty string, got {name!r}.")
    if options is not None and not isinstance(options, Mapping):
        raise BuildError(f"Field '{name}': options must be a mapping, got {type(options).__name__}.")
    return name, definition[1], options


def _build_field(name: str, type_expr: Any, raw_options: Mapping[str, Any] | None) -> FieldDescriptor:
    metadata, constraints = _split_options(name, raw_options)
    try:
        canonical = normalize(type_expr, constraints, messages=metadata.get("messages"))
    except BuildError as exc:
        raise type(exc)(f"Field '{name}': {exc}") from exc

    has_default = "default" in metadata
    if metadata.get("optional") and metadata.get("required"):
        raise BuildError(f"Field '{name}': cannot be both required and optional.")
    if "required" in metadata:
        required = bool(metadata["required"])
    elif metadata.get("optional"):
        required = False
    else:
        required = not has_default
    if required and has_default:
        raise BuildError(f"Field '{name}': a required field cannot declare a default.")

    return FieldDescriptor(
        name=name,
        type=canonical,
        required=required,
        default=metadata["default"] if has_default else MISSING,
        description=metadata.get("description"),
        examples=_examples(name, metadata),
        extra=_extra(name, metadata),
    )


def _unpack_derived(definition: Any, index: int) -> DerivedFieldDef:
    if isinstance(definition, DerivedFieldDef):
        return definition
    if not isinstance(definition, (tuple, list)) or len(definition) not in (3, 4):
        raise BuildError(
            f"Derived field #{index + 1} must be (name, type, hook) or (name, type, hook, options), "
            f"got {definition!r}."
        )
    name, type_expr, hook = definition[0], definition[1], definition[2]
    options = dict(definition[3]) if len(definition) == 4 else {}
    if not isinstance(name, str) or not name:
        raise BuildError(f"Derived field #{index + 1}: name must be a non-empty string, got {name!r}.")

    metadata, constraints = _split_options(name, options)
    for forbidden in ("required", "optional", "default"):
        if forbidden in metadata:
            raise BuildError(f"Derived field '{name}': option '{forbidden}' is not allowed.")
    return DerivedFieldDef(
        name=name,
        type=type_expr,
        hook=hook,
        description=metadata.get("description"),
        examples=_examples(name, metadata),
        extra=_extra(name, metadata),
        constraints=constraints,
    )


def _normalize_derived(definition: DerivedFieldDef) -> CanonicalType:
    try:
        return normalize(definition.type, definition.constraints or None)
    except BuildError as exc:
        raise type(exc)(f"Derived field '{definition.name}': {exc}") from exc


# ---------------------------------------------------------------------------
# Reference checks
# ---------------------------------------------------------------------------


def _collect_refs(type_: CanonicalType, found: list[SchemaRef]) -> None:
    if isinstance(type_, SchemaRef):
        found.append(type_)
    elif isinstance(type_, Array):
        _collect_refs(type_.element, found)
    elif isinstance(type_, MapType):
        _collect_refs(type_.key, found)
        _collect_refs(type_.value, found)
    elif isinstance(type_, Union):
        for variant in type_.variants:
            _collect_refs(variant, found)
    elif not isinstance(type_, Primitive):
        raise TypeError(f"Unknown canonical type: {type_!r}")


def _check_refs(registry: FieldRegistry) -> None:
    refs: list[SchemaRef] = []
    for descriptor in registry.fields:
        _collect_refs(descriptor.type, refs)

    for reference in refs:
        if lookup_ref(reference.target_id, reference.target, registry) is not None:
            continue
        if registry.catalog is not None:
            # Late binding: the target may be registered after this build.
            logger.debug("Schema %s: reference %s left to catalog", registry.name, reference.target_id)
            continue
        raise BuildError(
            f"Schema '{registry.name}' references '{reference.target_id}', which is neither the schema "
            f"itself, an embedded registry, nor resolvable without a catalog."
        )


def _check_defaults(registry: FieldRegistry) -> None:
    for descriptor in registry.regular_fields:
        if not descriptor.has_default:
            continue
        _, errors = check_value(descriptor.type, descriptor.default, owner=registry)
        if errors:
            detail = "; ".join(e.format() for e in errors)
            raise BuildError(f"Field '{descriptor.name}': default {descriptor.default!r} is invalid: {detail}")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build(
    field_defs: Sequence[Any],
    options: BuildOptions | None = None,
    **overrides: Any,
) -> FieldRegistry:
    """Build an immutable :class:`FieldRegistry`.

    Parameters
    ----------
    field_defs:
        Ordered ``(name, type_expr)`` or ``(name, type_expr, options)``
        definitions.  Field options are ``required``, ``optional``,
        ``default``, ``description``, ``example``, ``examples``, ``extra``,
        ``messages`` and any constraint keyword.
    options:
        Registry-level :class:`BuildOptions`.
    **overrides:
        Individual option values applied on top of *options*.

    Returns
    -------
    FieldRegistry
        The built registry.

    Raises
    ------
    BuildError
        On duplicate names, constraint/type mismatches, unresolvable hooks
        or schema references, and invalid defaults.
    """
    try:
        opts = (options or BuildOptions()).merged(**overrides)
    except PydanticValidationError as exc:
        raise BuildError(f"Invalid build options: {exc}") from exc

    seen: set[str] = set()
    descriptors: list[FieldDescriptor] = []
    for index, definition in enumerate(field_defs):
        name, type_expr, raw_options = _unpack_definition(definition, index)
        if name in seen:
            raise BuildError(f"Schema '{opts.name}': duplicate field name '{name}'.")
        seen.add(name)
        descriptors.append(_build_field(name, type_expr, raw_options))

    cross_field_hooks: list[HookSpec] = [
        make_hook_spec(hook, opts.name, HookKind.CROSS_FIELD, position, opts.hook_namespace)
        for position, hook in enumerate(opts.cross_field_hooks, start=1)
    ]

    derived_hooks: list[HookSpec] = []
    for position, raw in enumerate(opts.derived_fields, start=1):
        definition = _unpack_derived(raw, position - 1)
        if definition.name in seen:
            raise BuildError(f"Schema '{opts.name}': derived field '{definition.name}' collides with another field.")
        seen.add(definition.name)
        descriptors.append(
            FieldDescriptor(
                name=definition.name,
                type=_normalize_derived(definition),
                required=False,
                description=definition.description,
                examples=tuple(definition.examples),
                derived=True,
                extra=dict(definition.extra),
            )
        )
        derived_hooks.append(
            make_hook_spec(
                definition.hook,
                opts.name,
                HookKind.DERIVED,
                position,
                opts.hook_namespace,
                field_name=definition.name,
            )
        )

    registry = FieldRegistry(
        name=opts.name,
        fields=tuple(descriptors),
        cross_field_hooks=tuple(cross_field_hooks),
        derived_hooks=tuple(derived_hooks),
        title=opts.title,
        description=opts.description,
        strict=opts.strict,
        catalog=opts.catalog,
    )
    _check_refs(registry)
    _check_defaults(registry)

    if opts.materialize:
        registry = dataclasses.replace(registry, container=build_container(opts.name, registry.fields))

    logger.debug(
        "Built schema %s: %d field(s), %d cross-field hook(s), %d derived field(s)",
        registry.name,
        len(registry.regular_fields),
        len(registry.cross_field_hooks),
        len(registry.derived_hooks),
    )
    return registry
