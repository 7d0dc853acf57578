"""JSON Schema generation from field registries.

:func:`generate` walks the registry's fields once, recording every schema
reference in a per-call :class:`ReferenceStore`, then drains the store so
each referenced registry is generated (recursively) into the definitions
map.  Derived fields are emitted ``readOnly`` with an ``x-derived-field``
annotation and never appear in ``required``.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from schema_engine.config import DefinitionsKey
from schema_engine.json_schema.reference_store import ReferenceStore
from schema_engine.json_schema.type_mapper import map_type
from schema_engine.json_schema.walker import DEFINITIONS_KEYS
from schema_engine.registry.catalog import SchemaCatalog
from schema_engine.registry.models import FieldDescriptor, FieldRegistry, HookSpec

if TYPE_CHECKING:
    from schema_engine.config import Settings

logger = logging.getLogger(__name__)

DERIVED_FIELD_KEY = "x-derived-field"


class GenerateOptions(BaseModel):
    """Options for :func:`generate`."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, extra="forbid")

    include_derived: bool = Field(default=True, description="Emit derived fields as readOnly properties.")
    definitions_key: DefinitionsKey = Field(
        default=DefinitionsKey.DEFINITIONS,
        description="Key under which referenced schemas are stored.",
    )
    strict: bool | None = Field(
        default=None,
        description="Override the registry's strict flag for additionalProperties.",
    )
    catalog: SchemaCatalog | None = Field(
        default=None,
        description="Fallback catalog for references the registries cannot resolve themselves.",
    )

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> GenerateOptions:
        return cls(**{"definitions_key": settings.definitions_key, **overrides})


# ---------------------------------------------------------------------------
# Field and registry schemas
# ---------------------------------------------------------------------------


def _derived_annotation(spec: HookSpec | None) -> dict[str, Any]:
    if spec is None:
        return {}
    return {"hook": spec.identity, "name": spec.function_name, "module": spec.module}


def _field_schema(
    descriptor: FieldDescriptor,
    registry: FieldRegistry,
    store: ReferenceStore,
    catalog: SchemaCatalog | None,
) -> dict[str, Any]:
    schema = map_type(descriptor.type, store, registry, catalog)
    if descriptor.description:
        schema["description"] = descriptor.description
    if descriptor.has_default:
        schema["default"] = copy.deepcopy(descriptor.default)
    if descriptor.examples:
        schema["examples"] = list(descriptor.examples)
    if descriptor.derived:
        spec = next((h for h in registry.derived_hooks if h.field_name == descriptor.name), None)
        schema["readOnly"] = True
        schema[DERIVED_FIELD_KEY] = _derived_annotation(spec)
    for key, value in descriptor.extra.items():
        schema[key] = copy.deepcopy(value)
    return schema


def _registry_schema(
    registry: FieldRegistry,
    store: ReferenceStore,
    options: GenerateOptions,
) -> dict[str, Any]:
    catalog = registry.catalog if registry.catalog is not None else options.catalog
    schema: dict[str, Any] = {"type": "object"}
    if registry.title:
        schema["title"] = registry.title
    if registry.description:
        schema["description"] = registry.description

    properties: dict[str, Any] = {}
    required: list[str] = []
    for descriptor in registry.fields:
        if descriptor.derived and not options.include_derived:
            continue
        properties[descriptor.name] = _field_schema(descriptor, registry, store, catalog)
        if descriptor.required and not descriptor.derived:
            required.append(descriptor.name)

    schema["properties"] = properties
    schema["required"] = required

    strict = registry.strict if options.strict is None else options.strict
    if strict:
        schema["additionalProperties"] = False
    return schema


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def drain_definitions(store: ReferenceStore, options: GenerateOptions) -> None:
    """Generate every pending reference of *store* into its definitions.

    Generating a definition can record further references, so this loops
    until nothing is pending.
    """
    while pending := store.pending():
        for name in pending:
            store.begin_definition(name)
            store.add_definition(name, _registry_schema(store.registry(name), store, options))


def generate(
    registry: FieldRegistry,
    options: GenerateOptions | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    """Generate a JSON Schema document for *registry*.

    Parameters
    ----------
    registry:
        The registry to describe.
    options:
        Generation options.
    **overrides:
        Individual option values applied on top of *options*.

    Returns
    -------
    dict
        The schema document.  ``definitions`` (or ``$defs``) is present only
        when at least one schema reference was emitted.

    Raises
    ------
    SchemaGenerationError
        If a reference cannot be resolved or two registries share a name.
    """
    opts = options or GenerateOptions()
    if overrides:
        opts = GenerateOptions(**{**{k: getattr(opts, k) for k in GenerateOptions.model_fields}, **overrides})

    store = ReferenceStore(opts.definitions_key.value)
    document = _registry_schema(registry, store, opts)
    drain_definitions(store, opts)
    if store.definitions:
        document[opts.definitions_key.value] = store.definitions

    logger.debug(
        "Generated schema for %s: %d properties, %d definitions",
        registry.name,
        len(document["properties"]),
        len(store.definitions),
    )
    return document


def extract_derived_fields(document: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Return ``{field name: x-derived-field metadata}`` for the top-level properties."""
    properties = document.get("properties") or {}
    return {
        name: dict(schema.get(DERIVED_FIELD_KEY) or {})
        for name, schema in properties.items()
        if isinstance(schema, dict) and schema.get("readOnly") is True
    }


def _strip_object(node: dict[str, Any]) -> dict[str, Any]:
    properties = node.get("properties")
    if not isinstance(properties, dict):
        return node
    derived = {
        name for name, schema in properties.items() if isinstance(schema, dict) and schema.get("readOnly") is True
    }
    if not derived:
        return node
    stripped = dict(node)
    stripped["properties"] = {n: s for n, s in properties.items() if n not in derived}
    if isinstance(node.get("required"), list):
        stripped["required"] = [n for n in node["required"] if n not in derived]
    return stripped


def strip_derived_fields(document: dict[str, Any]) -> dict[str, Any]:
    """Return an input-only copy of *document* without readOnly properties.

    Definitions are stripped too.
    """
    result = _strip_object(copy.deepcopy(document))
    for key in DEFINITIONS_KEYS:
        definitions = result.get(key)
        if isinstance(definitions, dict):
            result[key] = {name: _strip_object(schema) for name, schema in definitions.items()}
    return result
