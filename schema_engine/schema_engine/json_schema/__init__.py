"""JSON Schema generation, reference resolution and target profiles.

Quick start::

    from schema_engine.json_schema import generate, resolve, enforce_target_profile

    document = generate(registry)
    inlined = resolve(document, max_depth=3)
    for_openai = enforce_target_profile(inlined, "openai")
"""

from schema_engine.json_schema.generator import (
    DERIVED_FIELD_KEY,
    GenerateOptions,
    drain_definitions,
    extract_derived_fields,
    generate,
    strip_derived_fields,
)
from schema_engine.json_schema.profiles import (
    ProfileRegistry,
    TargetProfile,
    UnknownProfileError,
    create_default_profiles,
    enforce_target_profile,
)
from schema_engine.json_schema.reference_store import ReferenceStore, SchemaGenerationError
from schema_engine.json_schema.resolver import FlattenOptions, ResolveOptions, flatten, optimize_for_llm, resolve
from schema_engine.json_schema.type_mapper import map_type
from schema_engine.json_schema.walker import count_refs, iter_refs

__all__ = [
    "DERIVED_FIELD_KEY",
    "FlattenOptions",
    "GenerateOptions",
    "ProfileRegistry",
    "ReferenceStore",
    "ResolveOptions",
    "SchemaGenerationError",
    "TargetProfile",
    "UnknownProfileError",
    "count_refs",
    "create_default_profiles",
    "drain_definitions",
    "enforce_target_profile",
    "extract_derived_fields",
    "flatten",
    "generate",
    "iter_refs",
    "map_type",
    "optimize_for_llm",
    "resolve",
    "strip_derived_fields",
]
