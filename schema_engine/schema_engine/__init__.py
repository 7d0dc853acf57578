"""Schema validation and JSON Schema engine for structured data.

Quick start::

    from schema_engine import build, validate, generate, string, integer

    user = build(
        [("name", string(min_length=2)), ("age", integer(gt=0))],
        name="User",
    )
    result = validate(user, {"name": "Ada", "age": 36})
    assert result.ok
    document = generate(user)
"""

# The registry package must be imported before the pipeline package.
from schema_engine.types import (
    BuildError,
    NormalizationError,
    any_type,
    array,
    boolean,
    integer,
    map_of,
    normalize,
    null,
    number,
    ref,
    string,
    union,
)
from schema_engine.registry import (
    BuildOptions,
    DerivedFieldDef,
    Failure,
    FieldRegistry,
    SchemaCatalog,
    Success,
    build,
)
from schema_engine.pipeline import (
    ErrorKind,
    InternalConsistencyFault,
    SchemaValidationFailed,
    ValidationError,
    ValidationResult,
    format_errors,
    unpack,
    validate,
    validate_or_raise,
)
from schema_engine.json_schema import (
    GenerateOptions,
    ProfileRegistry,
    SchemaGenerationError,
    UnknownProfileError,
    enforce_target_profile,
    extract_derived_fields,
    flatten,
    generate,
    optimize_for_llm,
    resolve,
    strip_derived_fields,
)
from schema_engine.type_adapter import type_schema, validate_value
from schema_engine.config import Settings, load_settings

__all__ = [
    "BuildError",
    "BuildOptions",
    "DerivedFieldDef",
    "ErrorKind",
    "Failure",
    "FieldRegistry",
    "GenerateOptions",
    "InternalConsistencyFault",
    "NormalizationError",
    "ProfileRegistry",
    "SchemaCatalog",
    "SchemaGenerationError",
    "SchemaValidationFailed",
    "Settings",
    "Success",
    "UnknownProfileError",
    "ValidationError",
    "ValidationResult",
    "any_type",
    "array",
    "boolean",
    "build",
    "enforce_target_profile",
    "extract_derived_fields",
    "flatten",
    "format_errors",
    "generate",
    "integer",
    "load_settings",
    "map_of",
    "normalize",
    "null",
    "number",
    "optimize_for_llm",
    "ref",
    "resolve",
    "string",
    "strip_derived_fields",
    "type_schema",
    "union",
    "unpack",
    "validate",
    "validate_or_raise",
    "validate_value",
]
