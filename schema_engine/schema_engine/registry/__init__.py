"""Field registries: building, hooks and the schema catalog.

Quick start::

    from schema_engine.registry import build, Success, Failure

    def passwords_match(data):
        if data["password"] != data["confirm"]:
            return Failure("passwords do not match")
        return Success(data)

    signup = build(
        [("password", "string"), ("confirm", "string")],
        name="Signup",
        cross_field_hooks=[passwords_match],
    )
"""

from schema_engine.registry.builder import BuildOptions, build
from schema_engine.registry.catalog import SchemaCatalog, lookup_ref
from schema_engine.registry.hooks import Failure, Success, invoke, resolve_hook
from schema_engine.registry.models import (
    MISSING,
    DerivedFieldDef,
    FieldDescriptor,
    FieldRegistry,
    HookKind,
    HookSpec,
)
from schema_engine.types.normalizer import BuildError

__all__ = [
    "MISSING",
    "BuildError",
    "BuildOptions",
    "DerivedFieldDef",
    "Failure",
    "FieldDescriptor",
    "FieldRegistry",
    "HookKind",
    "HookSpec",
    "SchemaCatalog",
    "Success",
    "build",
    "invoke",
    "lookup_ref",
    "resolve_hook",
]
