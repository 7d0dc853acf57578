"""Validation pipeline: field checks, hooks, derived fields and containers."""

from schema_engine.pipeline.materializer import InternalConsistencyFault, build_container, pack, unpack
from schema_engine.pipeline.result import (
    ErrorKind,
    SchemaValidationFailed,
    ValidationError,
    ValidationResult,
    format_errors,
)
from schema_engine.pipeline.validator import check_value, validate, validate_or_raise

__all__ = [
    "ErrorKind",
    "InternalConsistencyFault",
    "SchemaValidationFailed",
    "ValidationError",
    "ValidationResult",
    "build_container",
    "check_value",
    "format_errors",
    "pack",
    "unpack",
    "validate",
    "validate_or_raise",
]
