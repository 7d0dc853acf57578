"""Validation error and result models.

Errors are values: the pipeline returns them in a list and never raises
them.  :class:`SchemaValidationFailed` exists only for callers that prefer
an exception (see :meth:`ValidationResult.raise_for_errors`).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Category of a validation error."""

    REQUIRED_MISSING = "required_missing"
    TYPE_MISMATCH = "type_mismatch"
    CONSTRAINT_VIOLATED = "constraint_violated"
    HOOK_FAILED = "hook_failed"
    DERIVED_HOOK_FAILED = "derived_hook_failed"
    EXTRA_FIELD = "extra_field"


class ValidationError(BaseModel):
    """A single validation failure located by its path in the input."""

    path: list[str | int] = Field(
        default_factory=list,
        description="Field names and list indices leading to the failing value. Empty for the root.",
    )
    kind: ErrorKind = Field(..., description="Error category.")
    message: str = Field(..., description="Human-readable description of the failure.")
    constraint: str | None = Field(
        default=None,
        description="Name of the violated constraint, for constraint_violated errors.",
    )
    hook: str | None = Field(
        default=None,
        description="Identity of the hook that failed, for hook errors.",
    )

    @property
    def location(self) -> str:
        """Dotted path with ``[i]`` for list indices, or ``<root>``."""
        if not self.path:
            return "<root>"
        parts: list[str] = []
        for element in self.path:
            if isinstance(element, int):
                parts.append(f"[{element}]")
            elif parts:
                parts.append(f".{element}")
            else:
                parts.append(str(element))
        return "".join(parts)

    def format(self) -> str:
        return f"{self.location}: {self.message}"

    def with_prefix(self, prefix: list[str | int]) -> ValidationError:
        """Return a copy whose path is rooted under *prefix*."""
        if not prefix:
            return self
        return self.model_copy(update={"path": [*prefix, *self.path]})


class SchemaValidationFailed(Exception):
    """Raised by :meth:`ValidationResult.raise_for_errors` on invalid data."""

    def __init__(self, errors: list[ValidationError]) -> None:
        self.errors = list(errors)
        super().__init__(format_errors(self.errors))


class ValidationResult(BaseModel):
    """Outcome of validating one input against a registry.

    Exactly one of ``data`` and ``errors`` is meaningful: a successful
    result has ``data`` (and ``container`` when materialized) with an empty
    ``errors`` list.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: dict[str, Any] | None = Field(
        default=None,
        description="Validated data including derived fields. None when validation failed.",
    )
    errors: list[ValidationError] = Field(
        default_factory=list,
        description="All collected errors, in reporting order.",
    )
    container: Any = Field(
        default=None,
        description="Typed container instance, when the registry materializes.",
    )

    @property
    def ok(self) -> bool:
        """Return True if validation succeeded."""
        return not self.errors

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def errors_at(self, *path: str | int) -> list[ValidationError]:
        """Return errors whose path is exactly *path*."""
        wanted = list(path)
        return [e for e in self.errors if e.path == wanted]

    def raise_for_errors(self) -> Any:
        """Return the container (or data) or raise :class:`SchemaValidationFailed`."""
        if self.errors:
            raise SchemaValidationFailed(self.errors)
        return self.container if self.container is not None else self.data


def format_errors(errors: list[ValidationError]) -> str:
    """Render errors one per line as ``location: message``."""
    if not errors:
        return "no errors"
    return "\n".join(e.format() for e in errors)
