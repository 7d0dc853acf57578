"""Multi-stage validation pipeline.

Stages, in order:

1. **Presence**: the input must be a mapping; every required field must be
   keyed.  Defaults are substituted for absent optional fields.
2. **Per-field**: every present field is checked for type shape and all of
   its constraints.  Unknown keys are dropped (or reported in strict mode).
3. **Cross-field hooks**: run in declaration order over the accumulated
   data, only when stages 1-2 produced no errors.  The first failure halts.
4. **Derived fields**: hooks compute values stored under their field
   names, only when stage 3 succeeded.  The first failure halts.
5. **Materialization**: optional packing into the registry's container.

Stages 1-2 collect every error; stages 3-4 short-circuit.  Data errors are
always returned, never raised.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from schema_engine.pipeline.materializer import pack
from schema_engine.pipeline.result import (
    ErrorKind,
    SchemaValidationFailed,
    ValidationError,
    ValidationResult,
)
from schema_engine.pipeline.values import Path, ValueContext, type_name_of, validate_value
from schema_engine.registry.catalog import SchemaCatalog
from schema_engine.registry.hooks import Failure, invoke
from schema_engine.registry.models import FieldRegistry, HookSpec
from schema_engine.types.canonical import CanonicalType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Stages 1-2
# ---------------------------------------------------------------------------


def _check_fields(
    registry: FieldRegistry,
    data: Any,
    path: Path,
    context: ValueContext,
) -> tuple[dict[str, Any], list[ValidationError]]:
    if not isinstance(data, Mapping):
        return {}, [
            ValidationError(
                path=list(path),
                kind=ErrorKind.TYPE_MISMATCH,
                message=f"expected object, got {type_name_of(data)}",
            )
        ]

    presence_errors: list[ValidationError] = []
    field_errors: list[ValidationError] = []
    extra_errors: list[ValidationError] = []
    output: dict[str, Any] = {}

    for descriptor in registry.regular_fields:
        if descriptor.name in data:
            checked, errors = validate_value(descriptor.type, data[descriptor.name], (*path, descriptor.name), context)
            if errors:
                field_errors.extend(errors)
            else:
                output[descriptor.name] = checked
        elif descriptor.has_default:
            output[descriptor.name] = copy.deepcopy(descriptor.default)
        elif descriptor.required:
            presence_errors.append(
                ValidationError(
                    path=[*path, descriptor.name],
                    kind=ErrorKind.REQUIRED_MISSING,
                    message="field is required",
                )
            )

    derived_names = {d.name for d in registry.derived_fields}
    regular_names = {d.name for d in registry.regular_fields}
    for key in data:
        if key in regular_names:
            continue
        if key in derived_names:
            if registry.strict:
                extra_errors.append(
                    ValidationError(
                        path=[*path, key],
                        kind=ErrorKind.EXTRA_FIELD,
                        message="derived field is read-only and cannot be supplied",
                    )
                )
            continue
        if registry.strict:
            extra_errors.append(
                ValidationError(
                    path=[*path, key if isinstance(key, (str, int)) else str(key)],
                    kind=ErrorKind.EXTRA_FIELD,
                    message="unknown field",
                )
            )

    return output, presence_errors + field_errors + extra_errors


# ---------------------------------------------------------------------------
# Stage 3
# ---------------------------------------------------------------------------


def _failure_errors(failure: Failure, spec: HookSpec, path: Path) -> list[ValidationError]:
    """Turn a cross-field hook failure reason into errors tagged with the hook."""
    reasons = failure.reason if isinstance(failure.reason, list) else [failure.reason]
    errors: list[ValidationError] = []
    for reason in reasons:
        if isinstance(reason, ValidationError):
            update: dict[str, Any] = {"path": [*path, *reason.path]}
            if reason.hook is None:
                update["hook"] = spec.identity
            errors.append(reason.model_copy(update=update))
        else:
            errors.append(
                ValidationError(
                    path=list(path),
                    kind=ErrorKind.HOOK_FAILED,
                    message=str(reason),
                    hook=spec.identity,
                )
            )
    if not errors:
        errors.append(
            ValidationError(path=list(path), kind=ErrorKind.HOOK_FAILED, message="hook failed", hook=spec.identity)
        )
    return errors


def _run_cross_field_hooks(
    registry: FieldRegistry,
    data: dict[str, Any],
    path: Path,
) -> tuple[dict[str, Any], list[ValidationError]]:
    for spec in registry.cross_field_hooks:
        outcome = invoke(spec, data)
        if isinstance(outcome, Failure):
            logger.debug("Cross-field hook %s failed on %s", spec.identity, registry.name)
            return data, _failure_errors(outcome, spec, path)
        if not isinstance(outcome.value, Mapping):
            logger.error(
                "Hook %s returned Success with %s, expected a mapping",
                spec.identity,
                type(outcome.value).__name__,
            )
            return data, [
                ValidationError(
                    path=list(path),
                    kind=ErrorKind.HOOK_FAILED,
                    message=f"hook returned Success with {type_name_of(outcome.value)}, expected object",
                    hook=spec.identity,
                )
            ]
        data = dict(outcome.value)
    return data, []


# ---------------------------------------------------------------------------
# Stage 4
# ---------------------------------------------------------------------------


def _reason_text(reason: Any) -> str:
    if isinstance(reason, ValidationError):
        return reason.message
    if isinstance(reason, list):
        return "; ".join(_reason_text(r) for r in reason) or "hook failed"
    return str(reason)


def _run_derived_hooks(
    registry: FieldRegistry,
    data: dict[str, Any],
    path: Path,
    context: ValueContext,
) -> tuple[dict[str, Any], list[ValidationError]]:
    shape_context = ValueContext(owner=context.owner, catalog=context.catalog, shape_only=True)
    for spec in registry.derived_hooks:
        field_name = spec.field_name or ""
        field_path = [*path, field_name]
        outcome = invoke(spec, data)
        if isinstance(outcome, Failure):
            return data, [
                ValidationError(
                    path=field_path,
                    kind=ErrorKind.DERIVED_HOOK_FAILED,
                    message=_reason_text(outcome.reason),
                    hook=spec.identity,
                )
            ]

        descriptor = registry.get_field(field_name)
        if descriptor is not None:
            _, shape_errors = validate_value(descriptor.type, outcome.value, tuple(field_path), shape_context)
            if shape_errors:
                return data, [
                    ValidationError(
                        path=field_path,
                        kind=ErrorKind.DERIVED_HOOK_FAILED,
                        message=(
                            f"derived value does not match declared type {descriptor.type.describe()}: "
                            f"{shape_errors[0].message}"
                        ),
                        hook=spec.identity,
                    )
                ]
        data = {**data, field_name: outcome.value}
    return data, []


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def _run_stages(
    registry: FieldRegistry,
    data: Any,
    path: Path,
    catalog: SchemaCatalog | None = None,
) -> tuple[dict[str, Any] | None, list[ValidationError]]:
    """Run stages 1-4 of *registry* over *data*, rooted at *path*."""
    if registry.catalog is not None:
        catalog = registry.catalog
    context = ValueContext(
        owner=registry,
        catalog=catalog,
        run_nested=lambda target, value, nested_path: _run_stages(target, value, nested_path, catalog),
    )

    output, errors = _check_fields(registry, data, path, context)
    if errors:
        logger.debug("Schema %s: %d field error(s)", registry.name, len(errors))
        return None, errors

    output, errors = _run_cross_field_hooks(registry, output, path)
    if errors:
        return None, errors

    output, errors = _run_derived_hooks(registry, output, path, context)
    if errors:
        return None, errors

    return output, []


def validate(registry: FieldRegistry, data: Any) -> ValidationResult:
    """Validate *data* against *registry*.

    Parameters
    ----------
    registry:
        A built field registry.
    data:
        The instance to validate.  Anything other than a mapping produces
        a single ``type_mismatch`` error at the root.

    Returns
    -------
    ValidationResult
        ``data`` (and ``container`` when the registry materializes) on
        success; the collected ``errors`` otherwise.

    Raises
    ------
    InternalConsistencyFault
        Only if validated data cannot be packed into the container.
    """
    output, errors = _run_stages(registry, data, ())
    if errors:
        return ValidationResult(errors=errors)

    container = None
    if registry.container is not None:
        container = pack(registry.container, output or {})
    logger.debug("Schema %s: validation succeeded", registry.name)
    return ValidationResult(data=output, container=container)


def validate_or_raise(registry: FieldRegistry, data: Any) -> Any:
    """Validate *data* and return the container (or data), raising on errors.

    Raises
    ------
    SchemaValidationFailed
        If validation produced any errors.
    """
    result = validate(registry, data)
    if result.errors:
        raise SchemaValidationFailed(result.errors)
    return result.container if result.container is not None else result.data


def check_value(
    type_: CanonicalType,
    value: Any,
    owner: FieldRegistry | None = None,
    catalog: SchemaCatalog | None = None,
) -> tuple[Any, list[ValidationError]]:
    """Validate a single value outside of any field.

    Schema references are validated with their registry's full pipeline.
    """
    effective_catalog = catalog
    if effective_catalog is None and owner is not None:
        effective_catalog = owner.catalog
    context = ValueContext(
        owner=owner,
        catalog=effective_catalog,
        run_nested=lambda target, nested, nested_path: _run_stages(target, nested, nested_path, effective_catalog),
    )
    return validate_value(type_, value, (), context)
