"""Hook contract, build-time hook resolution and fault-isolated invocation.

A hook is a one-argument function over the data validated so far.  It
returns :class:`Success` (carrying the new data, or the derived value) or
:class:`Failure` (carrying a reason).  Anything else, including a raised
exception, is converted into a :class:`Failure` at this boundary so the
pipeline never has to deal with hook faults directly.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from schema_engine.registry.models import HookKind, HookSpec
from schema_engine.types.normalizer import BuildError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Success:
    """Successful hook outcome."""

    value: Any


@dataclass(frozen=True, slots=True)
class Failure:
    """Failed hook outcome.

    ``reason`` is a message string, a
    :class:`~schema_engine.pipeline.result.ValidationError` or a list of
    them.  ``fault`` is True when the failure was synthesized from an
    exception or a malformed return value.
    """

    reason: Any
    fault: bool = False


HookOutcome = Success | Failure


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _import_target(path: str) -> Any:
    """Import ``"package.module:attr.path"`` (or ``"package.module.attr"``)."""
    if ":" in path:
        module_name, _, attr_path = path.partition(":")
    else:
        module_name, _, attr_path = path.rpartition(".")
    if not module_name or not attr_path:
        raise BuildError(f"Hook reference '{path}' is not an importable 'module:function' path.")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise BuildError(f"Hook reference '{path}': cannot import module '{module_name}': {exc}") from exc

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise BuildError(f"Hook reference '{path}': '{module_name}' has no attribute '{attr_path}'.") from None
    return target


def _lookup_namespace(name: str, namespace: Any) -> Any:
    if namespace is None:
        return None
    if isinstance(namespace, Mapping):
        return namespace.get(name)
    return getattr(namespace, name, None)


def resolve_hook(hook: Any, namespace: Any = None) -> Callable[[dict[str, Any]], Any]:
    """Resolve a hook reference to a callable.

    Parameters
    ----------
    hook:
        A callable, a ``"package.module:function"`` import string or a bare
        name looked up in *namespace*.
    namespace:
        Object, module or mapping used for bare names.

    Raises
    ------
    BuildError
        If the reference cannot be resolved to a callable.
    """
    if callable(hook):
        return hook

    if not isinstance(hook, str) or not hook:
        raise BuildError(f"Hook must be a callable or a name, got {hook!r}.")

    target = _lookup_namespace(hook, namespace)
    if target is None:
        if ":" not in hook and "." not in hook:
            raise BuildError(f"Hook '{hook}' is not defined in the hook namespace.")
        target = _import_target(hook)

    if not callable(target):
        raise BuildError(f"Hook '{hook}' resolved to a non-callable {type(target).__name__}.")
    return target


def _is_anonymous(func: Any) -> bool:
    qualname = getattr(func, "__qualname__", None)
    if not isinstance(qualname, str):
        return True
    return "<lambda>" in qualname or "<locals>" in qualname


def hook_identity(
    func: Any,
    registry_name: str,
    kind: HookKind,
    position: int,
    field_name: str | None = None,
) -> tuple[str, bool]:
    """Return ``(identity, anonymous)`` for a resolved hook.

    Named functions are identified by ``module.qualname``.  Anonymous ones
    get a positional identity (``position`` is 1-based) such as
    ``User.<cross-field hook #1>`` or ``User.<derived field 'full_name' #1>``.
    """
    if not _is_anonymous(func):
        module = getattr(func, "__module__", None) or "<unknown>"
        return f"{module}.{func.__qualname__}", False

    if kind == HookKind.DERIVED:
        return f"{registry_name}.<derived field '{field_name}' #{position}>", True
    return f"{registry_name}.<cross-field hook #{position}>", True


def make_hook_spec(
    hook: Any,
    registry_name: str,
    kind: HookKind,
    position: int,
    namespace: Any = None,
    field_name: str | None = None,
) -> HookSpec:
    """Resolve *hook* and wrap it in a :class:`HookSpec`."""
    func = resolve_hook(hook, namespace)
    identity, anonymous = hook_identity(func, registry_name, kind, position, field_name)
    logger.debug("Resolved %s hook %s", kind.value, identity)
    return HookSpec(identity=identity, kind=kind, func=func, field_name=field_name, anonymous=anonymous)


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


def invoke(spec: HookSpec, data: dict[str, Any]) -> HookOutcome:
    """Run one hook, converting exceptions and malformed returns into failures."""
    try:
        outcome = spec.func(data)
    except Exception as exc:
        logger.error("Hook %s raised unhandled exception: %s", spec.identity, exc, exc_info=True)
        return Failure(reason=f"hook raised {type(exc).__name__}: {exc}", fault=True)

    if isinstance(outcome, (Success, Failure)):
        return outcome

    logger.error(
        "Hook %s returned %s, expected Success or Failure",
        spec.identity,
        type(outcome).__name__,
    )
    return Failure(
        reason=f"hook returned {type(outcome).__name__}, expected Success or Failure",
        fault=True,
    )
