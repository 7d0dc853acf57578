"""Constraint engine: pure predicates over values.

:func:`check` is total.  A value of the wrong shape for a constraint (for
example ``min_length`` applied to an integer) yields ``False`` instead of
raising, so callers never need to guard a call.
"""

from __future__ import annotations

import logging
import numbers
import re
from functools import lru_cache
from typing import Any

from schema_engine.types.canonical import Constraint, ConstraintKind

logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _sized(value: Any, kinds: tuple[type, ...]) -> int | None:
    if isinstance(value, kinds):
        return len(value)
    return None


def check(constraint: Constraint, value: Any) -> bool:
    """Return True if *value* satisfies *constraint*.

    Parameters
    ----------
    constraint:
        The constraint to evaluate.
    value:
        The value to test.  Shape mismatches return ``False``.
    """
    kind = constraint.kind
    bound = constraint.value

    if kind in (ConstraintKind.MIN_LENGTH, ConstraintKind.MAX_LENGTH):
        size = _sized(value, (str,))
        if size is None:
            return False
        return size >= bound if kind == ConstraintKind.MIN_LENGTH else size <= bound

    if kind == ConstraintKind.PATTERN:
        if not isinstance(value, str):
            return False
        try:
            return _compile(bound).search(value) is not None
        except (re.error, TypeError):
            return False

    if kind in (ConstraintKind.GT, ConstraintKind.LT, ConstraintKind.GTEQ, ConstraintKind.LTEQ):
        if not _is_number(value) or not _is_number(bound):
            return False
        if kind == ConstraintKind.GT:
            return value > bound
        if kind == ConstraintKind.LT:
            return value < bound
        if kind == ConstraintKind.GTEQ:
            return value >= bound
        return value <= bound

    if kind == ConstraintKind.CHOICES:
        try:
            return any(_same_choice(value, choice) for choice in bound)
        except TypeError:
            return False

    if kind in (ConstraintKind.MIN_ITEMS, ConstraintKind.MAX_ITEMS):
        size = _sized(value, (list, tuple))
        if size is None:
            return False
        return size >= bound if kind == ConstraintKind.MIN_ITEMS else size <= bound

    if kind in (ConstraintKind.MIN_PROPERTIES, ConstraintKind.MAX_PROPERTIES):
        size = _sized(value, (dict,))
        if size is None:
            return False
        return size >= bound if kind == ConstraintKind.MIN_PROPERTIES else size <= bound

    logger.debug("Unknown constraint kind %r treated as unsatisfied", kind)
    return False


def _same_choice(value: Any, choice: Any) -> bool:
    # True == 1 in Python; keep booleans and numbers apart.
    if isinstance(value, bool) != isinstance(choice, bool):
        return False
    return bool(value == choice)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def constraint_message(constraint: Constraint) -> str:
    """Return the failure message for *constraint*.

    A custom ``message`` on the constraint takes precedence over the
    default wording.
    """
    if constraint.message:
        return constraint.message

    kind = constraint.kind
    bound = constraint.value
    if kind == ConstraintKind.MIN_LENGTH:
        return f"must be at least {bound} characters long"
    if kind == ConstraintKind.MAX_LENGTH:
        return f"must be at most {bound} characters long"
    if kind == ConstraintKind.PATTERN:
        return f"must match pattern {bound!r}"
    if kind == ConstraintKind.GT:
        return f"must be greater than {bound}"
    if kind == ConstraintKind.LT:
        return f"must be less than {bound}"
    if kind == ConstraintKind.GTEQ:
        return f"must be greater than or equal to {bound}"
    if kind == ConstraintKind.LTEQ:
        return f"must be less than or equal to {bound}"
    if kind == ConstraintKind.CHOICES:
        return f"must be one of {list(bound)!r}"
    if kind == ConstraintKind.MIN_ITEMS:
        return f"must contain at least {bound} items"
    if kind == ConstraintKind.MAX_ITEMS:
        return f"must contain at most {bound} items"
    if kind == ConstraintKind.MIN_PROPERTIES:
        return f"must contain at least {bound} entries"
    if kind == ConstraintKind.MAX_PROPERTIES:
        return f"must contain at most {bound} entries"
    return f"failed constraint {kind}"


def failed_constraints(constraints: tuple[Constraint, ...], value: Any) -> list[Constraint]:
    """Return every constraint in *constraints* that *value* does not satisfy, in order."""
    return [c for c in constraints if not check(c, value)]
