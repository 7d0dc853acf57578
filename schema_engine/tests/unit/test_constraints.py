"""Unit tests for schema_engine.types.constraints."""

from __future__ import annotations

import pytest

from schema_engine.types.canonical import Constraint, ConstraintKind
from schema_engine.types.constraints import check, constraint_message, failed_constraints


def _c(kind: ConstraintKind, value, message=None) -> Constraint:
    return Constraint(kind=kind, value=value, message=message)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestLengthConstraints:
    def test_min_length_inclusive(self):
        assert check(_c(ConstraintKind.MIN_LENGTH, 2), "ab") is True
        assert check(_c(ConstraintKind.MIN_LENGTH, 2), "a") is False

    def test_max_length_inclusive(self):
        assert check(_c(ConstraintKind.MAX_LENGTH, 3), "abc") is True
        assert check(_c(ConstraintKind.MAX_LENGTH, 3), "abcd") is False

    def test_length_on_non_string_is_false(self):
        assert check(_c(ConstraintKind.MIN_LENGTH, 0), 12) is False


class TestPatternConstraint:
    def test_search_semantics(self):
        assert check(_c(ConstraintKind.PATTERN, r"\d+"), "abc123") is True

    def test_anchored_pattern(self):
        assert check(_c(ConstraintKind.PATTERN, r"^\d+$"), "abc123") is False

    def test_non_string_value_is_false(self):
        assert check(_c(ConstraintKind.PATTERN, r"\d"), 5) is False

    def test_broken_pattern_is_false(self):
        assert check(_c(ConstraintKind.PATTERN, "("), "(") is False


class TestNumericConstraints:
    @pytest.mark.parametrize(
        ("kind", "bound", "value", "expected"),
        [
            (ConstraintKind.GT, 0, 1, True),
            (ConstraintKind.GT, 0, 0, False),
            (ConstraintKind.LT, 10, 9.5, True),
            (ConstraintKind.LT, 10, 10, False),
            (ConstraintKind.GTEQ, 0, 0, True),
            (ConstraintKind.GTEQ, 0, -1, False),
            (ConstraintKind.LTEQ, 5, 5, True),
            (ConstraintKind.LTEQ, 5, 5.01, False),
        ],
    )
    def test_comparisons(self, kind, bound, value, expected):
        assert check(_c(kind, bound), value) is expected

    def test_string_value_is_false(self):
        assert check(_c(ConstraintKind.GT, 0), "5") is False

    def test_boolean_value_is_false(self):
        assert check(_c(ConstraintKind.GTEQ, 0), True) is False


class TestChoicesConstraint:
    def test_member(self):
        assert check(_c(ConstraintKind.CHOICES, ("red", "green")), "red") is True

    def test_non_member(self):
        assert check(_c(ConstraintKind.CHOICES, ("red", "green")), "blue") is False

    def test_boolean_does_not_match_integer(self):
        assert check(_c(ConstraintKind.CHOICES, (1, 2)), True) is False

    def test_unhashable_value(self):
        assert check(_c(ConstraintKind.CHOICES, ([1],)), [1]) is True


class TestCollectionConstraints:
    def test_min_items(self):
        assert check(_c(ConstraintKind.MIN_ITEMS, 1), []) is False
        assert check(_c(ConstraintKind.MIN_ITEMS, 1), ["x"]) is True

    def test_max_items(self):
        assert check(_c(ConstraintKind.MAX_ITEMS, 1), [1, 2]) is False

    def test_items_on_string_is_false(self):
        assert check(_c(ConstraintKind.MAX_ITEMS, 10), "abc") is False

    def test_min_properties(self):
        assert check(_c(ConstraintKind.MIN_PROPERTIES, 1), {}) is False
        assert check(_c(ConstraintKind.MIN_PROPERTIES, 1), {"a": 1}) is True

    def test_max_properties(self):
        assert check(_c(ConstraintKind.MAX_PROPERTIES, 1), {"a": 1, "b": 2}) is False

    def test_properties_on_list_is_false(self):
        assert check(_c(ConstraintKind.MIN_PROPERTIES, 0), [1]) is False


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class TestConstraintMessage:
    def test_default_message(self):
        assert constraint_message(_c(ConstraintKind.MIN_LENGTH, 2)) == "must be at least 2 characters long"

    def test_custom_message_wins(self):
        assert constraint_message(_c(ConstraintKind.GT, 0, "must be positive")) == "must be positive"

    def test_choices_message_lists_values(self):
        assert constraint_message(_c(ConstraintKind.CHOICES, ("a", "b"))) == "must be one of ['a', 'b']"


class TestFailedConstraints:
    def test_all_failures_in_order(self):
        constraints = (
            _c(ConstraintKind.MIN_LENGTH, 5),
            _c(ConstraintKind.PATTERN, r"^\d+$"),
            _c(ConstraintKind.MAX_LENGTH, 10),
        )
        failed = failed_constraints(constraints, "ab")
        assert [c.kind for c in failed] == [ConstraintKind.MIN_LENGTH, ConstraintKind.PATTERN]

    def test_no_failures(self):
        assert failed_constraints((_c(ConstraintKind.GT, 0),), 3) == []
