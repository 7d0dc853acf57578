"""Unit tests for schema_engine.pipeline.validator."""

from __future__ import annotations

import logging

import pytest

from schema_engine.pipeline.result import ErrorKind, SchemaValidationFailed, ValidationError
from schema_engine.pipeline.validator import validate, validate_or_raise
from schema_engine.registry.builder import build
from schema_engine.registry.catalog import SchemaCatalog
from schema_engine.registry.hooks import Failure, Success
from schema_engine.types.canonical import array, integer, map_of, ref, string, union


def _make_person(**overrides):
    return build(
        [
            ("name", string(min_length=2)),
            ("age", integer(gt=0)),
        ],
        name="Person",
        **overrides,
    )


def _passwords_match(data):
    if data["password"] != data["password_confirmation"]:
        return Failure("passwords do not match")
    return Success(data)


def _full_name(data):
    return Success(f"{data['first_name']} {data['last_name']}")


def _make_signup(derived_calls: list | None = None):
    def track(data):
        if derived_calls is not None:
            derived_calls.append(data)
        return Success(len(data["password"]))

    return build(
        [("password", "string"), ("password_confirmation", "string")],
        name="Signup",
        cross_field_hooks=[_passwords_match],
        derived_fields=[("password_length", "integer", track)],
    )


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_constraint_errors_on_every_field(self):
        result = validate(_make_person(), {"name": "A", "age": -1})
        assert not result.ok
        pairs = {(tuple(e.path), e.constraint) for e in result.errors}
        assert (("name",), "min_length") in pairs
        assert (("age",), "gt") in pairs
        assert all(e.kind == ErrorKind.CONSTRAINT_VIOLATED for e in result.errors)

    def test_password_mismatch_single_hook_error(self):
        calls: list = []
        result = validate(
            _make_signup(calls),
            {"password": "secret1", "password_confirmation": "secret2"},
        )
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.kind == ErrorKind.HOOK_FAILED
        assert error.message == "passwords do not match"
        assert error.hook.endswith("_passwords_match")
        assert calls == []

    def test_password_match_runs_derived(self):
        result = validate(_make_signup(), {"password": "secret", "password_confirmation": "secret"})
        assert result.ok
        assert result.data["password_length"] == 6

    def test_full_name_derived(self):
        registry = build(
            [("first_name", "string"), ("last_name", "string")],
            name="Person",
            derived_fields=[("full_name", "string", _full_name)],
        )
        result = validate(registry, {"first_name": "Jane", "last_name": "Doe"})
        assert result.ok
        assert result.data == {"first_name": "Jane", "last_name": "Doe", "full_name": "Jane Doe"}


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


class TestPresence:
    @pytest.mark.parametrize("missing", [0, 1, 2, 3])
    def test_n_missing_required_fields(self, missing):
        names = ["a", "b", "c"]
        registry = build([(n, "string") for n in names])
        data = {n: "x" for n in names[missing:]}
        result = validate(registry, data)
        kinds = [e.kind for e in result.errors]
        assert kinds.count(ErrorKind.REQUIRED_MISSING) == missing
        assert len(result.errors) == missing

    def test_non_mapping_input(self):
        result = validate(_make_person(), ["not", "a", "map"])
        assert len(result.errors) == 1
        assert result.errors[0].kind == ErrorKind.TYPE_MISMATCH
        assert result.errors[0].path == []

    def test_default_substituted(self):
        registry = build([("role", "string", {"default": "member"})])
        assert validate(registry, {}).data == {"role": "member"}

    def test_default_is_copied(self):
        registry = build([("tags", ["string"], {"default": []})])
        first = validate(registry, {}).data
        first["tags"].append("mutated")
        assert validate(registry, {}).data == {"tags": []}

    def test_optional_absent_field_omitted(self):
        registry = build([("nick", "string", {"optional": True})])
        assert validate(registry, {}).data == {}

    def test_presence_errors_reported_before_field_errors(self):
        registry = build([("a", "integer"), ("b", "string")])
        result = validate(registry, {"a": "wrong"})
        assert [e.kind for e in result.errors] == [ErrorKind.REQUIRED_MISSING, ErrorKind.TYPE_MISMATCH]


# ---------------------------------------------------------------------------
# Per-field validation
# ---------------------------------------------------------------------------


class TestFieldValidation:
    def test_valid_data_ok(self):
        result = validate(_make_person(), {"name": "Ada", "age": 36})
        assert result.ok
        assert result.data == {"name": "Ada", "age": 36}

    def test_boolean_is_not_integer(self):
        result = validate(_make_person(), {"name": "Ada", "age": True})
        assert result.errors[0].kind == ErrorKind.TYPE_MISMATCH

    def test_none_is_not_string(self):
        result = validate(_make_person(), {"name": None, "age": 3})
        assert result.errors[0].message == "expected string, got null"

    def test_integer_accepted_as_float(self):
        registry = build([("price", "float")])
        assert validate(registry, {"price": 3}).ok

    def test_no_coercion(self):
        result = validate(_make_person(), {"name": "Ada", "age": "36"})
        assert result.errors[0].kind == ErrorKind.TYPE_MISMATCH

    def test_array_element_paths(self):
        registry = build([("tags", array(string(min_length=2)))])
        result = validate(registry, {"tags": ["ok", "x", 3]})
        assert [e.path for e in result.errors] == [["tags", 1], ["tags", 2]]

    def test_map_value_paths(self):
        registry = build([("scores", map_of("string", integer(gteq=0)))])
        result = validate(registry, {"scores": {"a": 1, "b": -1}})
        assert result.errors[0].path == ["scores", "b"]

    def test_union_first_match(self):
        registry = build([("id", union("integer", "string"))])
        assert validate(registry, {"id": 5}).ok
        assert validate(registry, {"id": "abc"}).ok

    def test_union_no_match_single_error(self):
        registry = build([("id", union("integer", "string"))])
        result = validate(registry, {"id": 1.5})
        assert len(result.errors) == 1
        assert result.errors[0].kind == ErrorKind.TYPE_MISMATCH

    def test_errors_collected_across_fields(self):
        registry = build([("a", "integer"), ("b", "integer"), ("c", "integer")])
        result = validate(registry, {"a": "x", "b": 1, "c": "y"})
        assert [e.path for e in result.errors] == [["a"], ["c"]]

    def test_custom_message(self):
        registry = build([("pin", "string", {"min_length": 4, "messages": {"min_length": "PIN too short"}})])
        result = validate(registry, {"pin": "12"})
        assert result.errors[0].message == "PIN too short"


# ---------------------------------------------------------------------------
# Unknown keys
# ---------------------------------------------------------------------------


class TestUnknownKeys:
    def test_lenient_drops_unknown(self):
        result = validate(_make_person(), {"name": "Ada", "age": 3, "extra": 1})
        assert result.ok
        assert "extra" not in result.data

    def test_strict_reports_unknown(self):
        result = validate(_make_person(strict=True), {"name": "Ada", "age": 3, "extra": 1})
        assert len(result.errors) == 1
        assert result.errors[0].kind == ErrorKind.EXTRA_FIELD
        assert result.errors[0].path == ["extra"]

    def test_supplied_derived_value_dropped(self):
        registry = build(
            [("first_name", "string"), ("last_name", "string")],
            derived_fields=[("full_name", "string", _full_name)],
        )
        result = validate(registry, {"first_name": "Jane", "last_name": "Doe", "full_name": "Override"})
        assert result.data["full_name"] == "Jane Doe"

    def test_supplied_derived_value_reported_in_strict(self):
        registry = build(
            [("first_name", "string"), ("last_name", "string")],
            strict=True,
            derived_fields=[("full_name", "string", _full_name)],
        )
        result = validate(registry, {"first_name": "Jane", "last_name": "Doe", "full_name": "Override"})
        assert result.errors[0].kind == ErrorKind.EXTRA_FIELD
        assert "read-only" in result.errors[0].message


# ---------------------------------------------------------------------------
# Cross-field hooks
# ---------------------------------------------------------------------------


class TestCrossFieldHooks:
    def test_skipped_when_fields_invalid(self):
        calls: list = []

        def hook(data):
            calls.append(data)
            return Success(data)

        registry = build([("a", "integer")], cross_field_hooks=[hook])
        validate(registry, {"a": "x"})
        assert calls == []

    def test_success_replaces_data(self):
        registry = build([("a", "integer")], cross_field_hooks=[lambda d: Success({**d, "checked": True})])
        assert validate(registry, {"a": 1}).data == {"a": 1, "checked": True}

    def test_declaration_order(self):
        order: list[str] = []

        def first(data):
            order.append("first")
            return Success(data)

        def second(data):
            order.append("second")
            return Success(data)

        registry = build([("a", "integer")], cross_field_hooks=[first, second])
        validate(registry, {"a": 1})
        assert order == ["first", "second"]

    def test_first_failure_halts(self):
        calls: list = []

        def later(data):
            calls.append(data)
            return Success(data)

        registry = build([("a", "integer")], cross_field_hooks=[lambda d: Failure("no"), later])
        result = validate(registry, {"a": 1})
        assert len(result.errors) == 1
        assert calls == []

    def test_failure_with_validation_errors(self):
        def hook(data):
            return Failure(
                [
                    ValidationError(path=["a"], kind=ErrorKind.HOOK_FAILED, message="bad a"),
                    ValidationError(path=["b"], kind=ErrorKind.HOOK_FAILED, message="bad b"),
                ]
            )

        registry = build([("a", "integer"), ("b", "integer")], name="Pair", cross_field_hooks=[hook])
        result = validate(registry, {"a": 1, "b": 2})
        assert [e.path for e in result.errors] == [["a"], ["b"]]
        assert all(e.hook == "Pair.<cross-field hook #1>" for e in result.errors)

    def test_exception_converted(self, caplog: pytest.LogCaptureFixture):
        def explode(data):
            raise RuntimeError("kaboom")

        registry = build([("a", "integer")], name="Boom", cross_field_hooks=[explode])
        with caplog.at_level(logging.ERROR):
            result = validate(registry, {"a": 1})
        assert len(result.errors) == 1
        assert result.errors[0].kind == ErrorKind.HOOK_FAILED
        assert result.errors[0].hook == "Boom.<cross-field hook #1>"
        assert "kaboom" in result.errors[0].message
        assert "kaboom" in caplog.text

    def test_malformed_success_value(self):
        registry = build([("a", "integer")], cross_field_hooks=[lambda d: Success(42)])
        result = validate(registry, {"a": 1})
        assert result.errors[0].kind == ErrorKind.HOOK_FAILED


# ---------------------------------------------------------------------------
# Derived fields
# ---------------------------------------------------------------------------


class TestDerivedFields:
    def test_later_hooks_see_earlier_values(self):
        registry = build(
            [("a", "integer")],
            derived_fields=[
                ("double", "integer", lambda d: Success(d["a"] * 2)),
                ("quad", "integer", lambda d: Success(d["double"] * 2)),
            ],
        )
        assert validate(registry, {"a": 3}).data == {"a": 3, "double": 6, "quad": 12}

    def test_failure_tagged_with_field_and_hook(self):
        registry = build(
            [("a", "integer")],
            name="Calc",
            derived_fields=[("ratio", "float", lambda d: Failure("division undefined"))],
        )
        result = validate(registry, {"a": 0})
        error = result.errors[0]
        assert error.kind == ErrorKind.DERIVED_HOOK_FAILED
        assert error.path == ["ratio"]
        assert error.hook == "Calc.<derived field 'ratio' #1>"

    def test_failure_halts_remaining_hooks(self):
        calls: list = []

        def later(data):
            calls.append(data)
            return Success(1)

        registry = build(
            [("a", "integer")],
            derived_fields=[("x", "integer", lambda d: Failure("no")), ("y", "integer", later)],
        )
        result = validate(registry, {"a": 1})
        assert len(result.errors) == 1
        assert calls == []

    def test_shape_mismatch(self):
        registry = build([("a", "integer")], derived_fields=[("label", "string", lambda d: Success(5))])
        result = validate(registry, {"a": 1})
        assert result.errors[0].kind == ErrorKind.DERIVED_HOOK_FAILED
        assert "does not match declared type" in result.errors[0].message

    def test_shape_check_skips_constraints(self):
        registry = build(
            [("a", "integer")],
            derived_fields=[("label", "string", lambda d: Success("x"), {"min_length": 5})],
        )
        assert validate(registry, {"a": 1}).ok

    def test_exception_becomes_derived_failure(self):
        registry = build([("a", "integer")], derived_fields=[("boom", "integer", lambda d: d["missing"])])
        result = validate(registry, {"a": 1})
        assert result.errors[0].kind == ErrorKind.DERIVED_HOOK_FAILED
        assert "KeyError" in result.errors[0].message


# ---------------------------------------------------------------------------
# Nested schemas
# ---------------------------------------------------------------------------


class TestNestedSchemas:
    def test_nested_errors_prefixed(self):
        address = build([("city", string(min_length=2))], name="Address")
        person = build([("home", address)], name="Person")
        result = validate(person, {"home": {"city": "X"}})
        assert result.errors[0].path == ["home", "city"]

    def test_nested_derived_computed(self):
        address = build(
            [("city", "string"), ("zip", "string")],
            name="Address",
            derived_fields=[("label", "string", lambda d: Success(f"{d['zip']} {d['city']}"))],
        )
        person = build([("home", address)], name="Person")
        result = validate(person, {"home": {"city": "Oslo", "zip": "0150"}})
        assert result.data["home"]["label"] == "0150 Oslo"

    def test_self_reference(self):
        node = build([("value", "integer"), ("next", ref("Node"), {"optional": True})], name="Node")
        result = validate(node, {"value": 1, "next": {"value": 2, "next": {"value": "three"}}})
        assert result.errors[0].path == ["next", "next", "value"]

    def test_late_bound_reference(self):
        catalog = SchemaCatalog()
        team = build([("members", [ref("Member")])], name="Team", catalog=catalog)
        member = build([("name", "string"), ("team", ref("Team"), {"optional": True})], name="Member", catalog=catalog)
        catalog.register(team)
        catalog.register(member)
        result = validate(team, {"members": [{"name": "Ann"}, {"name": 7}]})
        assert result.errors[0].path == ["members", 1, "name"]

    def test_unresolvable_late_reference(self):
        catalog = SchemaCatalog()
        holder = build([("x", ref("Ghost"))], name="Holder", catalog=catalog)
        result = validate(holder, {"x": {}})
        assert result.errors[0].kind == ErrorKind.TYPE_MISMATCH
        assert "cannot be resolved" in result.errors[0].message

    def test_nested_non_mapping(self):
        address = build([("city", "string")], name="Address")
        person = build([("home", address)], name="Person")
        result = validate(person, {"home": "Oslo"})
        assert result.errors[0].kind == ErrorKind.TYPE_MISMATCH


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TestResultHelpers:
    def test_validate_or_raise_returns_data(self):
        assert validate_or_raise(_make_person(), {"name": "Ada", "age": 1}) == {"name": "Ada", "age": 1}

    def test_validate_or_raise_raises(self):
        with pytest.raises(SchemaValidationFailed) as exc_info:
            validate_or_raise(_make_person(), {"name": "A", "age": 1})
        assert exc_info.value.errors[0].path == ["name"]
        assert "name: must be at least 2 characters long" in str(exc_info.value)

    def test_raise_for_errors(self):
        result = validate(_make_person(), {})
        with pytest.raises(SchemaValidationFailed):
            result.raise_for_errors()

    def test_errors_at(self):
        result = validate(_make_person(), {"name": "A", "age": -1})
        assert len(result.errors_at("age")) == 1

    def test_location_format(self):
        error = ValidationError(path=["items", 2, "sku"], kind=ErrorKind.TYPE_MISMATCH, message="bad")
        assert error.format() == "items[2].sku: bad"

    def test_root_location(self):
        error = ValidationError(kind=ErrorKind.TYPE_MISMATCH, message="bad")
        assert error.format() == "<root>: bad"
