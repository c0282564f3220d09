"""Tests for storage type inference from cast and validation hints."""

import pytest

from tablegraph.core.inference import infer_storage_type, parse_validation_rules
from tablegraph.models import ValidationRule


@pytest.mark.parametrize(
    ("cast", "expected"),
    [
        ("integer", "number"),
        ("float", "number"),
        ("decimal", "number"),
        ("boolean", "boolean"),
        ("array", "list"),
        ("json", "map"),
        ("object", "map"),
        ("set", "string_set"),
        ("binary", "binary"),
        ("datetime", "string"),
        ("Integer", "number"),
    ],
)
def test_cast_lookup(cast: str, expected: str) -> None:
    assert infer_storage_type(cast) == expected


def test_cast_wins_over_validation() -> None:
    assert infer_storage_type("string", "integer|min:1") == "string"


@pytest.mark.parametrize(
    ("validation", "expected"),
    [
        ("required|integer", "number"),
        ("numeric", "number"),
        ("boolean", "boolean"),
        ("array|min:1", "list"),
        ("required|email", "string"),
    ],
)
def test_validation_text_scan(validation: str, expected: str) -> None:
    assert infer_storage_type(None, validation) == expected


def test_validation_objects_are_scanned() -> None:
    rules = [ValidationRule(rule="required"), ValidationRule(rule="integer", message="must be a number")]
    assert infer_storage_type(None, rules) == "number"


def test_no_hints_default_to_string() -> None:
    assert infer_storage_type() == "string"
    assert infer_storage_type("", "") == "string"


class TestParseValidationRules:
    def test_pipe_separated_string(self) -> None:
        assert parse_validation_rules("required|email") == ["required", "email"]

    def test_mixed_list(self) -> None:
        assert parse_validation_rules(["required", ValidationRule(rule="max:5")]) == ["required", "max:5"]

    def test_single_rule_object(self) -> None:
        assert parse_validation_rules(ValidationRule(rule="uuid")) == ["uuid"]

    def test_empty(self) -> None:
        assert parse_validation_rules(None) is None
        assert parse_validation_rules("") is None
