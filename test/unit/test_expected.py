"""Tests for Expected document building."""

from kettledb.expected import build_expected

SCHEMA = {"id": "S", "age": "N"}


def test_existence_only_assertion() -> None:
    assert build_expected(SCHEMA, {}, {"age": False}) == {"age": {"Exists": False}}


def test_values_are_typed() -> None:
    result = build_expected(SCHEMA, {"id": "u1", "age": 20})

    assert result == {"id": {"Value": {"S": "u1"}}, "age": {"Value": {"N": "20"}}}


def test_exists_is_merged_into_value_entry() -> None:
    result = build_expected(SCHEMA, {"age": "20"}, {"age": True, "id": False})

    assert result == {
        "age": {"Value": {"N": "20"}, "Exists": True},
        "id": {"Exists": False},
    }


def test_nothing_expected() -> None:
    assert build_expected(SCHEMA) == {}
