"""Unit tests for shared parsing helpers."""

from __future__ import annotations

import pytest

from bookcast.parsing import normalize_optional_string, parse_permissive_boolean, parse_speed


def test_normalize_optional_string() -> None:
    assert normalize_optional_string(None) is None
    assert normalize_optional_string("   ") is None
    assert normalize_optional_string("  af_heart ") == "af_heart"
    assert normalize_optional_string(1.5) == "1.5"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, True), ("YES", True), ("1", True), ("off", False), ("0", False), ("maybe", None), ("", None)],
)
def test_parse_permissive_boolean(value: object, expected: bool | None) -> None:
    assert parse_permissive_boolean(value) is expected


def test_parse_speed_defaults_when_blank_and_parses_numbers() -> None:
    assert parse_speed(None) == 1.0
    assert parse_speed("  ", default=1.2) == 1.2
    assert parse_speed("0.8") == 0.8


@pytest.mark.parametrize("value", ["fast", "nan", "inf"])
def test_parse_speed_rejects_non_finite_input(value: str) -> None:
    with pytest.raises(ValueError):
        parse_speed(value)
