"""Shared parsing helpers for config and request value normalization."""

from __future__ import annotations


_TRUE_BOOLEAN_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_BOOLEAN_TOKENS = frozenset({"0", "false", "no", "off"})


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse a permissive boolean token and return `None` for invalid values."""

    if isinstance(value, bool):
        return value

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None

    token = normalized.lower()
    if token in _TRUE_BOOLEAN_TOKENS:
        return True
    if token in _FALSE_BOOLEAN_TOKENS:
        return False
    return None


def parse_speed(value: object, *, default: float = 1.0) -> float:
    """Parse a speed factor from form/CLI input, falling back to `default` when blank.

    Raises:
        ValueError: If the value is present but not a finite number.
    """

    normalized = normalize_optional_string(value)
    if normalized is None:
        return default
    try:
        parsed = float(normalized)
    except ValueError as exc:
        raise ValueError(f"Speed `{normalized}` is not a number.") from exc
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        raise ValueError(f"Speed `{normalized}` is not a finite number.")
    return parsed
