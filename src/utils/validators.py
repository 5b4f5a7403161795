"""Field-level validation helpers used inside pydantic validators."""

from typing import Any, Iterable, List, Optional


def ensure_present(value: Any, field: str) -> None:
    """Raise ValueError if value is falsy."""
    if value in (None, "", []):
        raise ValueError(f"{field} is required")
    if isinstance(value, str) and not value.strip():
        raise ValueError(f"{field} is required")


def optional_int(value: Any, field: str) -> Optional[int]:
    """Coerce a numeric-looking value to int; empty string becomes None.

    Fractional values are rejected rather than truncated.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return None
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{field} must be an integer, got {value!r}") from None
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{field} must be an integer, got {value!r}")
        return int(value)
    return value


def distinct_strings(values: Optional[Iterable[Any]]) -> List[str]:
    """Normalize a tag collection into an ordered list of distinct strings."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    seen = []
    for item in values:
        tag = str(item).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen
