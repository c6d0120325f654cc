"""Coercion of JSON body fields into the numeric types the repositories store."""
from fossinvoice.shared.errors import InvalidDataError


def as_int(body: dict, key: str) -> int:
    """Integer field of body; missing, null or empty means 0."""
    value = body.get(key)
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidDataError(f"{key} must be an integer.") from None


def as_float(body: dict, key: str) -> float:
    """Numeric field of body; missing, null or empty means 0.0."""
    value = body.get(key)
    if value in (None, ""):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidDataError(f"{key} must be a number.") from None


def as_list(body: dict, key: str) -> list[dict]:
    """List of objects under key; missing or null means empty."""
    value = body.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise InvalidDataError(f"{key} must be a list of objects.")
    return value
