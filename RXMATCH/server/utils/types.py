from __future__ import annotations

from typing import Any

TRUE_STRINGS = frozenset({"1", "true", "yes", "on", "t", "y"})
FALSE_STRINGS = frozenset({"0", "false", "no", "off", "f", "n"})


# -----------------------------------------------------------------------------
def clamp_number(
    value: float, minimum: float | None = None, maximum: float | None = None
) -> float:
    if minimum is not None and value < minimum:
        value = minimum
    if maximum is not None and value > maximum:
        value = maximum
    return value


# -----------------------------------------------------------------------------
def coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
        return default
    if isinstance(value, (int, float)):
        # NaN coming from empty spreadsheet cells
        if value != value:
            return default
        return bool(value)
    # numpy scalars coming out of pandas frames
    if hasattr(value, "item"):
        try:
            return coerce_bool(value.item(), default)
        except (TypeError, ValueError):
            return default
    return default


# -----------------------------------------------------------------------------
def coerce_int(
    value: Any, default: int, minimum: int | None = None, maximum: int | None = None
) -> int:
    try:
        candidate = int(value)
    except (TypeError, ValueError, OverflowError):
        candidate = default
    return int(clamp_number(candidate, minimum, maximum))


# -----------------------------------------------------------------------------
def coerce_positive_int(value: Any, default: int = 1) -> int:
    if isinstance(value, bool):
        return default
    candidate = coerce_int(value, default)
    return candidate if candidate > 0 else default


# -----------------------------------------------------------------------------
def coerce_float(
    value: Any, default: float, minimum: float | None = None, maximum: float | None = None
) -> float:
    if isinstance(value, bool):
        candidate = default
    else:
        try:
            candidate = float(value)
        except (TypeError, ValueError):
            candidate = default
    if candidate != candidate:
        candidate = default
    return clamp_number(candidate, minimum, maximum)


# -----------------------------------------------------------------------------
def coerce_str(value: Any, default: str) -> str:
    if value is None:
        return default
    text = value.strip() if isinstance(value, str) else str(value).strip()
    return text or default


# -----------------------------------------------------------------------------
def coerce_str_or_none(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    return None


__all__ = [
    "clamp_number",
    "coerce_bool",
    "coerce_float",
    "coerce_int",
    "coerce_positive_int",
    "coerce_str",
    "coerce_str_or_none",
]
