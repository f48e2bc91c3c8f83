from __future__ import annotations

from typing import Any


# -----------------------------------------------------------------------------
def clamp(
    value: float, minimum: float | None = None, maximum: float | None = None
) -> float:
    if minimum is not None and value < minimum:
        value = minimum
    if maximum is not None and value > maximum:
        value = maximum
    return value


# -----------------------------------------------------------------------------
def coerce_int(
    value: Any,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    if isinstance(value, bool):
        candidate = default
    else:
        try:
            candidate = int(value)
        except (TypeError, ValueError):
            candidate = default
    return int(clamp(candidate, minimum, maximum))


# -----------------------------------------------------------------------------
def coerce_float(
    value: Any,
    default: float,
    minimum: float | None = None,
    maximum: float | None = None,
) -> float:
    if isinstance(value, bool):
        candidate = default
    else:
        try:
            candidate = float(value)
        except (TypeError, ValueError):
            candidate = default
    return float(clamp(candidate, minimum, maximum))


# -----------------------------------------------------------------------------
def coerce_str(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text if text else default
