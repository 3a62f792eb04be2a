"""Normalization helpers.

Centralizes the numeric checks applied to incoming telemetry values.
"""

from __future__ import annotations

import math
from typing import Any


def is_number(value: Any) -> bool:
    """Return True for finite-or-infinite real numbers, excluding bools and NaN."""
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def safe_float(value: Any) -> float | None:
    """Return *value* as a float, or ``None`` when it is not a usable number.

    Unlike ``float()``, numeric strings are rejected: telemetry values
    arrive already typed and a string in a numeric path is corruption.
    """
    if not is_number(value):
        return None
    return float(value)
