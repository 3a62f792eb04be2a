"""Arithmetic operations used to combine input values."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from pycombiner.models.rule import Operation

# Fewer present values than this makes a product meaningless.
MIN_MULTIPLICATION_VALUES = 2


def addition(values: Sequence[Any]) -> Any:
    """Sum of *values* in order, starting from 0."""
    result: Any = 0.0
    for value in values:
        result += value
    return result


def multiplication(values: Sequence[Any]) -> Any | None:
    """Product of *values* in order, starting from the first value.

    Returns ``None`` when fewer than two values are given.
    """
    if len(values) < MIN_MULTIPLICATION_VALUES:
        return None
    result = values[0]
    for value in values[1:]:
        result *= value
    return result


_OPERATIONS: dict[Operation, Callable[[Sequence[Any]], Any | None]] = {
    Operation.ADDITION: addition,
    Operation.MULTIPLICATION: multiplication,
}


def combine(operation: Operation, values: Sequence[Any]) -> Any | None:
    """Apply *operation* to *values*.

    ``None`` means the operation has nothing to produce for these values
    and the rule should be skipped for this evaluation.
    """
    return _OPERATIONS[operation](values)
