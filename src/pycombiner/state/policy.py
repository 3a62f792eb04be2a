"""Readiness policy.

This module decides which stored values a rule is allowed to combine.
It contains no arithmetic; see :mod:`pycombiner.operations`.
"""

from __future__ import annotations

from typing import Any

from pycombiner.models.rule import CombinationRule, ReadinessPolicy
from pycombiner.state.store import ValueStore


def missing_inputs(rule: CombinationRule, store: ValueStore) -> list[str]:
    """Input paths of *rule* that currently have no value."""
    return [path for path in rule.inputs if path not in store]


def gather_inputs(
    rule: CombinationRule,
    store: ValueStore,
    policy: ReadinessPolicy,
) -> list[Any] | None:
    """Collect the values *rule* should combine, in input order.

    Policy:
    - strict: return ``None`` (defer the rule) if any input is absent.
    - lenient: return the values of the present inputs; absent inputs
      contribute nothing.
    """
    values: list[Any] = []
    for path in rule.inputs:
        if path not in store:
            if policy == ReadinessPolicy.STRICT:
                return None
            continue
        values.append(store.get(path))
    return values
