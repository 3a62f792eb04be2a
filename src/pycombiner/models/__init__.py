"""Pydantic models for combination rules, settings and delta envelopes."""

from pycombiner.models.delta import Delta, DeltaSource, DeltaUpdate, PathValue, build_output_delta, format_timestamp
from pycombiner.models.rule import CombinationRule, Operation, ReadinessPolicy
from pycombiner.models.settings import CombinerSettings, settings_schema

__all__ = [
    "CombinationRule",
    "CombinerSettings",
    "Delta",
    "DeltaSource",
    "DeltaUpdate",
    "Operation",
    "PathValue",
    "ReadinessPolicy",
    "build_output_delta",
    "format_timestamp",
    "settings_schema",
]
