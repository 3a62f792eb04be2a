"""Combination rule model."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field, field_validator, model_validator

from pycombiner.models._base import CombinerBaseModel


class Operation(StrEnum):
    """Arithmetic operation used to combine input values."""

    ADDITION = "addition"
    MULTIPLICATION = "multiplication"

    @property
    def symbol(self) -> str:
        return "+" if self is Operation.ADDITION else "*"


class ReadinessPolicy(StrEnum):
    """How a rule treats input paths that have not been seen yet."""

    STRICT = "strict"
    """Defer the rule until every input path has a value."""

    LENIENT = "lenient"
    """Compute over whichever input paths currently have a value."""


class CombinationRule(CombinerBaseModel):
    """Derive one output path from two or more input paths."""

    inputs: tuple[str, ...] = Field(..., alias="input", min_length=2)
    """Input paths, in evaluation order. Duplicates contribute once per entry."""

    output: str
    """Path the combined value is published under."""

    operation: Operation = Operation.ADDITION
    """Combination operation. Configurations without the field always add."""

    description: str | None = None
    """Free-form label shown in configuration tools."""

    readiness: ReadinessPolicy | None = None
    """Per-rule override of the engine-wide readiness policy."""

    @field_validator("inputs")
    @classmethod
    def _normalize_inputs(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        paths = tuple(path.strip() for path in value)
        if any(not path for path in paths):
            raise ValueError("input paths must be non-empty")
        return paths

    @field_validator("output")
    @classmethod
    def _normalize_output(cls, value: str) -> str:
        path = value.strip()
        if not path:
            raise ValueError("output must be non-empty")
        return path

    @field_validator("operation", mode="before")
    @classmethod
    def _default_operation(cls, value: object) -> object:
        # Settings UIs save an unselected dropdown as null or "".
        if value is None or value == "":
            return Operation.ADDITION
        return value

    @model_validator(mode="after")
    def _output_not_an_input(self) -> CombinationRule:
        if self.output in self.inputs:
            raise ValueError(f"output {self.output!r} is also one of its inputs")
        return self

    def effective_readiness(self, default: ReadinessPolicy) -> ReadinessPolicy:
        """Return the readiness policy that applies to this rule."""
        return self.readiness if self.readiness is not None else default

    def __str__(self) -> str:
        joined = f" {self.operation.symbol} ".join(self.inputs)
        return f"{self.output} = {joined}"
