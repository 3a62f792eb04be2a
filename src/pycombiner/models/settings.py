"""Settings document model.

The settings document is what a host application stores for the
combiner: a list of combination rules under ``paths`` plus the
engine-wide readiness policy.  It is loaded once at engine start.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError, field_validator, model_validator

from pycombiner.exceptions import CombinerConfigError
from pycombiner.models._base import CombinerBaseModel
from pycombiner.models.rule import CombinationRule, ReadinessPolicy


def _format_validation_error(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def find_feedback_cycle(rules: tuple[CombinationRule, ...]) -> list[str] | None:
    """Return a path cycle formed by rule outputs feeding rule inputs, if any.

    Each rule adds edges from its inputs to its output. Published outputs
    are delivered back as inputs, so a cycle would never settle.
    """
    edges: dict[str, list[str]] = {}
    for rule in rules:
        for path in rule.inputs:
            edges.setdefault(path, []).append(rule.output)

    done: set[str] = set()
    stack: list[str] = []
    on_stack: set[str] = set()

    def _visit(path: str) -> list[str] | None:
        if path in on_stack:
            return [*stack[stack.index(path) :], path]
        if path in done:
            return None
        stack.append(path)
        on_stack.add(path)
        for target in edges.get(path, ()):
            cycle = _visit(target)
            if cycle is not None:
                return cycle
        stack.pop()
        on_stack.discard(path)
        done.add(path)
        return None

    for start in list(edges):
        cycle = _visit(start)
        if cycle is not None:
            return cycle
    return None


class CombinerSettings(CombinerBaseModel):
    """Combination rules and engine-wide policy."""

    paths: tuple[CombinationRule, ...] = Field(default=(), title="Paths to combine")
    """Combination rules, in declaration (and output) order."""

    readiness: ReadinessPolicy = ReadinessPolicy.LENIENT
    """Default readiness policy for rules without an override."""

    @field_validator("paths", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return () if value is None else value

    @model_validator(mode="after")
    def _reject_feedback_cycles(self) -> CombinerSettings:
        cycle = find_feedback_cycle(self.paths)
        if cycle is not None:
            raise ValueError(f"rules feed back into themselves: {' -> '.join(cycle)}")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.paths

    def subscribed_paths(self) -> tuple[str, ...]:
        """Union of all rule inputs, in first-seen order."""
        seen: dict[str, None] = {}
        for rule in self.paths:
            for path in rule.inputs:
                seen.setdefault(path, None)
        return tuple(seen)

    @classmethod
    def from_settings(cls, raw: Any) -> CombinerSettings:
        """Validate a raw settings document.

        Parameters
        ----------
        raw : Mapping, CombinerSettings or None
            Parsed settings document. ``None`` yields empty settings.

        Raises
        ------
        CombinerConfigError
            If the document does not describe valid combination rules.
        """
        if isinstance(raw, CombinerSettings):
            return raw
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise CombinerConfigError(f"settings must be an object, got {type(raw).__name__}")
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise CombinerConfigError(_format_validation_error(exc)) from exc


def settings_schema() -> dict[str, Any]:
    """JSON schema of the settings document, as used by configuration UIs."""
    return CombinerSettings.model_json_schema(by_alias=True)
