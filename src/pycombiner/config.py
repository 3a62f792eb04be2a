"""Engine configuration for pycombiner."""

from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path
from typing import Any

from pycombiner.exceptions import CombinerConfigError
from pycombiner.models.rule import ReadinessPolicy
from pycombiner.models.settings import CombinerSettings

DEFAULT_PLUGIN_ID = "value-combiner"
DEFAULT_CONTEXT = "vessels.self"
DEFAULT_SUBSCRIPTION_PERIOD_MS = 500


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def load_settings_file(path: str | os.PathLike[str]) -> CombinerSettings:
    """Read and validate a JSON settings document from disk."""
    settings_path = Path(path)
    try:
        raw = json.loads(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CombinerConfigError(f"settings file not found: {settings_path}") from exc
    except json.JSONDecodeError as exc:
        raise CombinerConfigError(f"settings file is not valid JSON: {settings_path}: {exc}") from exc
    return CombinerSettings.from_settings(raw)


@dataclasses.dataclass(frozen=True)
class CombinerConfig:
    """Engine configuration.

    Parameters
    ----------
    settings : CombinerSettings
        Combination rules and the engine-wide readiness policy.
    plugin_id : str
        Identifier the engine publishes under; also the source label of
        every output delta.
    context : str
        Context of outbound deltas and of the input subscription.
    subscription_period_ms : int
        Requested minimum interval between deliveries per input path.
    numeric_only : bool
        Treat non-numeric input values as absent instead of storing them.
        Disable only to reproduce legacy behaviour where such values flow
        into the arithmetic unchecked.
    """

    settings: CombinerSettings = dataclasses.field(default_factory=CombinerSettings)
    plugin_id: str = DEFAULT_PLUGIN_ID
    context: str = DEFAULT_CONTEXT
    subscription_period_ms: int = DEFAULT_SUBSCRIPTION_PERIOD_MS
    numeric_only: bool = True

    @classmethod
    def from_settings(cls, raw: Any, **overrides: Any) -> CombinerConfig:
        """Build a configuration from a raw settings document.

        Raises
        ------
        CombinerConfigError
            If the settings document is invalid.
        """
        return cls(settings=CombinerSettings.from_settings(raw), **overrides)

    @classmethod
    def from_env(cls, **overrides: Any) -> CombinerConfig:
        """Create configuration from environment variables.

        Reads ``COMBINER_SETTINGS_FILE`` (a JSON settings document) and
        optional ``COMBINER_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        CombinerConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        settings_file = env.get("COMBINER_SETTINGS_FILE")
        settings = load_settings_file(settings_file) if settings_file else CombinerSettings()

        readiness_env = env.get("COMBINER_READINESS")
        if readiness_env is not None:
            try:
                readiness = ReadinessPolicy(readiness_env.strip().lower())
            except ValueError as exc:
                raise CombinerConfigError(f"invalid COMBINER_READINESS: {readiness_env!r}") from exc
            settings = settings.model_copy(update={"readiness": readiness})
        config_kwargs["settings"] = settings

        _ENV_CONFIG_MAP = {
            "COMBINER_PLUGIN_ID": "plugin_id",
            "COMBINER_CONTEXT": "context",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        period_env = env.get("COMBINER_SUBSCRIPTION_PERIOD_MS")
        if period_env is not None and "subscription_period_ms" not in overrides:
            try:
                config_kwargs["subscription_period_ms"] = int(period_env)
            except ValueError as exc:
                raise CombinerConfigError(f"invalid COMBINER_SUBSCRIPTION_PERIOD_MS: {period_env!r}") from exc

        if "numeric_only" not in overrides:
            config_kwargs["numeric_only"] = _env_bool(env.get("COMBINER_NUMERIC_ONLY"), True)

        settings_override = overrides.pop("settings", None)
        if settings_override is not None:
            config_kwargs["settings"] = CombinerSettings.from_settings(settings_override)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

    @property
    def readiness(self) -> ReadinessPolicy:
        return self.settings.readiness
