"""pycombiner - Combine real-time telemetry values into derived values."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycombiner")
except PackageNotFoundError:
    __version__ = "0+local"
from pycombiner.bus import BusSubscription, DeltaBus
from pycombiner.config import CombinerConfig
from pycombiner.emitter import DeltaEmitter
from pycombiner.engine import CombinerEngine, EngineState
from pycombiner.exceptions import (
    CombinerConfigError,
    CombinerError,
    CombinerStateError,
    CombinerSubscriptionError,
)
from pycombiner.models import (
    CombinationRule,
    CombinerSettings,
    Delta,
    Operation,
    PathValue,
    ReadinessPolicy,
    settings_schema,
)
from pycombiner.state.store import ValueStore
from pycombiner.subscription import PathSubscription, SubscriptionRequest

__all__ = [
    "__version__",
    "BusSubscription",
    "CombinationRule",
    "CombinerConfig",
    "CombinerConfigError",
    "CombinerEngine",
    "CombinerError",
    "CombinerSettings",
    "CombinerStateError",
    "CombinerSubscriptionError",
    "Delta",
    "DeltaBus",
    "DeltaEmitter",
    "EngineState",
    "Operation",
    "PathSubscription",
    "PathValue",
    "ReadinessPolicy",
    "SubscriptionRequest",
    "ValueStore",
    "settings_schema",
]
