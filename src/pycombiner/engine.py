"""Combiner engine.

Owns the value store, the immutable rule set and the input
subscription.  One inbound delta is processed to completion (store
update, evaluation of every rule, publishing) before the next.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any

from pycombiner.config import CombinerConfig
from pycombiner.exceptions import CombinerConfigError
from pycombiner.ingestion.delta import extract_updates, is_echo
from pycombiner.models.delta import PathValue
from pycombiner.models.rule import CombinationRule
from pycombiner.models.settings import CombinerSettings
from pycombiner.operations import combine
from pycombiner.state.policy import gather_inputs, missing_inputs
from pycombiner.state.store import ValueStore
from pycombiner.subscription import (
    StatusReporter,
    Subscription,
    SubscriptionRequest,
    SubscriptionSource,
    UpdateSink,
)

_logger = logging.getLogger(__name__)

STATUS_NO_PATHS = "No paths configured"
STATUS_NO_VALUES = "No values to publish"
STATUS_STOPPED = "Stopped"


class EngineState(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"


class CombinerEngine:
    """Combine input path values into derived output values.

    Usage::

        engine = CombinerEngine(config, source=bus, sink=emitter, status=print)
        engine.start()
        ...
        engine.stop()

    or as a context manager, which starts on entry and always stops on exit.
    """

    def __init__(
        self,
        config: CombinerConfig | None = None,
        *,
        source: SubscriptionSource,
        sink: UpdateSink,
        status: StatusReporter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config or CombinerConfig()
        self._source = source
        self._sink = sink
        self._status = status
        self._logger = logger or _logger
        self._store = ValueStore(numeric_only=self._config.numeric_only)
        self._state = EngineState.STOPPED
        self._settings = self._config.settings
        self._rules: tuple[CombinationRule, ...] = ()
        self._subscribed_paths: tuple[str, ...] = ()
        self._subscribed_set: frozenset[str] = frozenset()
        self._subscription: Subscription | None = None
        self._last_status: str | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> CombinerEngine:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is EngineState.RUNNING

    @property
    def rules(self) -> tuple[CombinationRule, ...]:
        """Rules in effect while running; empty when stopped."""
        return self._rules

    @property
    def subscribed_paths(self) -> tuple[str, ...]:
        return self._subscribed_paths

    @property
    def store(self) -> ValueStore:
        return self._store

    @property
    def last_status(self) -> str | None:
        return self._last_status

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, settings: CombinerSettings | Mapping[str, Any] | None = None) -> bool:
        """Load rules and subscribe to their input paths.

        ``settings`` replaces the configured settings for this and later
        starts. Returns whether the engine is running afterwards; empty or
        invalid settings leave it stopped and are reported via status.
        """
        if self._state is EngineState.RUNNING:
            self.stop()

        try:
            loaded = CombinerSettings.from_settings(settings if settings is not None else self._settings)
        except CombinerConfigError as exc:
            self._logger.warning("Invalid combiner configuration: %s", exc)
            self._report(f"Invalid configuration: {exc}")
            return False
        self._settings = loaded

        if loaded.is_empty:
            self._report(STATUS_NO_PATHS)
            return False

        self._store.clear()
        self._rules = loaded.paths
        self._subscribed_paths = loaded.subscribed_paths()
        self._subscribed_set = frozenset(self._subscribed_paths)
        request = SubscriptionRequest.for_paths(
            self._config.context,
            self._subscribed_paths,
            period=self._config.subscription_period_ms,
        )

        self._state = EngineState.RUNNING
        try:
            self._subscription = self._source.subscribe(
                request,
                self.handle_delta,
                self.handle_subscription_error,
            )
        except Exception as exc:
            self._logger.warning(
                "Subscribing to %d paths failed: %s",
                len(request.subscribe),
                exc,
                exc_info=True,
            )
            self._reset()
            self._report(f"Subscription error: {exc}")
            return False

        self._logger.info(
            "Combiner started rules=%d paths=%d readiness=%s",
            len(self._rules),
            len(self._subscribed_paths),
            loaded.readiness,
        )
        for rule in self._rules:
            self._logger.debug("Rule %s (%s)", rule, rule.effective_readiness(loaded.readiness))
        return True

    def stop(self) -> None:
        """Release the subscription and forget every stored value.

        Safe to call at any time between deltas, and more than once.
        """
        was_running = self._state is EngineState.RUNNING
        subscription = self._subscription
        self._subscription = None
        try:
            if subscription is not None:
                subscription.unsubscribe()
        finally:
            self._reset()
        if was_running:
            self._logger.info("Combiner stopped")
            self._report(STATUS_STOPPED)

    def _reset(self) -> None:
        self._store.clear()
        self._rules = ()
        self._subscribed_paths = ()
        self._subscribed_set = frozenset()
        self._subscription = None
        self._state = EngineState.STOPPED

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    def apply_updates(self, updates: Iterable[PathValue]) -> bool:
        """Record updates in order; later updates for a path win.

        Returns whether any stored value changed.
        """
        changed = False
        for update in updates:
            if self._store.record_update(update.path, update.value):
                changed = True
        return changed

    def evaluate(self) -> list[PathValue]:
        """Evaluate every rule against the current store, in rule order."""
        default_policy = self._settings.readiness
        outputs: list[PathValue] = []
        for rule in self._rules:
            policy = rule.effective_readiness(default_policy)
            values = gather_inputs(rule, self._store, policy)
            if values is None:
                self._logger.debug(
                    "Deferring computation %s, waiting for %s",
                    rule.output,
                    missing_inputs(rule, self._store),
                )
                continue
            try:
                result = combine(rule.operation, values)
            except (TypeError, ArithmeticError):
                self._logger.warning("Cannot compute %s from %r", rule.output, values, exc_info=True)
                continue
            if result is None:
                self._logger.debug("Missing values for computation %s", rule.output)
                continue
            outputs.append(PathValue(path=rule.output, value=result))
        return outputs

    def handle_delta(self, delta: Any) -> list[PathValue]:
        """Process one inbound delta and publish the derived values.

        Our own published values are applied like any other update, so a
        rule output can feed another rule. When such an echo leaves the
        store unchanged, the outputs equal the ones just published and are
        not published again.

        Returns the values handed to the update sink (possibly empty).
        """
        if self._state is not EngineState.RUNNING:
            self._logger.debug("Ignoring delta received while stopped")
            return []

        changed = self.apply_updates(extract_updates(delta, paths=self._subscribed_set))
        outputs = self.evaluate()
        if not changed and is_echo(delta, self._config.plugin_id):
            self._logger.debug("Own output echoed back unchanged, %d values already published", len(outputs))
            outputs = []
        if not outputs:
            self._report(STATUS_NO_VALUES)
            return outputs

        try:
            self._sink.publish(outputs)
        except Exception as exc:
            self._logger.warning("Publishing %d values failed", len(outputs), exc_info=True)
            self._report(f"Failed to publish {len(outputs)} values: {exc}")
            return outputs
        self._report(f"Published {len(outputs)} values")
        return outputs

    def handle_subscription_error(self, error: Exception) -> None:
        """Error channel of the subscription; never stops the engine."""
        self._logger.warning("Subscription error: %s", error)
        self._report(f"Subscription error: {error}")

    def _report(self, status: str) -> None:
        self._last_status = status
        self._logger.debug("Status: %s", status)
        if self._status is None:
            return
        try:
            self._status(status)
        except Exception:
            self._logger.debug("Status reporter failed", exc_info=True)
