"""Custom exception hierarchy for pycombiner."""

from __future__ import annotations


class CombinerError(Exception):
    """Base exception for all pycombiner errors."""


class CombinerConfigError(CombinerError):
    """Invalid or missing combination configuration.

    Raised when a settings document cannot be turned into combination
    rules, e.g. a rule with fewer than two input paths or an unknown
    operation.  The engine catches this on ``start`` and stays stopped.
    """


class CombinerSubscriptionError(CombinerError):
    """The subscription source failed to deliver updates."""


class CombinerStateError(CombinerError):
    """Operation is not valid in the current lifecycle state."""
