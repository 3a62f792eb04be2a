"""Ingestion layer.

This package turns raw deltas delivered by a subscription source into
normalized ``(path, value)`` updates for the engine.
"""

__all__: list[str] = []
