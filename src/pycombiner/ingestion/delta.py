"""Delta envelope parsing.

Inbound deltas come from the host bus and are not trusted to be well
formed.  Anything that does not look like an update is dropped here so
the engine only ever sees a flat, ordered list of :class:`PathValue`.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from typing import Any

from pydantic import ValidationError

from pycombiner.models.delta import PathValue

_logger = logging.getLogger(__name__)


def _source_label(update: Mapping[str, Any]) -> str | None:
    source = update.get("source")
    if not isinstance(source, Mapping):
        return None
    label = source.get("label")
    return label if isinstance(label, str) else None


def _iter_value_entries(delta: Any) -> list[Any]:
    if not isinstance(delta, Mapping):
        return []
    updates = delta.get("updates")
    if not isinstance(updates, list | tuple):
        return []
    entries: list[Any] = []
    for update in updates:
        if not isinstance(update, Mapping):
            continue
        values = update.get("values")
        if not isinstance(values, list | tuple):
            continue
        entries.extend(values)
    return entries


def extract_updates(
    delta: Any,
    *,
    paths: Collection[str] | None = None,
) -> list[PathValue]:
    """Flatten a delta into ordered path/value updates.

    Parameters
    ----------
    delta
        Parsed delta message. Envelopes without ``updates`` (or with a
        non-list ``updates``) yield an empty batch.
    paths
        Optional filter; when given, only updates for these paths are kept.

    Returns
    -------
    list[PathValue]
        Updates in envelope order. Later entries for the same path win
        when applied to the store.
    """
    result: list[PathValue] = []
    for entry in _iter_value_entries(delta):
        if not isinstance(entry, Mapping) or not isinstance(entry.get("path"), str):
            _logger.debug("Skipping malformed delta value entry: %r", entry)
            continue
        try:
            update = PathValue.model_validate(entry)
        except ValidationError:
            _logger.debug("Skipping invalid delta value entry: %r", entry, exc_info=True)
            continue
        if paths is not None and update.path not in paths:
            continue
        result.append(update)
    return result


def delta_context(delta: Any) -> str | None:
    """Return the delta ``context`` if present."""
    if not isinstance(delta, Mapping):
        return None
    context = delta.get("context")
    return context if isinstance(context, str) and context else None


def is_echo(delta: Any, source_label: str) -> bool:
    """Return True when every update in *delta* was published by *source_label*."""
    if not isinstance(delta, Mapping):
        return False
    updates = delta.get("updates")
    if not isinstance(updates, list | tuple) or not updates:
        return False
    return all(isinstance(update, Mapping) and _source_label(update) == source_label for update in updates)
