"""Base model for combiner configuration and delta payloads.

Every pycombiner model inherits from :class:`CombinerBaseModel` which
provides:

* ``frozen=True`` so rules and envelopes are immutable once loaded.
* ``extra="ignore"`` so settings documents written for newer or older
  versions (or carrying UI-only keys) still load.
* ``populate_by_name=True`` so fields can be set by their Python name
  as well as by their wire alias (``input`` vs ``inputs``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CombinerBaseModel(BaseModel):
    """Base for pycombiner models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
