# services/api/core/errors.py
"""
Errors raised by packet generation.

Per-document resolution problems are NOT exceptions here: they are collected
as models.packet.ResolutionFailure values and the build carries on.
"""
from __future__ import annotations

from typing import Sequence


class PacketError(Exception):
    """Base class for fatal packet build errors."""


class InvalidMetadata(PacketError):
    """Required cover-page metadata is missing. Raised before any page is written."""

    def __init__(self, missing: Sequence[str]):
        self.missing = tuple(missing)
        super().__init__(f"Missing required packet metadata: {', '.join(self.missing)}")


class SerializationFailure(PacketError):
    """The merged packet could not be written out as PDF bytes."""
