"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import RecordStore, WriteResult

__all__ = [
    "RecordStore",
    "WriteResult",
]
