"""Adapters - I/O implementations of ports."""

from .json_store import JsonPlannerStore
from .legacy_history import FileLegacySessionLog
from .memory_store import MemoryPlannerStore

__all__ = [
    "JsonPlannerStore",
    "MemoryPlannerStore",
    "FileLegacySessionLog",
]
