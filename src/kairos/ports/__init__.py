"""Ports - interfaces/protocols for external dependencies."""

from .legacy_sessions import LegacySessionSource
from .planner_repo import PlannerRepository, Snapshot

__all__ = [
    "PlannerRepository",
    "Snapshot",
    "LegacySessionSource",
]
