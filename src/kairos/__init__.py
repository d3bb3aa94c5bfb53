"""Kairos - personal planner, focus timer and notes."""

__version__ = "0.1.0"
