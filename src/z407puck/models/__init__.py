"""Data models for Z407 pucks."""

from .state import InputSource, PuckState, PuckStateTracker

__all__ = [
    "InputSource",
    "PuckState",
    "PuckStateTracker",
]
