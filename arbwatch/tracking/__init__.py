"""
Opportunity lifetime tracking.
"""

from .persistence import ArbTracker, ArbStats, DEFAULT_STALE_MINUTES

__all__ = ["ArbTracker", "ArbStats", "DEFAULT_STALE_MINUTES"]
