"""
Tracking module.

The canonical tracker implementation is in tracking.tracker.
"""

from .tracker import DEFAULT_PALETTE, MultiBoxTracker

__all__ = ["DEFAULT_PALETTE", "MultiBoxTracker"]
