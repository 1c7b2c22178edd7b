"""Range tracking for partial, revertible refinement of a document."""

from lessonforge.engines.refinement.range_tracker import (
    RangeTracker,
    TrackerSnapshot,
    TrackerState,
)

__all__ = [
    "RangeTracker",
    "TrackerSnapshot",
    "TrackerState",
]
