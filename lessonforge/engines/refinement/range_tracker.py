"""
Refinement Range Tracker.

Keeps a document buffer and one tracked span [start, end) while a selection
is refined, accepted and possibly reverted.

States:
    IDLE      no selection tracked
    SELECTED  span recorded, original text captured verbatim
    REFINED   a replacement was accepted; end now bounds the replacement

Any direct user edit to the buffer invalidates the offsets, so the session
calls clear_on_manual_edit() and the tracker drops back to IDLE.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from lessonforge.errors import InvalidRange, NoActiveRefinement
from lessonforge.logging_config import get_logger

logger = get_logger(__name__)


class TrackerState(str, Enum):
    """Lifecycle of a tracked span."""
    IDLE = "idle"
    SELECTED = "selected"
    REFINED = "refined"


class TrackerSnapshot(BaseModel):
    """Serializable tracker state, stored with the editing session."""

    state: TrackerState = TrackerState.IDLE
    buffer: str = ""
    start: int = 0
    end: int = 0
    original_text: Optional[str] = None
    refined_text: Optional[str] = None


class RangeTracker:
    """
    Tracks one span of a document through select -> refine -> revert.

    Offsets are never clamped: out-of-range input raises InvalidRange and
    leaves the tracker untouched.
    """

    def __init__(self, buffer: str = ""):
        self.buffer = buffer
        self.state = TrackerState.IDLE
        self.start = 0
        self.end = 0
        self.original_text: Optional[str] = None
        self.refined_text: Optional[str] = None

    @property
    def is_tracking(self) -> bool:
        return self.state != TrackerState.IDLE

    @property
    def selected_text(self) -> str:
        """Text currently occupying the tracked span."""
        if not self.is_tracking:
            return ""
        return self.buffer[self.start:self.end]

    def select(self, full: str, start: int, end: int) -> str:
        """
        Start tracking [start, end) of ``full``.

        Re-selecting after a refinement discards the refinement bookkeeping
        without accepting or reverting anything.

        Returns:
            The captured original text.
        """
        if start < 0 or end > len(full) or start > end:
            raise InvalidRange(start=start, end=end, length=len(full))

        self.buffer = full
        self.start = start
        self.end = end
        self.original_text = full[start:end]
        self.refined_text = None
        self.state = TrackerState.SELECTED
        return self.original_text

    def apply_remote_replacement(self, updated_full: str) -> str:
        """
        Accept a provider reply that contains the whole document with the
        tracked span already substituted.

        The fragment is recovered by anchoring the prefix at ``start`` and the
        suffix at the tail of ``updated_full``. A provider that changes text
        before ``start`` corrupts the result; that is logged, not corrected.

        Returns:
            The new buffer.
        """
        self._require_span("No tracked selection to apply a refinement to")

        full = self.buffer
        tail_length = len(full) - self.end
        stop = len(updated_full) - tail_length
        if stop < self.start:
            raise InvalidRange(
                "Refined document is too short to contain the tracked span",
                start=self.start,
                end=stop,
                length=len(updated_full),
            )

        extracted = updated_full[self.start:stop]
        if updated_full[:self.start] != full[:self.start] or updated_full[stop:] != full[self.end:]:
            logger.warning(
                "Provider reply differs outside the tracked span",
                extra={"span_start": self.start, "span_end": self.end, "reply_length": len(updated_full)},
            )
        return self._accept(extracted)

    def apply_fragment(self, fragment: str) -> str:
        """Accept a bare replacement fragment for the tracked span."""
        self._require_span("No tracked selection to replace")
        return self._accept(fragment)

    def revert(self) -> str:
        """
        Put the original text back in place of the accepted refinement.

        Returns:
            The restored buffer.
        """
        if self.state != TrackerState.REFINED or self.original_text is None:
            raise NoActiveRefinement("No accepted refinement to revert")

        self.buffer = self.buffer[:self.start] + self.original_text + self.buffer[self.end:]
        self.end = self.start + len(self.original_text)
        self.refined_text = None
        self.state = TrackerState.SELECTED
        return self.buffer

    def clear_on_manual_edit(self, buffer: Optional[str] = None) -> None:
        """Forget the tracked span after an independent edit of the buffer."""
        if buffer is not None:
            self.buffer = buffer
        self.state = TrackerState.IDLE
        self.start = 0
        self.end = 0
        self.original_text = None
        self.refined_text = None

    def snapshot(self) -> TrackerSnapshot:
        return TrackerSnapshot(
            state=self.state,
            buffer=self.buffer,
            start=self.start,
            end=self.end,
            original_text=self.original_text,
            refined_text=self.refined_text,
        )

    @classmethod
    def restore(cls, snapshot: TrackerSnapshot) -> "RangeTracker":
        tracker = cls(snapshot.buffer)
        tracker.state = snapshot.state
        tracker.start = snapshot.start
        tracker.end = snapshot.end
        tracker.original_text = snapshot.original_text
        tracker.refined_text = snapshot.refined_text
        return tracker

    def _require_span(self, message: str) -> None:
        if self.state == TrackerState.IDLE:
            raise NoActiveRefinement(message)
        if self.end > len(self.buffer) or self.start > self.end:
            raise InvalidRange(start=self.start, end=self.end, length=len(self.buffer))

    def _accept(self, fragment: str) -> str:
        self.buffer = self.buffer[:self.start] + fragment + self.buffer[self.end:]
        self.refined_text = fragment
        self.end = self.start + len(fragment)
        self.state = TrackerState.REFINED
        return self.buffer
