"""
Error taxonomy shared by the engines, the editing session and the API.

Tracker and synthesizer errors are local programming errors and propagate
unchanged. Provider and persistence errors are caught at the session boundary
and turned into a user-facing message.
"""

from typing import Optional


class LessonForgeError(Exception):
    """Base class for all domain errors."""

    code: str = "lessonforge_error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class InvalidRange(LessonForgeError):
    """Offsets fall outside the document or start > end."""

    code = "invalid_range"

    def __init__(self, message: Optional[str] = None, *, start: int = 0, end: int = 0, length: int = 0):
        self.start = start
        self.end = end
        self.length = length
        super().__init__(
            message or f"Invalid range [{start}, {end}) for document of length {length}"
        )


class NoActiveRefinement(LessonForgeError):
    """There is no accepted refinement to revert (or no tracked selection to refine)."""

    code = "no_active_refinement"


class OperationInProgress(LessonForgeError):
    """Another generate/refine call is still outstanding for this session."""

    code = "operation_in_progress"

    def __init__(self, in_flight: str):
        self.in_flight = in_flight
        super().__init__(f"A {in_flight} operation is already in progress")


class ProviderUnavailable(LessonForgeError):
    """The content provider could not be reached or returned an error."""

    code = "provider_unavailable"

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ValidationError(LessonForgeError):
    """Malformed user input, rejected before any provider call."""

    code = "validation_error"

    def __init__(self, message: str, *, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class NotFoundOrForbidden(LessonForgeError):
    """The lesson plan does not exist or is neither owned by nor shared with the caller."""

    code = "not_found_or_forbidden"


class PersistenceUnavailable(LessonForgeError):
    """The lesson plan store could not complete the request."""

    code = "persistence_unavailable"
