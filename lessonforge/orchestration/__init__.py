"""Editing-session orchestration."""

from lessonforge.orchestration.ports import LessonPlanPort
from lessonforge.orchestration.session_state import (
    LessonPlanSession,
    OperationKind,
    SessionFlag,
    SessionSnapshot,
    hierarchy_from_records,
)

__all__ = [
    "LessonPlanPort",
    "LessonPlanSession",
    "OperationKind",
    "SessionFlag",
    "SessionSnapshot",
    "hierarchy_from_records",
]
