"""
SQLAlchemy models. Import everything here so Base.metadata is complete.
"""

from lessonforge.kernel.models.base import Base, RowIdMixin, TimestampMixin
from lessonforge.kernel.models.editing_session import EditingSessionRow
from lessonforge.kernel.models.lesson_plan import LessonPlanRow
from lessonforge.kernel.models.topic import TopicRow

__all__ = [
    "Base",
    "TimestampMixin",
    "RowIdMixin",
    "EditingSessionRow",
    "LessonPlanRow",
    "TopicRow",
]
