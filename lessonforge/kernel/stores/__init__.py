"""Persistence boundary over AsyncSession."""

from lessonforge.kernel.stores.lesson_plan_store import LessonPlanStore
from lessonforge.kernel.stores.session_store import SessionSnapshotStore
from lessonforge.kernel.stores.topic_store import TopicStore

__all__ = ["LessonPlanStore", "SessionSnapshotStore", "TopicStore"]
