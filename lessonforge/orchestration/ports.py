"""
Ports the editing session depends on.

Implementations live in kernel.stores; tests pass in-memory fakes.
"""

from typing import Protocol

from lessonforge.engines.hierarchy.records import LessonPlan


class LessonPlanPort(Protocol):
    """Saves a whole lesson plan (create when it has no id, update otherwise)."""

    async def save_lesson_plan(self, plan: LessonPlan) -> LessonPlan:
        ...
