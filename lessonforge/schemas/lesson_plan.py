"""
Lesson plan schemas.
"""

import uuid
from typing import List, Optional

from pydantic import BaseModel, Field

from lessonforge.engines.hierarchy.records import LessonPlan, TopicRecord


class LessonPlanCreate(BaseModel):
    """Lesson plan creation request. ``name`` defaults to the main topic."""

    name: Optional[str] = Field(None, max_length=500)
    main_topic_name: str = Field(..., min_length=1, max_length=500)
    topics: List[TopicRecord] = Field(default_factory=list)
    is_public: bool = False

    def to_plan(self, plan_id: Optional[uuid.UUID] = None) -> LessonPlan:
        return LessonPlan(
            id=plan_id,
            name=(self.name or "").strip() or self.main_topic_name,
            main_topic_name=self.main_topic_name,
            topics=self.topics,
            is_public=self.is_public,
        )


class LessonPlanUpdate(LessonPlanCreate):
    """Full replacement of a lesson plan's content."""


class VisibilityUpdate(BaseModel):
    is_public: bool


class LessonPlanSummary(BaseModel):
    """Lesson plan list item."""

    id: uuid.UUID
    name: str
    main_topic_name: str
    topic_count: int
    is_public: bool

    @classmethod
    def from_plan(cls, plan: LessonPlan) -> "LessonPlanSummary":
        return cls(
            id=plan.id,
            name=plan.name,
            main_topic_name=plan.main_topic_name,
            topic_count=len(plan.topics),
            is_public=plan.is_public,
        )


class CombinedDocumentResponse(BaseModel):
    """Combined document preview; ``filename`` is what the download is called."""

    lesson_plan_id: Optional[uuid.UUID] = None
    name: str
    filename: str
    content: str
    orphaned_subtopics: List[str] = Field(default_factory=list)
