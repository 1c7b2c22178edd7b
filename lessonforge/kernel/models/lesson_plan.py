"""
Lesson plans. Topic records are stored inline as a JSON list; the plan is
always read and written as a whole.
"""

from typing import Any, Dict, List

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from lessonforge.engines.hierarchy.records import LessonPlan, TopicRecord
from lessonforge.kernel.models.base import Base, RowIdMixin, TimestampMixin


class LessonPlanRow(Base, RowIdMixin, TimestampMixin):
    __tablename__ = "lesson_plans"

    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    main_topic_name: Mapped[str] = mapped_column(String(500), nullable=False)
    topics: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)

    def to_plan(self) -> LessonPlan:
        return LessonPlan(
            id=self.id,
            name=self.name,
            main_topic_name=self.main_topic_name,
            topics=[TopicRecord.model_validate(item) for item in (self.topics or [])],
            is_public=self.is_public,
        )

    def apply(self, plan: LessonPlan) -> None:
        """Copy the plan's content onto this row (id and owner untouched)."""
        self.name = plan.name
        self.main_topic_name = plan.main_topic_name
        self.topics = [record.model_dump() for record in plan.topics]
        self.is_public = plan.is_public

    def __repr__(self) -> str:
        return f"<LessonPlanRow {self.id} {self.name!r}>"
