"""
Saved topic records, one row per (owner, main topic, name).
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lessonforge.engines.hierarchy.records import TopicRecord
from lessonforge.kernel.models.base import Base, RowIdMixin, TimestampMixin


class TopicRow(Base, RowIdMixin, TimestampMixin):
    """A topic or subtopic saved outside any lesson plan."""

    __tablename__ = "topics"
    __table_args__ = (
        UniqueConstraint("owner_id", "main_topic_name", "name", name="uq_topics_owner_main_name"),
    )

    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_subtopic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parent_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    main_topic_name: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    order: Mapped[Optional[int]] = mapped_column("sort_order", Integer, nullable=True)

    def to_record(self) -> TopicRecord:
        return TopicRecord(
            name=self.name,
            content=self.content or "",
            is_subtopic=self.is_subtopic,
            parent_name=self.parent_name,
            main_topic_name=self.main_topic_name,
            order=self.order,
        )

    def __repr__(self) -> str:
        return f"<TopicRow {self.main_topic_name}/{self.name}>"
