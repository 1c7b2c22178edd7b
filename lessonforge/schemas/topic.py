"""
Topic record schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field

from lessonforge.engines.hierarchy.records import TopicRecord


class TopicUpsert(BaseModel):
    """Save a topic record for the caller."""

    name: str = Field(..., min_length=1, max_length=500)
    content: str = ""
    is_subtopic: bool = False
    parent_name: Optional[str] = Field(None, max_length=500)
    main_topic_name: str = Field("", max_length=500)
    order: Optional[int] = None

    def to_record(self) -> TopicRecord:
        return TopicRecord(**self.model_dump())
