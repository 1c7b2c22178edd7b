"""
Topic Record model - the atomic node of a lesson plan.

A record is either a main topic (is_subtopic=False, no parent) or a subtopic
pointing at its main topic by name. Names are unique among siblings only.
"""

import uuid
from typing import Iterable, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field, model_validator


class TopicRecord(BaseModel):
    """One main topic or subtopic with its content and ordering metadata."""

    name: str = Field(..., validation_alias=AliasChoices("name", "topic"))
    content: str = Field("", validation_alias=AliasChoices("content", "mdxContent", "mdx_content"))
    is_subtopic: bool = Field(False, validation_alias=AliasChoices("is_subtopic", "isSubtopic"))
    parent_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("parent_name", "parentTopic", "parent_topic")
    )
    main_topic_name: str = Field("", validation_alias=AliasChoices("main_topic_name", "mainTopic", "main_topic"))
    order: Optional[int] = None

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _drop_self_parent(self) -> "TopicRecord":
        # Stored plans anchor main topics to themselves; a main topic has no parent.
        if not self.is_subtopic:
            self.parent_name = None
        return self

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())


def record_sort_key(record: TopicRecord) -> Tuple[bool, int]:
    """Defined orders ascending first, undefined orders after them."""
    return (record.order is None, record.order if record.order is not None else 0)


def sort_records(records: Iterable[TopicRecord]) -> List[TopicRecord]:
    """
    Sort sibling records by ``order``.

    sorted() is stable, so ties and records without an order keep their
    input position relative to one another.
    """
    return sorted(records, key=record_sort_key)


class LessonPlan(BaseModel):
    """A named collection of topic records plus its visibility flag."""

    id: Optional[uuid.UUID] = None
    name: str
    main_topic_name: str
    topics: List[TopicRecord] = Field(default_factory=list)
    is_public: bool = False

    def find_topic(self, name: str) -> Optional[TopicRecord]:
        for record in self.topics:
            if record.name == name:
                return record
        return None

    def upsert_topic(self, record: TopicRecord) -> TopicRecord:
        """Replace the record with the same name in place, or append it."""
        for index, existing in enumerate(self.topics):
            if existing.name == record.name:
                self.topics[index] = record
                return record
        self.topics.append(record)
        return record
