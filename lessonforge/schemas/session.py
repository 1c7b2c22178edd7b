"""
Editing-session schemas.
"""

import uuid
from typing import List, Optional

from pydantic import BaseModel, Field

from lessonforge.ai.types import GenerationStrategy, RefinementStrategy, TopicHierarchy
from lessonforge.engines.hierarchy.records import LessonPlan
from lessonforge.engines.refinement.range_tracker import TrackerState
from lessonforge.orchestration.session_state import LessonPlanSession, OperationKind, SessionFlag


class SessionCreate(BaseModel):
    """
    Open an editing session.

    Either search a main topic (``main_topic_name``) or resume a saved or
    public lesson plan (``lesson_plan_id``).
    """

    main_topic_name: Optional[str] = Field(None, max_length=500)
    lesson_plan_id: Optional[uuid.UUID] = None
    search: bool = True
    limit: Optional[int] = Field(None, ge=1, le=50)


class SelectTopicRequest(BaseModel):
    name: str = Field(..., max_length=500)
    is_subtopic: bool = False
    parent_name: Optional[str] = Field(None, max_length=500)


class SessionGenerateRequest(BaseModel):
    strategy: Optional[GenerationStrategy] = None
    source_urls: List[str] = Field(default_factory=list)
    use_llm_knowledge: Optional[bool] = None


class SelectRangeRequest(BaseModel):
    start: int
    end: int


class SessionRefineRequest(BaseModel):
    strategy: Optional[RefinementStrategy] = None
    question: str = ""
    source_urls: List[str] = Field(default_factory=list)
    replacement_text: Optional[str] = None


class EditBufferRequest(BaseModel):
    content: str


class SessionVisibilityRequest(BaseModel):
    is_public: bool


class TrackerView(BaseModel):
    state: TrackerState
    start: int
    end: int
    original_text: Optional[str] = None
    refined_text: Optional[str] = None


class SessionResponse(BaseModel):
    """Client view of an editing session."""

    id: uuid.UUID
    flags: List[SessionFlag]
    main_topic_name: Optional[str] = None
    topics_hierarchy: List[TopicHierarchy]
    active_topic: Optional[str] = None
    active_is_subtopic: bool = False
    active_parent: Optional[str] = None
    buffer: str
    generation_strategy: GenerationStrategy
    last_generation_strategy: Optional[GenerationStrategy] = None
    refinement_strategy: RefinementStrategy
    in_flight: Optional[OperationKind] = None
    error: Optional[str] = None
    has_unsaved_changes: bool
    plan_dirty: bool
    read_only: bool
    tracker: TrackerView
    lesson_plan: Optional[LessonPlan] = None

    @classmethod
    def from_session(cls, session_id: uuid.UUID, editing: LessonPlanSession) -> "SessionResponse":
        tracker = editing.tracker
        return cls(
            id=session_id,
            flags=sorted(editing.flags, key=lambda flag: list(SessionFlag).index(flag)),
            main_topic_name=editing.main_topic_name,
            topics_hierarchy=editing.topics_hierarchy,
            active_topic=editing.active_topic,
            active_is_subtopic=editing.active_is_subtopic,
            active_parent=editing.active_parent,
            buffer=editing.buffer,
            generation_strategy=editing.generation_strategy,
            last_generation_strategy=editing.last_generation_strategy,
            refinement_strategy=editing.refinement_strategy,
            in_flight=editing.in_flight,
            error=editing.error,
            has_unsaved_changes=editing.has_unsaved_changes,
            plan_dirty=editing.plan_dirty,
            read_only=editing.read_only,
            tracker=TrackerView(
                state=tracker.state,
                start=tracker.start,
                end=tracker.end,
                original_text=tracker.original_text,
                refined_text=tracker.refined_text,
            ),
            lesson_plan=editing.lesson_plan,
        )
