"""
Lesson Plan Session State.

One editing session: which topic is active, which strategies are in use,
the editable buffer (owned by the range tracker) and the lesson plan being
assembled. Several flags can hold at once, so the state is reported as a
flag set rather than a single FSM state:

    hierarchy-browsing   a searched (or derived) topic hierarchy is loaded
    topic-selected       a topic or subtopic is active
    content-generating   a generate call is outstanding
    content-ready        the buffer holds content for the active topic
    refining             a refine call is outstanding

Generate and refine are mutually exclusive: at most one provider call is
outstanding per session (``in_flight``). Provider and persistence failures are
caught here and stored in ``error``; tracker errors propagate unchanged.

Provider calls come in two halves (begin_* / finish_*) so the API can persist
the in-flight flag before awaiting the provider; generate() and refine()
chain both halves for in-process callers.
"""

from enum import Enum
from typing import Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from lessonforge.ai.types import (
    ContentProvider,
    GenerationRequest,
    GenerationStrategy,
    RefinementRequest,
    RefinementStrategy,
    ResponseMode,
    TopicHierarchy,
)
from lessonforge.ai.validation import clean_source_urls, require_text
from lessonforge.config import get_settings
from lessonforge.engines.hierarchy.records import LessonPlan, TopicRecord, sort_records
from lessonforge.engines.hierarchy.synthesizer import group_subtopics, synthesize
from lessonforge.engines.refinement.range_tracker import RangeTracker, TrackerSnapshot
from lessonforge.errors import (
    NotFoundOrForbidden,
    OperationInProgress,
    PersistenceUnavailable,
    ProviderUnavailable,
    ValidationError,
)
from lessonforge.logging_config import get_logger
from lessonforge.orchestration.ports import LessonPlanPort

logger = get_logger(__name__)

DEFAULT_PLAN_NAME = "New Lesson Plan"


class SessionFlag(str, Enum):
    HIERARCHY_BROWSING = "hierarchy-browsing"
    TOPIC_SELECTED = "topic-selected"
    CONTENT_GENERATING = "content-generating"
    CONTENT_READY = "content-ready"
    REFINING = "refining"


class OperationKind(str, Enum):
    """Provider call kinds; only one may be outstanding."""
    GENERATE = "generate"
    REFINE = "refine"


class SessionSnapshot(BaseModel):
    """Everything needed to rebuild a session after a reload."""

    main_topic_name: Optional[str] = None
    lesson_plan: Optional[LessonPlan] = None
    topics_hierarchy: List[TopicHierarchy] = Field(default_factory=list)
    active_topic: Optional[str] = None
    active_is_subtopic: bool = False
    active_parent: Optional[str] = None
    content_ready: bool = False
    generation_strategy: GenerationStrategy = GenerationStrategy.CRAWL
    last_generation_strategy: Optional[GenerationStrategy] = None
    refinement_strategy: RefinementStrategy = RefinementStrategy.SELECTION
    in_flight: Optional[OperationKind] = None
    in_flight_topic: Optional[str] = None
    error: Optional[str] = None
    has_unsaved_changes: bool = False
    plan_dirty: bool = False
    read_only: bool = False
    tracker: TrackerSnapshot = Field(default_factory=TrackerSnapshot)


def hierarchy_from_records(records: Iterable[TopicRecord]) -> List[TopicHierarchy]:
    """Rebuild a browsable hierarchy from saved records (orphans left out)."""
    records = list(records)
    buckets = group_subtopics(records)
    return [
        TopicHierarchy(topic=main.name, subtopics=[s.name for s in buckets.get(main.name, [])])
        for main in sort_records(r for r in records if not r.is_subtopic)
    ]


class LessonPlanSession:
    """Mutable state of one editing session."""

    def __init__(self, lesson_plan: Optional[LessonPlan] = None, *, read_only: bool = False):
        self.lesson_plan = lesson_plan
        self.main_topic_name: Optional[str] = lesson_plan.main_topic_name if lesson_plan else None
        self.topics_hierarchy: List[TopicHierarchy] = (
            hierarchy_from_records(lesson_plan.topics) if lesson_plan else []
        )
        self.active_topic: Optional[str] = None
        self.active_is_subtopic = False
        self.active_parent: Optional[str] = None
        self.tracker = RangeTracker()
        self.content_ready = False
        self.generation_strategy = GenerationStrategy.CRAWL
        self.last_generation_strategy: Optional[GenerationStrategy] = None
        self.refinement_strategy = RefinementStrategy.SELECTION
        self.in_flight: Optional[OperationKind] = None
        self.in_flight_topic: Optional[str] = None
        self.error: Optional[str] = None
        self.has_unsaved_changes = False
        self.plan_dirty = False
        self.read_only = read_only

    @property
    def buffer(self) -> str:
        return self.tracker.buffer

    @property
    def flags(self) -> Set[SessionFlag]:
        flags: Set[SessionFlag] = set()
        if self.topics_hierarchy:
            flags.add(SessionFlag.HIERARCHY_BROWSING)
        if self.active_topic:
            flags.add(SessionFlag.TOPIC_SELECTED)
        if self.in_flight == OperationKind.GENERATE:
            flags.add(SessionFlag.CONTENT_GENERATING)
        elif self.content_ready:
            flags.add(SessionFlag.CONTENT_READY)
        if self.in_flight == OperationKind.REFINE:
            flags.add(SessionFlag.REFINING)
        return flags

    # -- navigation -----------------------------------------------------

    def load_hierarchy(self, main_topic_name: str, items: Iterable[TopicHierarchy]) -> None:
        """Store a searched topic hierarchy for browsing."""
        self.main_topic_name = require_text(main_topic_name, "main_topic_name", "Please enter a topic")
        self.topics_hierarchy = list(items)
        if self.lesson_plan is None:
            self.lesson_plan = LessonPlan(name=self.main_topic_name, main_topic_name=self.main_topic_name)

    def select_topic(self, name: str, is_subtopic: bool = False, parent_name: Optional[str] = None) -> bool:
        """
        Make a topic active.

        Saved content for the topic is loaded straight into the buffer;
        regeneration only ever happens on an explicit generate call.

        Returns:
            True when cached content was loaded.
        """
        name = require_text(name, "name", "Please choose a topic")
        self.active_topic = name
        self.active_is_subtopic = is_subtopic
        self.active_parent = (parent_name or self._parent_from_hierarchy(name)) if is_subtopic else None
        self.error = None
        self.has_unsaved_changes = False

        record = self.lesson_plan.find_topic(name) if self.lesson_plan else None
        if record is not None and record.has_content:
            self.tracker = RangeTracker(record.content)
            self.content_ready = True
            return True

        self.tracker = RangeTracker()
        self.content_ready = False
        return False

    # -- generation -----------------------------------------------------

    def begin_generation(
        self,
        strategy: Optional[GenerationStrategy] = None,
        source_urls: Iterable[str] = (),
        use_llm_knowledge: Optional[bool] = None,
    ) -> GenerationRequest:
        """Validate input and mark a generate call as outstanding."""
        self._require_writable()
        topic = self._require_topic()
        strategy = strategy or self.last_generation_strategy or self.generation_strategy

        urls: List[str] = []
        if strategy == GenerationStrategy.URLS:
            urls = clean_source_urls(source_urls, get_settings().max_source_urls)

        self._begin(OperationKind.GENERATE)
        self.generation_strategy = strategy
        return GenerationRequest(
            strategy=strategy,
            topic_name=topic,
            main_topic_name=self._main_topic(),
            source_urls=urls,
            use_llm_knowledge=use_llm_knowledge,
        )

    def finish_generation(self, request: GenerationRequest, content: str) -> bool:
        """Complete a generate call; a reply for a topic no longer active is dropped."""
        if self.in_flight != OperationKind.GENERATE:
            logger.info("Discarding generated content for a cancelled call", extra={"topic": request.topic_name})
            return False
        self._end()
        if request.topic_name != self.active_topic:
            logger.info("Discarding generated content for inactive topic", extra={"topic": request.topic_name})
            return False
        self.commit_generation(request.strategy, content)
        return True

    def commit_generation(self, strategy: GenerationStrategy, content: str) -> None:
        self._require_writable()
        self._require_topic()
        self.tracker = RangeTracker(content)
        self.content_ready = True
        self.last_generation_strategy = strategy
        self.generation_strategy = strategy
        self.has_unsaved_changes = True

    async def generate(
        self,
        provider: ContentProvider,
        strategy: Optional[GenerationStrategy] = None,
        source_urls: Iterable[str] = (),
        use_llm_knowledge: Optional[bool] = None,
    ) -> bool:
        request = self.begin_generation(strategy, source_urls, use_llm_knowledge)
        try:
            reply = await provider.generate(request, ResponseMode.RAW)
        except ProviderUnavailable as exc:
            self.fail_operation(exc.message)
            return False
        except Exception:
            self._end()
            raise
        return self.finish_generation(request, reply.content)

    # -- refinement -----------------------------------------------------

    def select_range(self, start: int, end: int) -> str:
        if not self.content_ready:
            raise ValidationError("There is no content to select from", field="start")
        return self.tracker.select(self.buffer, start, end)

    def begin_refinement(
        self,
        strategy: Optional[RefinementStrategy] = None,
        question: str = "",
        source_urls: Iterable[str] = (),
    ) -> RefinementRequest:
        """Validate input and mark a refine call as outstanding."""
        self._require_writable()
        topic = self._require_topic()
        strategy = strategy or self.refinement_strategy
        if not strategy.is_remote:
            raise ValidationError("Direct replacement does not call the content provider", field="strategy")
        self._require_selection()
        question = require_text(question, "question", "Please enter a refinement question")

        urls: List[str] = []
        if strategy == RefinementStrategy.URLS:
            urls = clean_source_urls(source_urls, get_settings().max_source_urls)

        self._begin(OperationKind.REFINE)
        self.refinement_strategy = strategy
        return RefinementRequest(
            strategy=strategy,
            document=self.buffer,
            question=question,
            selected_text=self.tracker.selected_text,
            selection_start=self.tracker.start,
            selection_end=self.tracker.end,
            topic_name=topic,
            source_urls=urls,
        )

    def finish_refinement(self, request: RefinementRequest, updated_full: str) -> bool:
        """
        Complete a refine call with the provider's full-document reply.

        A reply computed against a buffer or selection that has since changed
        is dropped; applying it would splice text at stale offsets.
        """
        if self.in_flight != OperationKind.REFINE:
            logger.info("Discarding refinement for a cancelled call", extra={"topic": request.topic_name})
            return False
        self._end()
        if (
            request.topic_name != self.active_topic
            or not self.tracker.is_tracking
            or request.document != self.buffer
            or request.selected_text != self.tracker.selected_text
            or request.selection_start != self.tracker.start
        ):
            self.error = "The document changed while refining; the refinement was discarded"
            logger.info("Discarding stale refinement", extra={"topic": request.topic_name})
            return False
        self.commit_refinement(updated_full=updated_full)
        return True

    def commit_refinement(self, *, updated_full: Optional[str] = None, fragment: Optional[str] = None) -> str:
        """Accept a refinement through the tracker; exactly one of the arguments is used."""
        self._require_writable()
        if updated_full is not None:
            buffer = self.tracker.apply_remote_replacement(updated_full)
        elif fragment is not None:
            buffer = self.tracker.apply_fragment(fragment)
        else:
            raise ValidationError("No refinement to apply")
        self.has_unsaved_changes = True
        return buffer

    def replace_selection(self, replacement_text: Optional[str]) -> str:
        """Direct replacement: user text goes into the tracked span, no provider call."""
        self._require_writable()
        self._require_topic()
        self._require_selection()
        replacement = require_text(replacement_text, "replacement_text", "Please enter the replacement text")
        self._check_idle()
        self.refinement_strategy = RefinementStrategy.DIRECT
        self.error = None
        return self.commit_refinement(fragment=replacement)

    async def refine(
        self,
        provider: Optional[ContentProvider],
        strategy: Optional[RefinementStrategy] = None,
        question: str = "",
        source_urls: Iterable[str] = (),
        replacement_text: Optional[str] = None,
    ) -> bool:
        strategy = strategy or self.refinement_strategy
        if strategy == RefinementStrategy.DIRECT:
            self.replace_selection(replacement_text)
            return True

        request = self.begin_refinement(strategy, question, source_urls)
        try:
            reply = await provider.refine(request, ResponseMode.RAW)
        except ProviderUnavailable as exc:
            self.fail_operation(exc.message)
            return False
        except Exception:
            self._end()
            raise
        return self.finish_refinement(request, reply.content)

    def revert_refinement(self) -> str:
        self._require_writable()
        buffer = self.tracker.revert()
        self.has_unsaved_changes = True
        return buffer

    def edit_buffer(self, text: str) -> None:
        """Free-text edit: the tracked span is no longer trustworthy."""
        self._require_writable()
        self._require_topic()
        self.tracker.clear_on_manual_edit(text)
        self.content_ready = True
        self.has_unsaved_changes = True

    def fail_operation(self, message: str) -> None:
        """Record a provider failure and release the in-flight guard; the buffer is untouched."""
        self._end()
        self.error = message
        logger.warning("Session operation failed: %s", message)

    def cancel_operation(self) -> None:
        """Release an in-flight guard left behind by a call that never completed."""
        if self.in_flight is not None:
            logger.info("Cancelling outstanding operation", extra={"operation": self.in_flight.value})
        self._end()

    # -- lesson plan ----------------------------------------------------

    def save_current_topic(self) -> TopicRecord:
        """Upsert the active topic and buffer into the lesson plan."""
        self._require_writable()
        name = self._require_topic()
        plan = self._ensure_plan()

        existing = plan.find_topic(name)
        order = self._order_from_hierarchy(name)
        if order is None and existing is not None:
            order = existing.order

        parent = None
        if self.active_is_subtopic:
            parent = self.active_parent or plan.main_topic_name

        record = TopicRecord(
            name=name,
            content=self.buffer,
            is_subtopic=self.active_is_subtopic,
            parent_name=parent,
            main_topic_name=plan.main_topic_name,
            order=order,
        )
        plan.upsert_topic(record)
        self.has_unsaved_changes = False
        self.plan_dirty = True
        logger.info("Topic saved to lesson plan", extra={"topic": name, "is_subtopic": record.is_subtopic})
        return record

    def set_visibility(self, is_public: bool) -> None:
        self._require_writable()
        plan = self._require_plan()
        plan.is_public = is_public
        self.plan_dirty = True

    async def persist(self, port: LessonPlanPort) -> bool:
        """
        Hand the lesson plan to the store.

        The store receives a copy, so edits made while the save is outstanding
        are kept and stay unsaved.
        """
        self._require_writable()
        plan = self._require_plan()
        try:
            saved = await port.save_lesson_plan(plan.model_copy(deep=True))
        except (PersistenceUnavailable, NotFoundOrForbidden) as exc:
            self.error = exc.message
            self.has_unsaved_changes = True
            logger.warning("Lesson plan save failed: %s", exc.message)
            return False

        plan.id = saved.id
        self.plan_dirty = False
        self.error = None
        self.has_unsaved_changes = self._buffer_differs_from_record()
        return True

    def combined_document(self) -> str:
        plan = self._require_plan()
        return synthesize(plan.name, plan.topics)

    # -- snapshots ------------------------------------------------------

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            main_topic_name=self.main_topic_name,
            lesson_plan=self.lesson_plan,
            topics_hierarchy=self.topics_hierarchy,
            active_topic=self.active_topic,
            active_is_subtopic=self.active_is_subtopic,
            active_parent=self.active_parent,
            content_ready=self.content_ready,
            generation_strategy=self.generation_strategy,
            last_generation_strategy=self.last_generation_strategy,
            refinement_strategy=self.refinement_strategy,
            in_flight=self.in_flight,
            in_flight_topic=self.in_flight_topic,
            error=self.error,
            has_unsaved_changes=self.has_unsaved_changes,
            plan_dirty=self.plan_dirty,
            read_only=self.read_only,
            tracker=self.tracker.snapshot(),
        )

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "LessonPlanSession":
        session = cls(read_only=snapshot.read_only)
        session.lesson_plan = snapshot.lesson_plan
        session.main_topic_name = snapshot.main_topic_name
        session.topics_hierarchy = list(snapshot.topics_hierarchy)
        session.active_topic = snapshot.active_topic
        session.active_is_subtopic = snapshot.active_is_subtopic
        session.active_parent = snapshot.active_parent
        session.content_ready = snapshot.content_ready
        session.generation_strategy = snapshot.generation_strategy
        session.last_generation_strategy = snapshot.last_generation_strategy
        session.refinement_strategy = snapshot.refinement_strategy
        session.in_flight = snapshot.in_flight
        session.in_flight_topic = snapshot.in_flight_topic
        session.error = snapshot.error
        session.has_unsaved_changes = snapshot.has_unsaved_changes
        session.plan_dirty = snapshot.plan_dirty
        session.tracker = RangeTracker.restore(snapshot.tracker)
        return session

    # -- helpers --------------------------------------------------------

    def _require_writable(self) -> None:
        if self.read_only:
            raise ValidationError("This lesson plan is read-only")

    def _require_topic(self) -> str:
        if not self.active_topic:
            raise ValidationError("Please choose a topic first", field="topic")
        return self.active_topic

    def _require_plan(self) -> LessonPlan:
        if self.lesson_plan is None:
            raise ValidationError("There is no lesson plan yet")
        return self.lesson_plan

    def _require_selection(self) -> None:
        if not self.tracker.is_tracking:
            raise ValidationError("Please select some text in the editor to refine", field="selection")

    def _ensure_plan(self) -> LessonPlan:
        if self.lesson_plan is None:
            main = self.main_topic_name or (self.active_topic if not self.active_is_subtopic else None)
            main = main or DEFAULT_PLAN_NAME
            self.main_topic_name = main
            self.lesson_plan = LessonPlan(name=main, main_topic_name=main)
        return self.lesson_plan

    def _main_topic(self) -> str:
        if self.lesson_plan is not None:
            return self.lesson_plan.main_topic_name
        return self.main_topic_name or ""

    def _check_idle(self) -> None:
        if self.in_flight is not None:
            raise OperationInProgress(self.in_flight.value)

    def _begin(self, kind: OperationKind) -> None:
        self._check_idle()
        self.in_flight = kind
        self.in_flight_topic = self.active_topic
        self.error = None

    def _end(self) -> None:
        self.in_flight = None
        self.in_flight_topic = None

    def _parent_from_hierarchy(self, name: str) -> Optional[str]:
        for item in self.topics_hierarchy:
            if name in item.subtopics:
                return item.topic
        return None

    def _order_from_hierarchy(self, name: str) -> Optional[int]:
        for position, item in enumerate(self.topics_hierarchy, start=1):
            if not self.active_is_subtopic and item.topic == name:
                return position
            if self.active_is_subtopic and name in item.subtopics:
                if self.active_parent and item.topic != self.active_parent:
                    continue
                return item.subtopics.index(name) + 1
        return None

    def _buffer_differs_from_record(self) -> bool:
        if not self.active_topic or self.lesson_plan is None:
            return False
        record = self.lesson_plan.find_topic(self.active_topic)
        return record is None or record.content != self.buffer
