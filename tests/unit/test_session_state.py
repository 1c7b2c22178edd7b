"""Unit tests for the lesson plan editing session."""

import pytest

from lessonforge.ai.types import GenerationStrategy, RefinementStrategy, TopicHierarchy
from lessonforge.engines.hierarchy.records import LessonPlan, TopicRecord
from lessonforge.engines.refinement.range_tracker import TrackerState
from lessonforge.errors import NoActiveRefinement, OperationInProgress, ValidationError
from lessonforge.orchestration.session_state import (
    LessonPlanSession,
    OperationKind,
    SessionFlag,
    SessionSnapshot,
    hierarchy_from_records,
)

HIERARCHY = [
    TopicHierarchy(topic="Photosynthesis", subtopics=["Light Reactions", "Calvin Cycle"]),
    TopicHierarchy(topic="Respiration", subtopics=["Glycolysis"]),
]


def _browsing_session() -> LessonPlanSession:
    session = LessonPlanSession()
    session.load_hierarchy("Biology", HIERARCHY)
    return session


def _ready_session(content: str = "ABCDEF") -> LessonPlanSession:
    session = _browsing_session()
    session.select_topic("Photosynthesis")
    session.commit_generation(GenerationStrategy.CRAWL, content)
    return session


class TestSelectTopic:
    def test_saved_content_skips_generation(self, photosynthesis_records):
        plan = LessonPlan(name="Biology", main_topic_name="Biology", topics=photosynthesis_records)
        session = LessonPlanSession(plan)
        assert session.select_topic("Photosynthesis") is True
        assert session.buffer == "Plants convert light."
        assert SessionFlag.CONTENT_READY in session.flags

    def test_unsaved_topic_waits_for_generation(self):
        session = _browsing_session()
        assert session.select_topic("Respiration") is False
        assert session.buffer == ""
        assert session.flags == {SessionFlag.HIERARCHY_BROWSING, SessionFlag.TOPIC_SELECTED}

    def test_empty_saved_content_is_not_loaded(self):
        plan = LessonPlan(name="P", main_topic_name="P", topics=[TopicRecord(name="Stub")])
        session = LessonPlanSession(plan)
        assert session.select_topic("Stub") is False

    def test_clears_error(self):
        session = _browsing_session()
        session.error = "old failure"
        session.select_topic("Respiration")
        assert session.error is None

    def test_subtopic_parent_from_hierarchy(self):
        session = _browsing_session()
        session.select_topic("Glycolysis", is_subtopic=True)
        assert session.active_parent == "Respiration"

    def test_explicit_parent_wins(self):
        session = _browsing_session()
        session.select_topic("Glycolysis", is_subtopic=True, parent_name="Photosynthesis")
        assert session.active_parent == "Photosynthesis"


class TestGenerate:
    @pytest.mark.asyncio
    async def test_generate_commits_content(self, provider):
        session = _browsing_session()
        session.select_topic("Photosynthesis")
        assert await session.generate(provider, GenerationStrategy.LLM) is True
        assert session.buffer == provider.generated
        assert session.last_generation_strategy == GenerationStrategy.LLM
        assert session.has_unsaved_changes is True
        assert session.in_flight is None
        request = provider.generate_calls[0]
        assert request.topic_name == "Photosynthesis"
        assert request.main_topic_name == "Biology"

    @pytest.mark.asyncio
    async def test_regenerate_reuses_last_strategy(self, provider):
        session = _ready_session()
        session.last_generation_strategy = GenerationStrategy.LLM
        await session.generate(provider)
        assert provider.generate_calls[-1].strategy == GenerationStrategy.LLM

    @pytest.mark.asyncio
    async def test_provider_failure_keeps_buffer(self, provider):
        session = _ready_session("kept text")
        provider.fail = True
        assert await session.generate(provider) is False
        assert session.buffer == "kept text"
        assert "unavailable" in session.error
        assert session.in_flight is None

    @pytest.mark.asyncio
    async def test_url_strategy_needs_valid_url(self, provider):
        session = _browsing_session()
        session.select_topic("Photosynthesis")
        with pytest.raises(ValidationError):
            await session.generate(provider, GenerationStrategy.URLS, ["not a url"])
        assert provider.generate_calls == []
        assert session.in_flight is None

    @pytest.mark.asyncio
    async def test_url_strategy_sends_valid_urls(self, provider):
        session = _browsing_session()
        session.select_topic("Photosynthesis")
        await session.generate(provider, GenerationStrategy.URLS, ["https://example.com/a", " ", "ftp://x"])
        assert provider.generate_calls[0].source_urls == ["https://example.com/a"]

    def test_requires_topic(self):
        with pytest.raises(ValidationError):
            _browsing_session().begin_generation()

    def test_reply_for_other_topic_is_dropped(self):
        session = _browsing_session()
        session.select_topic("Photosynthesis")
        request = session.begin_generation(GenerationStrategy.CRAWL)
        session.select_topic("Respiration")
        assert session.finish_generation(request, "late content") is False
        assert session.buffer == ""
        assert session.in_flight is None


class TestMutualExclusion:
    def test_refine_rejected_while_generating(self):
        session = _ready_session()
        session.select_range(0, 3)
        session.begin_generation()
        assert SessionFlag.CONTENT_GENERATING in session.flags
        with pytest.raises(OperationInProgress):
            session.begin_refinement(RefinementStrategy.SELECTION, "simplify")

    def test_generate_rejected_while_refining(self):
        session = _ready_session()
        session.select_range(0, 3)
        session.begin_refinement(RefinementStrategy.SELECTION, "simplify")
        assert SessionFlag.REFINING in session.flags
        with pytest.raises(OperationInProgress):
            session.begin_generation()

    def test_cancel_releases_guard(self):
        session = _ready_session()
        session.begin_generation()
        session.cancel_operation()
        assert session.in_flight is None
        session.begin_generation()
        assert session.in_flight == OperationKind.GENERATE


class TestRefine:
    @pytest.mark.asyncio
    async def test_remote_refinement_through_tracker(self, provider):
        session = _ready_session("ABCDEF")
        session.select_range(1, 3)
        provider.refined_fragment = "XYZ"
        assert await session.refine(provider, RefinementStrategy.SELECTION, "expand") is True
        assert session.buffer == "AXYZDEF"
        assert session.tracker.state == TrackerState.REFINED
        assert session.tracker.end == 4
        assert session.has_unsaved_changes is True
        request = provider.refine_calls[0]
        assert request.selected_text == "BC"
        assert request.document == "ABCDEF"
        assert request.selection_start == 1
        assert request.selection_end == 3

    @pytest.mark.asyncio
    async def test_refines_later_occurrence_of_repeated_text(self, provider):
        session = _ready_session("BC and BC")
        session.select_range(7, 9)
        provider.refined_fragment = "XYZ"
        assert await session.refine(provider, RefinementStrategy.SELECTION, "expand") is True
        assert session.buffer == "BC and XYZ"
        assert session.revert_refinement() == "BC and BC"

    @pytest.mark.asyncio
    async def test_revert_restores_buffer(self, provider):
        session = _ready_session("ABCDEF")
        session.select_range(1, 3)
        await session.refine(provider, RefinementStrategy.CRAWLING, "expand")
        assert session.revert_refinement() == "ABCDEF"
        assert session.buffer == "ABCDEF"

    @pytest.mark.asyncio
    async def test_requires_selection(self, provider):
        session = _ready_session()
        with pytest.raises(ValidationError):
            await session.refine(provider, RefinementStrategy.SELECTION, "expand")
        assert provider.refine_calls == []

    @pytest.mark.asyncio
    async def test_requires_question(self, provider):
        session = _ready_session()
        session.select_range(0, 2)
        with pytest.raises(ValidationError):
            await session.refine(provider, RefinementStrategy.SELECTION, "   ")

    @pytest.mark.asyncio
    async def test_provider_failure_keeps_selection(self, provider):
        session = _ready_session("ABCDEF")
        session.select_range(1, 3)
        provider.fail = True
        assert await session.refine(provider, RefinementStrategy.SELECTION, "expand") is False
        assert session.buffer == "ABCDEF"
        assert session.tracker.state == TrackerState.SELECTED
        assert session.error

    @pytest.mark.asyncio
    async def test_direct_replacement_needs_no_provider(self):
        session = _ready_session("Hello world")
        session.select_range(6, 11)
        assert await session.refine(None, RefinementStrategy.DIRECT, replacement_text="there") is True
        assert session.buffer == "Hello there"
        assert session.revert_refinement() == "Hello world"

    def test_direct_replacement_needs_text(self):
        session = _ready_session()
        session.select_range(0, 1)
        with pytest.raises(ValidationError):
            session.replace_selection("")

    def test_stale_reply_after_manual_edit_is_dropped(self):
        session = _ready_session("ABCDEF")
        session.select_range(1, 3)
        request = session.begin_refinement(RefinementStrategy.SELECTION, "expand")
        session.edit_buffer("ABCDEF!")
        assert session.finish_refinement(request, "AXYZDEF") is False
        assert session.buffer == "ABCDEF!"
        assert session.in_flight is None

    def test_select_range_needs_content(self):
        session = _browsing_session()
        session.select_topic("Respiration")
        with pytest.raises(ValidationError):
            session.select_range(0, 0)


class TestManualEdit:
    def test_edit_clears_tracked_span(self):
        session = _ready_session("ABCDEF")
        session.select_range(1, 3)
        session.commit_refinement(fragment="xyz")
        session.edit_buffer("something else")
        assert session.tracker.state == TrackerState.IDLE
        assert session.has_unsaved_changes is True
        with pytest.raises(NoActiveRefinement):
            session.revert_refinement()


class TestSaveCurrentTopic:
    def test_main_topic_has_no_parent_and_hierarchy_order(self):
        session = _browsing_session()
        session.select_topic("Respiration")
        session.commit_generation(GenerationStrategy.CRAWL, "Cells release energy.")
        record = session.save_current_topic()
        assert record.parent_name is None
        assert record.is_subtopic is False
        assert record.order == 2
        assert record.main_topic_name == "Biology"
        assert session.has_unsaved_changes is False
        assert session.plan_dirty is True

    def test_subtopic_parent_and_order(self):
        session = _browsing_session()
        session.select_topic("Calvin Cycle", is_subtopic=True)
        session.commit_generation(GenerationStrategy.CRAWL, "Fixes carbon.")
        record = session.save_current_topic()
        assert record.parent_name == "Photosynthesis"
        assert record.order == 2

    def test_subtopic_falls_back_to_main_topic(self):
        session = _browsing_session()
        session.select_topic("Unlisted", is_subtopic=True)
        session.commit_generation(GenerationStrategy.CRAWL, "text")
        assert session.save_current_topic().parent_name == "Biology"

    def test_save_replaces_existing_record(self):
        session = _ready_session("first")
        session.save_current_topic()
        session.edit_buffer("second")
        session.save_current_topic()
        assert [r.content for r in session.lesson_plan.topics] == ["second"]

    def test_save_without_plan_creates_one(self):
        session = LessonPlanSession()
        session.select_topic("Volcanoes")
        session.commit_generation(GenerationStrategy.LLM, "Hot.")
        session.save_current_topic()
        assert session.lesson_plan.name == "Volcanoes"
        assert session.lesson_plan.main_topic_name == "Volcanoes"

    def test_combined_document_after_save(self):
        session = _browsing_session()
        session.select_topic("Photosynthesis")
        session.commit_generation(GenerationStrategy.CRAWL, "Plants convert light.")
        session.save_current_topic()
        session.select_topic("Light Reactions", is_subtopic=True)
        session.commit_generation(GenerationStrategy.CRAWL, "Occurs in thylakoid.")
        session.save_current_topic()
        assert session.combined_document() == (
            "# Biology\n\n"
            "## Photosynthesis\n\nPlants convert light.\n\n"
            "### Light Reactions\n\nOccurs in thylakoid.\n\n"
        )


class TestPersist:
    @pytest.mark.asyncio
    async def test_persist_assigns_id(self, plan_port):
        session = _ready_session("text")
        session.save_current_topic()
        assert await session.persist(plan_port) is True
        assert session.lesson_plan.id in plan_port.saved
        assert session.plan_dirty is False
        assert session.has_unsaved_changes is False

    @pytest.mark.asyncio
    async def test_failed_persist_keeps_edits(self, plan_port):
        session = _ready_session("text")
        session.save_current_topic()
        session.edit_buffer("newer text")
        plan_port.fail = True
        assert await session.persist(plan_port) is False
        assert session.buffer == "newer text"
        assert session.has_unsaved_changes is True
        assert session.plan_dirty is True
        assert session.error

    @pytest.mark.asyncio
    async def test_unsaved_buffer_stays_unsaved_after_persist(self, plan_port):
        session = _ready_session("text")
        session.save_current_topic()
        session.edit_buffer("typed after save")
        await session.persist(plan_port)
        assert session.has_unsaved_changes is True

    def test_visibility_marks_plan_dirty(self):
        session = _browsing_session()
        session.set_visibility(True)
        assert session.lesson_plan.is_public is True
        assert session.plan_dirty is True


class TestReadOnly:
    def test_mutations_rejected(self, photosynthesis_records):
        plan = LessonPlan(name="Shared", main_topic_name="Biology", topics=photosynthesis_records, is_public=True)
        session = LessonPlanSession(plan, read_only=True)
        session.select_topic("Photosynthesis")
        with pytest.raises(ValidationError):
            session.edit_buffer("vandalism")
        with pytest.raises(ValidationError):
            session.save_current_topic()
        with pytest.raises(ValidationError):
            session.set_visibility(False)
        assert session.combined_document().startswith("# Shared\n\n## Photosynthesis")


class TestSnapshot:
    @pytest.mark.asyncio
    async def test_round_trip_keeps_tracker(self, provider):
        session = _ready_session("ABCDEF")
        session.select_range(1, 3)
        provider.refined_fragment = "XYZ"
        await session.refine(provider, RefinementStrategy.SELECTION, "expand")

        data = session.to_snapshot().model_dump(mode="json")
        restored = LessonPlanSession.from_snapshot(SessionSnapshot.model_validate(data))
        assert restored.buffer == "AXYZDEF"
        assert restored.active_topic == "Photosynthesis"
        assert restored.topics_hierarchy == HIERARCHY
        assert restored.revert_refinement() == "ABCDEF"

    def test_in_flight_survives_reload(self):
        session = _ready_session()
        session.begin_generation()
        restored = LessonPlanSession.from_snapshot(session.to_snapshot())
        with pytest.raises(OperationInProgress):
            restored.begin_generation()


class TestHierarchyFromRecords:
    def test_derived_from_saved_records(self, photosynthesis_records):
        orphan = TopicRecord(name="Lost", is_subtopic=True, parent_name="Nowhere")
        items = hierarchy_from_records(photosynthesis_records + [orphan])
        assert items == [TopicHierarchy(topic="Photosynthesis", subtopics=["Light Reactions"])]
