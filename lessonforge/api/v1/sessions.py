"""
Editing-session endpoints.

Every call reloads the session snapshot, applies one operation and saves it
back. Provider calls commit the in-flight flag before awaiting the provider,
so a second generate/refine on the same session is rejected meanwhile; the
snapshot is reloaded once the provider answers.
"""

import uuid

from fastapi import APIRouter, status

from lessonforge.ai.types import RefinementStrategy, ResponseMode
from lessonforge.api.deps import (
    ContentProviderDep,
    DbSession,
    LessonPlanStoreDep,
    SessionStoreDep,
)
from lessonforge.api.v1.lesson_plans import combined_response
from lessonforge.errors import ProviderUnavailable, ValidationError
from lessonforge.logging_config import get_logger
from lessonforge.orchestration.session_state import LessonPlanSession
from lessonforge.schemas.lesson_plan import CombinedDocumentResponse
from lessonforge.schemas.session import (
    EditBufferRequest,
    SelectRangeRequest,
    SelectTopicRequest,
    SessionCreate,
    SessionGenerateRequest,
    SessionRefineRequest,
    SessionResponse,
    SessionVisibilityRequest,
)

logger = get_logger(__name__)

router = APIRouter()


async def _respond(sessions: SessionStoreDep, session_id: uuid.UUID, editing: LessonPlanSession) -> SessionResponse:
    await sessions.save(session_id, editing)
    return SessionResponse.from_session(session_id, editing)


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def open_session(
    data: SessionCreate,
    sessions: SessionStoreDep,
    plans: LessonPlanStoreDep,
    provider: ContentProviderDep,
):
    """Start editing a saved (or public) lesson plan, or a freshly searched main topic."""
    if data.lesson_plan_id is not None:
        plan, owned = await plans.get_viewable(data.lesson_plan_id)
        editing = LessonPlanSession(plan, read_only=not owned)
    elif data.main_topic_name and data.main_topic_name.strip():
        editing = LessonPlanSession()
        items = []
        if data.search:
            try:
                items = await provider.search_topics(data.main_topic_name.strip(), data.limit)
            except ProviderUnavailable as exc:
                editing.error = exc.message
        editing.load_hierarchy(data.main_topic_name, items)
    else:
        raise ValidationError("Please enter a topic or choose a lesson plan", field="main_topic_name")

    session_id = await sessions.create(editing)
    logger.info("Editing session opened", extra={"session_id": str(session_id), "read_only": editing.read_only})
    return SessionResponse.from_session(session_id, editing)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: uuid.UUID, sessions: SessionStoreDep):
    return SessionResponse.from_session(session_id, await sessions.load(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: uuid.UUID, sessions: SessionStoreDep):
    await sessions.delete(session_id)


@router.post("/{session_id}/select-topic", response_model=SessionResponse)
async def select_topic(session_id: uuid.UUID, data: SelectTopicRequest, sessions: SessionStoreDep):
    """Activate a topic; saved content is loaded without generating."""
    editing = await sessions.load(session_id)
    editing.select_topic(data.name, data.is_subtopic, data.parent_name)
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/generate", response_model=SessionResponse)
async def generate(
    session_id: uuid.UUID,
    data: SessionGenerateRequest,
    db: DbSession,
    sessions: SessionStoreDep,
    provider: ContentProviderDep,
):
    editing = await sessions.load(session_id)
    request = editing.begin_generation(data.strategy, data.source_urls, data.use_llm_knowledge)
    await sessions.save(session_id, editing)
    await db.commit()

    try:
        reply = await provider.generate(request, ResponseMode.RAW)
    except ProviderUnavailable as exc:
        editing = await sessions.load(session_id)
        editing.fail_operation(exc.message)
    else:
        editing = await sessions.load(session_id)
        editing.finish_generation(request, reply.content)
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/select-range", response_model=SessionResponse)
async def select_range(session_id: uuid.UUID, data: SelectRangeRequest, sessions: SessionStoreDep):
    editing = await sessions.load(session_id)
    editing.select_range(data.start, data.end)
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/refine", response_model=SessionResponse)
async def refine(
    session_id: uuid.UUID,
    data: SessionRefineRequest,
    db: DbSession,
    sessions: SessionStoreDep,
    provider: ContentProviderDep,
):
    """Refine the tracked selection, or replace it directly with user text."""
    editing = await sessions.load(session_id)
    if (data.strategy or editing.refinement_strategy) == RefinementStrategy.DIRECT:
        editing.replace_selection(data.replacement_text)
        return await _respond(sessions, session_id, editing)

    request = editing.begin_refinement(data.strategy, data.question, data.source_urls)
    await sessions.save(session_id, editing)
    await db.commit()

    try:
        reply = await provider.refine(request, ResponseMode.RAW)
    except ProviderUnavailable as exc:
        editing = await sessions.load(session_id)
        editing.fail_operation(exc.message)
    else:
        editing = await sessions.load(session_id)
        editing.finish_refinement(request, reply.content)
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/revert", response_model=SessionResponse)
async def revert(session_id: uuid.UUID, sessions: SessionStoreDep):
    editing = await sessions.load(session_id)
    editing.revert_refinement()
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/edit", response_model=SessionResponse)
async def edit_buffer(session_id: uuid.UUID, data: EditBufferRequest, sessions: SessionStoreDep):
    editing = await sessions.load(session_id)
    editing.edit_buffer(data.content)
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_operation(session_id: uuid.UUID, sessions: SessionStoreDep):
    """Release a generate/refine call that never came back so the user can retry."""
    editing = await sessions.load(session_id)
    editing.cancel_operation()
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/save", response_model=SessionResponse)
async def save_topic(session_id: uuid.UUID, sessions: SessionStoreDep):
    """Put the active topic's buffer into the lesson plan (not yet persisted)."""
    editing = await sessions.load(session_id)
    editing.save_current_topic()
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/persist", response_model=SessionResponse)
async def persist(session_id: uuid.UUID, sessions: SessionStoreDep, plans: LessonPlanStoreDep):
    """Store the lesson plan; failure is reported in ``error`` and the edits are kept."""
    editing = await sessions.load(session_id)
    await editing.persist(plans)
    return await _respond(sessions, session_id, editing)


@router.post("/{session_id}/visibility", response_model=SessionResponse)
async def set_visibility(session_id: uuid.UUID, data: SessionVisibilityRequest, sessions: SessionStoreDep):
    editing = await sessions.load(session_id)
    editing.set_visibility(data.is_public)
    return await _respond(sessions, session_id, editing)


@router.get("/{session_id}/combined", response_model=CombinedDocumentResponse)
async def session_combined_document(session_id: uuid.UUID, sessions: SessionStoreDep):
    editing = await sessions.load(session_id)
    if editing.lesson_plan is None:
        raise ValidationError("There is no lesson plan yet")
    return combined_response(editing.lesson_plan)
