"""
Lesson plan endpoints, including the combined document preview and download.
"""

import uuid
from io import BytesIO
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Query, status
from fastapi.responses import StreamingResponse

from lessonforge.api.deps import LessonPlanStoreDep
from lessonforge.engines.hierarchy.records import LessonPlan
from lessonforge.engines.hierarchy.synthesizer import combined_filename, orphaned_subtopics, synthesize
from lessonforge.schemas.lesson_plan import (
    CombinedDocumentResponse,
    LessonPlanCreate,
    LessonPlanSummary,
    LessonPlanUpdate,
    VisibilityUpdate,
)

router = APIRouter()

COMBINED_MEDIA_TYPE = "text/markdown; charset=utf-8"


def combined_response(plan: LessonPlan) -> CombinedDocumentResponse:
    return CombinedDocumentResponse(
        lesson_plan_id=plan.id,
        name=plan.name,
        filename=combined_filename(plan.name),
        content=synthesize(plan.name, plan.topics),
        orphaned_subtopics=[record.name for record in orphaned_subtopics(plan.topics)],
    )


def combined_download(plan: LessonPlan) -> StreamingResponse:
    """The combined document as an attachment, byte-identical to the preview."""
    filename = combined_filename(plan.name)
    fallback = filename.encode("ascii", "ignore").decode("ascii") or "lesson-plan-combined.mdx"
    return StreamingResponse(
        BytesIO(synthesize(plan.name, plan.topics).encode("utf-8")),
        media_type=COMBINED_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
        },
    )


@router.get("", response_model=List[LessonPlanSummary])
async def list_lesson_plans(store: LessonPlanStoreDep):
    return [LessonPlanSummary.from_plan(plan) for plan in await store.list()]


@router.post("", response_model=LessonPlan, status_code=status.HTTP_201_CREATED)
async def create_lesson_plan(data: LessonPlanCreate, store: LessonPlanStoreDep):
    return await store.create(data.to_plan())


@router.get("/public", response_model=List[LessonPlanSummary])
async def list_public_lesson_plans(
    store: LessonPlanStoreDep,
    search: Optional[str] = Query(None, max_length=200),
):
    """Public lesson plans, optionally filtered by name or main topic."""
    return [LessonPlanSummary.from_plan(plan) for plan in await store.list_public(search)]


@router.get("/public/{plan_id}", response_model=LessonPlan)
async def get_public_lesson_plan(plan_id: uuid.UUID, store: LessonPlanStoreDep):
    return await store.get_public(plan_id)


@router.get("/{plan_id}", response_model=LessonPlan)
async def get_lesson_plan(plan_id: uuid.UUID, store: LessonPlanStoreDep):
    return await store.get(plan_id)


@router.put("/{plan_id}", response_model=LessonPlan)
async def update_lesson_plan(plan_id: uuid.UUID, data: LessonPlanUpdate, store: LessonPlanStoreDep):
    return await store.update(plan_id, data.to_plan(plan_id))


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson_plan(plan_id: uuid.UUID, store: LessonPlanStoreDep):
    await store.delete(plan_id)


@router.patch("/{plan_id}/visibility", response_model=LessonPlan)
async def set_lesson_plan_visibility(plan_id: uuid.UUID, data: VisibilityUpdate, store: LessonPlanStoreDep):
    return await store.set_visibility(plan_id, data.is_public)


@router.get("/{plan_id}/combined", response_model=CombinedDocumentResponse)
async def preview_combined_document(plan_id: uuid.UUID, store: LessonPlanStoreDep):
    """Combined document for an owned or public lesson plan."""
    plan, _ = await store.get_viewable(plan_id)
    return combined_response(plan)


@router.get("/{plan_id}/combined/download")
async def download_combined_document(plan_id: uuid.UUID, store: LessonPlanStoreDep):
    plan, _ = await store.get_viewable(plan_id)
    return combined_download(plan)
