"""
Lesson plan store.

Every lookup is scoped to the caller: a plan that does not exist and a plan
the caller may not see both raise NotFoundOrForbidden.
"""

import uuid
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lessonforge.engines.hierarchy.records import LessonPlan
from lessonforge.errors import NotFoundOrForbidden, PersistenceUnavailable
from lessonforge.kernel.models.lesson_plan import LessonPlanRow
from lessonforge.logging_config import get_logger

logger = get_logger(__name__)


class LessonPlanStore:
    """Lesson plans owned by (or shared with) one caller."""

    def __init__(self, session: AsyncSession, owner_id: str):
        self.session = session
        self.owner_id = owner_id

    async def list(self) -> List[LessonPlan]:
        result = await self.session.execute(
            select(LessonPlanRow)
            .where(LessonPlanRow.owner_id == self.owner_id)
            .order_by(LessonPlanRow.updated_at.desc())
        )
        return [row.to_plan() for row in result.scalars().all()]

    async def get(self, plan_id: uuid.UUID) -> LessonPlan:
        return (await self._owned_row(plan_id)).to_plan()

    async def create(self, plan: LessonPlan) -> LessonPlan:
        row = LessonPlanRow(owner_id=self.owner_id)
        row.apply(plan)
        self.session.add(row)
        await self.session.flush()
        logger.info("Lesson plan created", extra={"lesson_plan_id": str(row.id), "owner_id": self.owner_id})
        return row.to_plan()

    async def update(self, plan_id: uuid.UUID, plan: LessonPlan) -> LessonPlan:
        row = await self._owned_row(plan_id)
        row.apply(plan)
        await self.session.flush()
        logger.info("Lesson plan updated", extra={"lesson_plan_id": str(row.id)})
        return row.to_plan()

    async def delete(self, plan_id: uuid.UUID) -> None:
        row = await self._owned_row(plan_id)
        await self.session.delete(row)
        await self.session.flush()
        logger.info("Lesson plan deleted", extra={"lesson_plan_id": str(plan_id)})

    async def set_visibility(self, plan_id: uuid.UUID, is_public: bool) -> LessonPlan:
        row = await self._owned_row(plan_id)
        row.is_public = is_public
        await self.session.flush()
        return row.to_plan()

    async def list_public(self, search: Optional[str] = None) -> List[LessonPlan]:
        query = select(LessonPlanRow).where(LessonPlanRow.is_public.is_(True))
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(LessonPlanRow.name.ilike(pattern), LessonPlanRow.main_topic_name.ilike(pattern))
            )
        result = await self.session.execute(query.order_by(LessonPlanRow.updated_at.desc()))
        return [row.to_plan() for row in result.scalars().all()]

    async def get_public(self, plan_id: uuid.UUID) -> LessonPlan:
        row = await self.session.get(LessonPlanRow, plan_id)
        if row is None or not row.is_public:
            raise NotFoundOrForbidden("This lesson plan does not exist or is not public")
        return row.to_plan()

    async def get_viewable(self, plan_id: uuid.UUID) -> tuple[LessonPlan, bool]:
        """
        The plan if the caller owns it or it is public.

        Returns:
            (plan, owned) - ``owned`` is False for someone else's public plan.
        """
        row = await self.session.get(LessonPlanRow, plan_id)
        if row is not None and row.owner_id == self.owner_id:
            return row.to_plan(), True
        if row is not None and row.is_public:
            return row.to_plan(), False
        raise NotFoundOrForbidden("This lesson plan does not exist or is not public")

    async def save_lesson_plan(self, plan: LessonPlan) -> LessonPlan:
        """
        Create or update as one unit; storage failures surface as PersistenceUnavailable.

        The write runs in a savepoint so a failed flush leaves the request's
        transaction usable and the editing session can still be saved.
        """
        try:
            async with self.session.begin_nested():
                if plan.id is None:
                    return await self.create(plan)
                return await self.update(plan.id, plan)
        except SQLAlchemyError as exc:
            logger.error("Lesson plan save failed: %s", exc)
            raise PersistenceUnavailable("Could not save the lesson plan. Please try again.") from exc

    async def _owned_row(self, plan_id: uuid.UUID) -> LessonPlanRow:
        row = await self.session.get(LessonPlanRow, plan_id)
        if row is None or row.owner_id != self.owner_id:
            raise NotFoundOrForbidden("Lesson plan not found")
        return row
