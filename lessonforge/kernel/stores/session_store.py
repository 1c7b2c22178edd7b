"""
Editing-session snapshot store.
"""

import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lessonforge.errors import NotFoundOrForbidden
from lessonforge.kernel.models.editing_session import EditingSessionRow
from lessonforge.orchestration.session_state import LessonPlanSession, SessionSnapshot


class SessionSnapshotStore:
    """Loads and saves one caller's editing sessions."""

    def __init__(self, session: AsyncSession, owner_id: str):
        self.session = session
        self.owner_id = owner_id

    async def create(self, editing: LessonPlanSession) -> uuid.UUID:
        row = EditingSessionRow(owner_id=self.owner_id, state=editing.to_snapshot().model_dump(mode="json"))
        self.session.add(row)
        await self.session.flush()
        return row.id

    async def load(self, session_id: uuid.UUID) -> LessonPlanSession:
        row = await self._row(session_id)
        return LessonPlanSession.from_snapshot(SessionSnapshot.model_validate(row.state))

    async def save(self, session_id: uuid.UUID, editing: LessonPlanSession) -> None:
        row = await self._row(session_id)
        row.state = editing.to_snapshot().model_dump(mode="json")
        await self.session.flush()

    async def delete(self, session_id: uuid.UUID) -> None:
        row = await self._row(session_id)
        await self.session.delete(row)
        await self.session.flush()

    async def _row(self, session_id: uuid.UUID) -> EditingSessionRow:
        row: Optional[EditingSessionRow] = await self.session.get(
            EditingSessionRow, session_id, populate_existing=True
        )
        if row is None or row.owner_id != self.owner_id:
            raise NotFoundOrForbidden("Editing session not found")
        return row
