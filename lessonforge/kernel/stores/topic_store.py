"""
Topic store: the caller's saved topic records.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lessonforge.engines.hierarchy.records import TopicRecord
from lessonforge.kernel.models.topic import TopicRow
from lessonforge.logging_config import get_logger

logger = get_logger(__name__)


class TopicStore:
    """Topic records keyed by (owner, main topic, name)."""

    def __init__(self, session: AsyncSession, owner_id: str):
        self.session = session
        self.owner_id = owner_id

    async def list_for_user(self) -> List[TopicRecord]:
        result = await self.session.execute(
            select(TopicRow)
            .where(TopicRow.owner_id == self.owner_id)
            .order_by(TopicRow.created_at, TopicRow.name)
        )
        return [row.to_record() for row in result.scalars().all()]

    async def upsert(self, record: TopicRecord) -> TopicRecord:
        """Replace the caller's record with the same name under the same main topic, or add it."""
        result = await self.session.execute(
            select(TopicRow).where(
                TopicRow.owner_id == self.owner_id,
                TopicRow.main_topic_name == record.main_topic_name,
                TopicRow.name == record.name,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = TopicRow(owner_id=self.owner_id, name=record.name, main_topic_name=record.main_topic_name)
            self.session.add(row)

        row.content = record.content
        row.is_subtopic = record.is_subtopic
        row.parent_name = record.parent_name
        row.order = record.order
        await self.session.flush()
        logger.info("Topic upserted", extra={"topic": record.name, "owner_id": self.owner_id})
        return row.to_record()
