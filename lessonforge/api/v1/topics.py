"""
Topic record endpoints.
"""

from typing import List

from fastapi import APIRouter

from lessonforge.api.deps import TopicStoreDep
from lessonforge.engines.hierarchy.records import TopicRecord
from lessonforge.schemas.topic import TopicUpsert

router = APIRouter()


@router.get("", response_model=List[TopicRecord])
async def list_topics(store: TopicStoreDep):
    """All topic records the caller has saved."""
    return await store.list_for_user()


@router.post("", response_model=TopicRecord)
async def upsert_topic(data: TopicUpsert, store: TopicStoreDep):
    """Save a topic record, replacing the one with the same name under the same main topic."""
    return await store.upsert(data.to_record())
