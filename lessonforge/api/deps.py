"""
FastAPI dependencies: database session, caller identity, stores and the
content provider.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lessonforge.ai.llm_provider import build_content_provider
from lessonforge.ai.types import ContentProvider
from lessonforge.database import async_session_maker
from lessonforge.kernel.identity.jwt import verify_access_token
from lessonforge.kernel.stores import LessonPlanStore, SessionSnapshotStore, TopicStore

security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session; commit on success, roll back on error."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """Opaque user id from the bearer token, or 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload.sub


CurrentUserId = Annotated[str, Depends(get_current_user_id)]


def get_topic_store(db: DbSession, user_id: CurrentUserId) -> TopicStore:
    return TopicStore(db, user_id)


def get_lesson_plan_store(db: DbSession, user_id: CurrentUserId) -> LessonPlanStore:
    return LessonPlanStore(db, user_id)


def get_session_store(db: DbSession, user_id: CurrentUserId) -> SessionSnapshotStore:
    return SessionSnapshotStore(db, user_id)


def get_content_provider() -> ContentProvider:
    return build_content_provider()


TopicStoreDep = Annotated[TopicStore, Depends(get_topic_store)]
LessonPlanStoreDep = Annotated[LessonPlanStore, Depends(get_lesson_plan_store)]
SessionStoreDep = Annotated[SessionSnapshotStore, Depends(get_session_store)]
ContentProviderDep = Annotated[ContentProvider, Depends(get_content_provider)]


def get_request_id(request: Request) -> Optional[str]:
    """Request correlation id (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)
