"""
Pytest fixtures for LessonForge tests.
"""

import uuid
from typing import List, Optional

import pytest

from lessonforge.ai.types import (
    GenerationRequest,
    ProviderReply,
    RefinementRequest,
    ResponseMode,
    TopicHierarchy,
)
from lessonforge.engines.hierarchy.records import LessonPlan, TopicRecord
from lessonforge.errors import PersistenceUnavailable, ProviderUnavailable
from lessonforge.kernel.identity.jwt import JWTManager


class FakeContentProvider:
    """
    In-memory content provider.

    Refinement answers like the RAG service: the whole document with the
    selection replaced by ``refined_fragment``.
    """

    def __init__(
        self,
        generated: str = "# Generated\n\nFresh content.",
        refined_fragment: str = "REFINED",
        hierarchy: Optional[List[TopicHierarchy]] = None,
    ):
        self.generated = generated
        self.refined_fragment = refined_fragment
        self.hierarchy = hierarchy or [
            TopicHierarchy(topic="Photosynthesis", subtopics=["Light Reactions", "Calvin Cycle"]),
            TopicHierarchy(topic="Respiration", subtopics=["Glycolysis"]),
        ]
        self.fail = False
        self.generate_calls: List[GenerationRequest] = []
        self.refine_calls: List[RefinementRequest] = []
        self.search_calls: List[str] = []

    async def generate(self, request: GenerationRequest, mode: ResponseMode = ResponseMode.RAW) -> ProviderReply:
        self.generate_calls.append(request)
        if self.fail:
            raise ProviderUnavailable("Content provider is unavailable. Please try again.")
        return ProviderReply(content=self.generated, mode=mode)

    async def refine(self, request: RefinementRequest, mode: ResponseMode = ResponseMode.RAW) -> ProviderReply:
        self.refine_calls.append(request)
        if self.fail:
            raise ProviderUnavailable("Content provider is unavailable. Please try again.")
        document = request.splice(self.refined_fragment)
        return ProviderReply(content=document, mode=mode)

    async def search_topics(self, query: str, limit: Optional[int] = None) -> List[TopicHierarchy]:
        self.search_calls.append(query)
        if self.fail:
            raise ProviderUnavailable("Topic search failed")
        return list(self.hierarchy)


class InMemoryLessonPlanPort:
    """LessonPlanPort that keeps saved plans in a dict."""

    def __init__(self):
        self.saved: dict = {}
        self.fail = False

    async def save_lesson_plan(self, plan: LessonPlan) -> LessonPlan:
        if self.fail:
            raise PersistenceUnavailable("Could not save the lesson plan. Please try again.")
        plan = plan.model_copy(deep=True)
        if plan.id is None:
            plan.id = uuid.uuid4()
        self.saved[plan.id] = plan
        return plan


@pytest.fixture
def provider() -> FakeContentProvider:
    return FakeContentProvider()


@pytest.fixture
def plan_port() -> InMemoryLessonPlanPort:
    return InMemoryLessonPlanPort()


@pytest.fixture
def photosynthesis_records() -> List[TopicRecord]:
    return [
        TopicRecord(
            name="Photosynthesis",
            content="Plants convert light.",
            is_subtopic=False,
            main_topic_name="Biology",
            order=1,
        ),
        TopicRecord(
            name="Light Reactions",
            content="Occurs in thylakoid.",
            is_subtopic=True,
            parent_name="Photosynthesis",
            main_topic_name="Biology",
            order=1,
        ),
    ]


@pytest.fixture
def jwt_manager() -> JWTManager:
    return JWTManager(secret_key="test-secret-key-for-testing-only", algorithm="HS256")
