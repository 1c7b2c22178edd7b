"""Unit tests for the OpenAI-backed knowledge-only provider (stub client)."""

from types import SimpleNamespace

import pytest
from openai import OpenAIError

from lessonforge.ai.content_provider import RagContentProvider
from lessonforge.ai.llm_provider import OpenAIContentProvider, build_content_provider
from lessonforge.ai.types import (
    GenerationRequest,
    GenerationStrategy,
    RefinementRequest,
    RefinementStrategy,
    ResponseMode,
)
from lessonforge.config import get_settings
from lessonforge.errors import InvalidRange, ProviderUnavailable


class StubCompletions:
    def __init__(self, answer: str = "XYZ", error: Exception = None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.answer)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _llm(provider, completions: StubCompletions) -> OpenAIContentProvider:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIContentProvider(provider, api_key="sk-test", model="gpt-test", client=client)


class TestGeneration:
    @pytest.mark.asyncio
    async def test_llm_generation_uses_model(self, provider):
        completions = StubCompletions(answer="  # Glycolysis\n\nSugar splitting.  ")
        reply = await _llm(provider, completions).generate(
            GenerationRequest(strategy=GenerationStrategy.LLM, topic_name="Glycolysis", main_topic_name="Biology"),
        )
        assert reply.content == "# Glycolysis\n\nSugar splitting."
        assert provider.generate_calls == []
        call = completions.calls[0]
        assert call["model"] == "gpt-test"
        assert "Glycolysis" in call["messages"][1]["content"]
        assert "Biology" in call["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_other_strategies_fall_back(self, provider):
        completions = StubCompletions()
        reply = await _llm(provider, completions).generate(
            GenerationRequest(strategy=GenerationStrategy.CRAWL, topic_name="Glycolysis"),
            ResponseMode.JSON,
        )
        assert reply.content == provider.generated
        assert len(provider.generate_calls) == 1
        assert completions.calls == []

    @pytest.mark.asyncio
    async def test_openai_error_is_provider_unavailable(self, provider):
        completions = StubCompletions(error=OpenAIError("quota exceeded"))
        with pytest.raises(ProviderUnavailable):
            await _llm(provider, completions).generate(
                GenerationRequest(strategy=GenerationStrategy.LLM, topic_name="Glycolysis"),
            )


class TestRefinement:
    @pytest.mark.asyncio
    async def test_fragment_goes_to_selection_offsets(self, provider):
        request = RefinementRequest(
            document="BC and BC",
            question="expand",
            selected_text="BC",
            selection_start=7,
            selection_end=9,
            topic_name="Letters",
        )
        reply = await _llm(provider, StubCompletions(answer="XYZ")).refine(request)
        assert reply.content == "BC and XYZ"
        assert provider.refine_calls == []

    @pytest.mark.asyncio
    async def test_mismatched_offsets_are_rejected_before_calling(self, provider):
        completions = StubCompletions()
        request = RefinementRequest(
            document="ABCDEF",
            question="expand",
            selected_text="BC",
            selection_start=2,
            selection_end=4,
            topic_name="Letters",
        )
        with pytest.raises(InvalidRange):
            await _llm(provider, completions).refine(request)
        assert completions.calls == []

    @pytest.mark.asyncio
    async def test_augmented_refinement_falls_back(self, provider):
        completions = StubCompletions()
        request = RefinementRequest(
            strategy=RefinementStrategy.CRAWLING,
            document="ABCDEF",
            question="expand",
            selected_text="BC",
            selection_start=1,
            selection_end=3,
            topic_name="Letters",
        )
        reply = await _llm(provider, completions).refine(request)
        assert reply.content == "AREFINEDDEF"
        assert completions.calls == []

    @pytest.mark.asyncio
    async def test_search_goes_to_fallback(self, provider):
        topics = await _llm(provider, StubCompletions()).search_topics("Biology")
        assert provider.search_calls == ["Biology"]
        assert topics[0].topic == "Photosynthesis"


class TestBuildContentProvider:
    @pytest.fixture(autouse=True)
    def fresh_settings(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_rag_by_default(self, monkeypatch):
        monkeypatch.setenv("KNOWLEDGE_ONLY_BACKEND", "rag")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-real-key")
        assert isinstance(build_content_provider(), RagContentProvider)

    def test_openai_when_configured(self, monkeypatch):
        monkeypatch.setenv("KNOWLEDGE_ONLY_BACKEND", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-real-key")
        built = build_content_provider()
        assert isinstance(built, OpenAIContentProvider)
        assert isinstance(built.fallback, RagContentProvider)

    def test_placeholder_key_keeps_rag(self, monkeypatch):
        monkeypatch.setenv("KNOWLEDGE_ONLY_BACKEND", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-your-key-here")
        assert isinstance(build_content_provider(), RagContentProvider)
