"""
OpenAI-backed provider for the knowledge-only paths.

Only LLM generation and plain selection refinement are answered here; every
other strategy (and topic search) goes to the wrapped RAG provider.
Refinement replies are returned as the full document with the fragment
spliced in at the request's selection offsets, the same shape the RAG
service sends.
"""

from typing import List, Optional

from lessonforge.ai.types import (
    ContentProvider,
    GenerationRequest,
    GenerationStrategy,
    ProviderReply,
    RefinementRequest,
    RefinementStrategy,
    ResponseMode,
    TopicHierarchy,
)
from lessonforge.config import get_settings
from lessonforge.errors import ProviderUnavailable
from lessonforge.logging_config import get_logger

logger = get_logger(__name__)

GENERATION_SYSTEM_PROMPT = (
    "You write lesson notes in MDX. Use headings, short paragraphs, lists and "
    "fenced code where useful. Output only the MDX, no meta-commentary."
)
REFINEMENT_SYSTEM_PROMPT = (
    "You rewrite one excerpt of a lesson. Return only the rewritten excerpt, "
    "in MDX, without quoting the rest of the document."
)


class OpenAIContentProvider:
    """Answers knowledge-only requests with an OpenAI chat model."""

    def __init__(
        self,
        fallback: ContentProvider,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client=None,
    ):
        settings = get_settings()
        self.fallback = fallback
        self.model = model or settings.openai_model
        self._api_key = api_key or settings.openai_api_key
        self._client = client

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def generate(
        self,
        request: GenerationRequest,
        mode: ResponseMode = ResponseMode.RAW,
    ) -> ProviderReply:
        if request.strategy != GenerationStrategy.LLM:
            return await self.fallback.generate(request, mode)

        prompt = (
            f"Write lesson notes for the topic \"{request.topic_name}\""
            + (f" as part of a lesson plan on \"{request.main_topic_name}\"." if request.main_topic_name else ".")
        )
        content = await self._complete(GENERATION_SYSTEM_PROMPT, prompt, max_tokens=2000)
        return ProviderReply(content=content, mode=mode)

    async def refine(
        self,
        request: RefinementRequest,
        mode: ResponseMode = ResponseMode.RAW,
    ) -> ProviderReply:
        if request.strategy != RefinementStrategy.SELECTION:
            return await self.fallback.refine(request, mode)

        prompt = "\n\n".join([
            f"Lesson topic: {request.topic_name}",
            f"Full document for context:\n{request.document[:6000]}",
            f"Excerpt to rewrite:\n{request.selected_text}",
            f"Instruction: {request.question}",
        ])
        request.selection_span()
        fragment = await self._complete(REFINEMENT_SYSTEM_PROMPT, prompt, max_tokens=1200)
        return ProviderReply(content=request.splice(fragment), mode=mode)

    async def search_topics(self, query: str, limit: Optional[int] = None) -> List[TopicHierarchy]:
        return await self.fallback.search_topics(query, limit)

    async def _complete(self, system: str, prompt: str, *, max_tokens: int) -> str:
        from openai import OpenAIError

        try:
            response = await self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
            )
        except OpenAIError as exc:
            logger.warning("OpenAI request failed: %s", exc)
            raise ProviderUnavailable("Language model is unavailable. Please try again.") from exc
        return (response.choices[0].message.content or "").strip()


def build_content_provider() -> ContentProvider:
    """Provider configured from settings: RAG service, optionally fronted by OpenAI."""
    from lessonforge.ai.content_provider import RagContentProvider

    settings = get_settings()
    rag = RagContentProvider()
    key = (settings.openai_api_key or "").strip()
    if settings.knowledge_only_backend == "openai" and key and not key.startswith("sk-your-"):
        return OpenAIContentProvider(rag)
    return rag
