"""
Stateless content-provider endpoints.

These proxy the provider directly; the editing-session endpoints are the ones
that track selections and apply refinements.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from lessonforge.ai.types import (
    GenerationRequest,
    GenerationStrategy,
    RefinementRequest,
    RefinementStrategy,
    ResponseMode,
)
from lessonforge.ai.validation import clean_source_urls, require_text
from lessonforge.api.deps import ContentProviderDep, CurrentUserId
from lessonforge.config import get_settings
from lessonforge.logging_config import get_logger
from lessonforge.schemas.content import (
    ContentResponse,
    GenerateContentRequest,
    RefineContentRequest,
    SearchTopicsRequest,
    SearchTopicsResponse,
)

logger = get_logger(__name__)

router = APIRouter()


def _reply(content: str, status: str, mode: ResponseMode):
    if mode == ResponseMode.RAW:
        return PlainTextResponse(content)
    return ContentResponse(status=status, content=content)


@router.post("/search-topics", response_model=SearchTopicsResponse)
async def search_topics(data: SearchTopicsRequest, provider: ContentProviderDep, user_id: CurrentUserId):
    """Suggested main topics and subtopics for a query."""
    query = require_text(data.query, "query", "Please enter a topic")
    topics = await provider.search_topics(query, data.limit)
    logger.info("Topic search", extra={"user_id": user_id, "results": len(topics)})
    return SearchTopicsResponse(query=query, topics=topics)


@router.post("/generate", response_model=ContentResponse)
async def generate_content(data: GenerateContentRequest, provider: ContentProviderDep, user_id: CurrentUserId):
    topic = require_text(data.topic_name, "topic_name", "Please choose a topic")
    urls = []
    if data.strategy == GenerationStrategy.URLS:
        urls = clean_source_urls(data.source_urls, get_settings().max_source_urls)

    request = GenerationRequest(
        strategy=data.strategy,
        topic_name=topic,
        main_topic_name=data.main_topic_name,
        source_urls=urls,
        use_llm_knowledge=data.use_llm_knowledge,
        num_results=data.num_results,
    )
    reply = await provider.generate(request, data.response_mode)
    return _reply(reply.content, reply.status, data.response_mode)


@router.post("/refine", response_model=ContentResponse)
async def refine_content(data: RefineContentRequest, provider: ContentProviderDep, user_id: CurrentUserId):
    """
    Refine a selection; the reply is the full document with the selection rewritten.

    Direct replacement splices ``question`` into the selection without calling
    the provider.
    """
    require_text(data.document, "document", "There is no content to refine")
    require_text(data.selected_text, "selected_text", "Please select some text in the editor to refine")
    if data.strategy == RefinementStrategy.DIRECT:
        question = require_text(data.question, "question", "Please enter the replacement text")
    else:
        question = require_text(data.question, "question", "Please enter a refinement question")
    urls = []
    if data.strategy == RefinementStrategy.URLS:
        urls = clean_source_urls(data.source_urls, get_settings().max_source_urls)

    request = RefinementRequest(
        strategy=data.strategy,
        document=data.document,
        question=question,
        selected_text=data.selected_text,
        selection_start=data.selection_start,
        selection_end=data.selection_end,
        topic_name=data.topic_name,
        source_urls=urls,
        num_results=data.num_results,
    )
    if data.strategy == RefinementStrategy.DIRECT:
        return _reply(request.splice(question), "success", data.response_mode)

    reply = await provider.refine(request, data.response_mode)
    return _reply(reply.content, reply.status, data.response_mode)
