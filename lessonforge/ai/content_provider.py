"""
RAG content provider client.

Talks to the external RAG service over HTTP. Every generation and
refinement route exists in two flavours: a JSON one returning
{"status", "content"} and a "-raw" one returning the bare text body.
Selection refinement relies on the raw flavour, because the range tracker
measures offsets against the exact text the service sends back.
"""

import json
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx

from lessonforge.ai.types import (
    GenerationRequest,
    GenerationStrategy,
    ProviderReply,
    RefinementRequest,
    RefinementStrategy,
    ResponseMode,
    TopicHierarchy,
)
from lessonforge.config import get_settings
from lessonforge.errors import ProviderUnavailable, ValidationError
from lessonforge.logging_config import get_logger

logger = get_logger(__name__)

_GENERATION_ROUTES: Dict[GenerationStrategy, str] = {
    GenerationStrategy.CRAWL: "/rag/single-topic",
    GenerationStrategy.URLS: "/rag/generate-mdx-from-urls",
    GenerationStrategy.LLM: "/rag/generate-mdx-llm-only",
}

_REFINEMENT_ROUTES: Dict[RefinementStrategy, str] = {
    RefinementStrategy.SELECTION: "/rag/refine-with-selection",
    RefinementStrategy.CRAWLING: "/rag/refine-with-crawling",
    RefinementStrategy.URLS: "/rag/refine-with-urls",
}

_JSON_FENCE = re.compile(r"```json\s*\n([\s\S]*?)\n\s*```")


def _route(base: str, mode: ResponseMode) -> str:
    return f"{base}-raw" if mode == ResponseMode.RAW else base


def generation_payload(request: GenerationRequest, num_results: int) -> Tuple[str, Dict[str, Any]]:
    """Route and JSON body for a generation request."""
    payload: Dict[str, Any] = {
        "selected_topic": request.topic_name,
        "main_topic": request.main_topic_name,
        "topic": request.topic_name,
    }
    if request.strategy == GenerationStrategy.CRAWL:
        payload["num_results"] = request.num_results or num_results
    elif request.strategy == GenerationStrategy.URLS:
        payload["urls"] = list(request.source_urls)
        # Sent only when chosen; otherwise the service applies its own default.
        if request.use_llm_knowledge is not None:
            payload["use_llm_knowledge"] = request.use_llm_knowledge
    return _GENERATION_ROUTES[request.strategy], payload


def refinement_payload(request: RefinementRequest, num_results: int) -> Tuple[str, Dict[str, Any]]:
    """Route and JSON body for a refinement request."""
    if not request.strategy.is_remote:
        raise ValidationError("Direct replacement does not call the content provider", field="strategy")
    payload: Dict[str, Any] = {
        "mdx": request.document,
        "question": request.question,
        "selected_text": request.selected_text,
        "topic": request.topic_name,
    }
    if request.strategy == RefinementStrategy.CRAWLING:
        payload["num_results"] = request.num_results or num_results
    elif request.strategy == RefinementStrategy.URLS:
        payload["urls"] = list(request.source_urls)
    return _REFINEMENT_ROUTES[request.strategy], payload


def unwrap_json_content(data: Any) -> ProviderReply:
    """
    Pull the document out of a JSON reply.

    Accepts {"content": ...}, {"data": {"content": ...}} and {"mdx": ...}.
    """
    if not isinstance(data, dict):
        raise ProviderUnavailable("Content provider returned an unexpected reply")
    status = str(data.get("status") or "success")
    if status == "error":
        raise ProviderUnavailable(str(data.get("message") or data.get("error") or "Content provider reported an error"))

    nested = data.get("data") if isinstance(data.get("data"), dict) else {}
    content = data.get("content")
    if content is None:
        content = nested.get("content", nested.get("mdx"))
    if content is None:
        content = data.get("mdx")
    if not isinstance(content, str):
        raise ProviderUnavailable("Content provider reply has no content")
    return ProviderReply(status=status, content=content, mode=ResponseMode.JSON)


def parse_topic_hierarchy(data: Any) -> List[TopicHierarchy]:
    """
    Parse the search-topics reply.

    The service embeds the hierarchy as a fenced ```json block inside
    data.topics; a plain list is accepted as well.
    """
    if not isinstance(data, dict) or data.get("status") not in (None, "success"):
        raise ProviderUnavailable("Topic search failed")

    topics = (data.get("data") or {}).get("topics") if isinstance(data.get("data"), dict) else data.get("topics")
    if isinstance(topics, str):
        match = _JSON_FENCE.search(topics)
        raw = match.group(1) if match else topics
        try:
            topics = json.loads(raw)
        except ValueError as exc:
            raise ProviderUnavailable("Error parsing topics data") from exc
    if not isinstance(topics, list):
        raise ProviderUnavailable("Error parsing topics data")
    return [TopicHierarchy.model_validate(item) for item in topics]


class RagContentProvider:
    """
    HTTP client for the RAG service.

    Any transport error or non-2xx status is raised as ProviderUnavailable so
    the session can surface a retryable message.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        num_results: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.content_provider_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.content_provider_timeout
        self.num_results = num_results or settings.crawl_num_results
        self._transport = transport

    async def generate(
        self,
        request: GenerationRequest,
        mode: ResponseMode = ResponseMode.RAW,
    ) -> ProviderReply:
        route, payload = generation_payload(request, self.num_results)
        return await self._post_content(_route(route, mode), payload, mode)

    async def refine(
        self,
        request: RefinementRequest,
        mode: ResponseMode = ResponseMode.RAW,
    ) -> ProviderReply:
        route, payload = refinement_payload(request, self.num_results)
        return await self._post_content(_route(route, mode), payload, mode)

    async def search_topics(self, query: str, limit: Optional[int] = None) -> List[TopicHierarchy]:
        response = await self._post("/rag/search-topics", {"query": query, "limit": limit})
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderUnavailable("Topic search returned invalid JSON") from exc
        return parse_topic_hierarchy(data)

    async def _post_content(self, route: str, payload: Dict[str, Any], mode: ResponseMode) -> ProviderReply:
        response = await self._post(route, payload)
        if mode == ResponseMode.RAW:
            return ProviderReply(status="success", content=response.text, mode=mode)
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderUnavailable("Content provider returned invalid JSON") from exc
        return unwrap_json_content(data)

    async def _post(self, route: str, payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}{route}"
        logger.info("Content provider request", extra={"route": route})
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Content provider unreachable: %s", exc, extra={"route": route})
            raise ProviderUnavailable("Content provider is unavailable. Please try again.") from exc

        if response.status_code >= 400:
            logger.warning(
                "Content provider error",
                extra={"route": route, "status_code": response.status_code},
            )
            raise ProviderUnavailable(
                f"Content provider error ({response.status_code}). Please try again.",
                status_code=response.status_code,
            )
        return response
