"""
Shared content-provider types - kept apart from the clients so the session
and the API schemas can import them without pulling in httpx or openai.
"""

from enum import Enum
from typing import List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from lessonforge.errors import InvalidRange


class GenerationStrategy(str, Enum):
    """How fresh content for a topic is produced."""
    CRAWL = "crawl"      # provider crawls the web for sources
    URLS = "urls"        # provider reads an explicit URL list
    LLM = "llm"          # provider's own knowledge only


class RefinementStrategy(str, Enum):
    """How a selected span is rewritten."""
    SELECTION = "selection"   # model knowledge applied to the selection
    CRAWLING = "crawling"     # selection refined with crawled sources
    URLS = "urls"             # selection refined with explicit URLs
    DIRECT = "direct"         # user-supplied replacement, no provider call

    @property
    def is_remote(self) -> bool:
        return self is not RefinementStrategy.DIRECT


class ResponseMode(str, Enum):
    """Shape of the provider reply."""
    JSON = "json"   # {"status": ..., "content": ...}
    RAW = "raw"     # bare text body


class TopicHierarchy(BaseModel):
    """One searched main topic with its suggested subtopics."""

    topic: str
    subtopics: List[str] = Field(default_factory=list)


class GenerationRequest(BaseModel):
    """Input for generating a topic's content."""

    strategy: GenerationStrategy = GenerationStrategy.CRAWL
    topic_name: str
    main_topic_name: str = ""
    source_urls: List[str] = Field(default_factory=list)
    use_llm_knowledge: Optional[bool] = None
    num_results: Optional[int] = None


class RefinementRequest(BaseModel):
    """
    Input for refining a span of a document.

    ``selection_start``/``selection_end`` locate the span in ``document``.
    Without them the first occurrence of ``selected_text`` is used.
    """

    strategy: RefinementStrategy = RefinementStrategy.SELECTION
    document: str
    question: str = ""
    selected_text: str = ""
    selection_start: Optional[int] = None
    selection_end: Optional[int] = None
    topic_name: str
    source_urls: List[str] = Field(default_factory=list)
    num_results: Optional[int] = None

    def selection_span(self) -> Tuple[int, int]:
        if self.selection_start is None or self.selection_end is None:
            start = self.document.find(self.selected_text) if self.selected_text else -1
            if start < 0:
                raise InvalidRange(
                    "Selected text does not occur in the document",
                    length=len(self.document),
                )
            return start, start + len(self.selected_text)

        start, end = self.selection_start, self.selection_end
        if start < 0 or end > len(self.document) or start > end:
            raise InvalidRange(start=start, end=end, length=len(self.document))
        if self.document[start:end] != self.selected_text:
            raise InvalidRange(
                "Selection offsets do not match the selected text",
                start=start,
                end=end,
                length=len(self.document),
            )
        return start, end

    def splice(self, fragment: str) -> str:
        """The whole document with ``fragment`` in place of the selected span."""
        start, end = self.selection_span()
        return self.document[:start] + fragment + self.document[end:]


class ProviderReply(BaseModel):
    """Normalized provider reply for either response mode."""

    status: str = "success"
    content: str
    mode: ResponseMode = ResponseMode.RAW


class ContentProvider(Protocol):
    """Boundary to the external content-generation service."""

    async def generate(
        self,
        request: GenerationRequest,
        mode: ResponseMode = ResponseMode.RAW,
    ) -> ProviderReply:
        ...

    async def refine(
        self,
        request: RefinementRequest,
        mode: ResponseMode = ResponseMode.RAW,
    ) -> ProviderReply:
        ...

    async def search_topics(self, query: str, limit: Optional[int] = None) -> List[TopicHierarchy]:
        ...
