"""
Stateless content-provider request/response schemas.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from lessonforge.ai.types import GenerationStrategy, RefinementStrategy, ResponseMode, TopicHierarchy


class SearchTopicsRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    limit: Optional[int] = Field(None, ge=1, le=50)


class SearchTopicsResponse(BaseModel):
    query: str
    topics: List[TopicHierarchy]


class GenerateContentRequest(BaseModel):
    """Generate content for one topic."""

    strategy: GenerationStrategy = GenerationStrategy.CRAWL
    topic_name: str = Field(..., max_length=500)
    main_topic_name: str = Field("", max_length=500)
    source_urls: List[str] = Field(default_factory=list)
    use_llm_knowledge: Optional[bool] = None
    num_results: Optional[int] = Field(None, ge=1, le=20)
    response_mode: ResponseMode = ResponseMode.JSON


class RefineContentRequest(BaseModel):
    """Refine a selection of a document; the reply is the whole document."""

    strategy: RefinementStrategy = RefinementStrategy.SELECTION
    document: str
    question: str = ""
    selected_text: str = ""
    selection_start: Optional[int] = Field(None, ge=0)
    selection_end: Optional[int] = Field(None, ge=0)
    topic_name: str = Field("", max_length=500)
    source_urls: List[str] = Field(default_factory=list)
    num_results: Optional[int] = Field(None, ge=1, le=20)
    response_mode: ResponseMode = ResponseMode.JSON


class ContentResponse(BaseModel):
    status: str = "success"
    content: str
