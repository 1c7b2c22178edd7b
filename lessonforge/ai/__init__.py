"""
Content provider boundary.

The RAG service generates and refines lesson content; an OpenAI model can
answer the knowledge-only paths instead. Nothing here touches the database.
"""

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
from lessonforge.ai.content_provider import RagContentProvider
from lessonforge.ai.llm_provider import OpenAIContentProvider, build_content_provider

__all__ = [
    "ContentProvider",
    "GenerationRequest",
    "GenerationStrategy",
    "ProviderReply",
    "RefinementRequest",
    "RefinementStrategy",
    "ResponseMode",
    "TopicHierarchy",
    "RagContentProvider",
    "OpenAIContentProvider",
    "build_content_provider",
]
