"""LearnFlow - context-enriched chat relay for an educational platform."""

from .models import (  # noqa: F401 -- public re-exports
    ChatMessage,
    ExtractedQueryFacts,
    KnowledgeBase,
    LearnflowSettings,
    PromptEnvelope,
    SearchResultSet,
)
from .llm import LLMClient
from .orchestrator import AdminPolicy, ChatOrchestrator
from .prompts import PromptComposer, build_prompt
from .server import create_app

__version__ = "0.1.0"

__all__ = [
    "LLMClient",
    "AdminPolicy",
    "ChatOrchestrator",
    "PromptComposer",
    "build_prompt",
    "create_app",
    "ChatMessage",
    "ExtractedQueryFacts",
    "KnowledgeBase",
    "LearnflowSettings",
    "PromptEnvelope",
    "SearchResultSet",
]
