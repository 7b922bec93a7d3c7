"""Prompt composition for ordinary chat.

``build_prompt`` is pure: the same query, conversation, knowledge tables,
resource matches and web results always give the same text. Sections are
emitted in a fixed order:

    persona -> course -> navigation -> resources -> web search
            -> closing instructions -> conversation window -> query

``PromptComposer`` gathers the inputs (extractors, resource index, web
search) and hands them to ``build_prompt``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from .errors import WebSearchError
from .extractors import extract_facts
from .models import (
    ChatMessage,
    ExtractedQueryFacts,
    KnowledgeBase,
    PromptEnvelope,
    SearchResultSet,
    WebSearchResult,
)
from .resources import ResourceIndex, describe_matches
from .websearch import WebSearchClient, format_results

logger = logging.getLogger(__name__)

CONVERSATION_WINDOW = 5

BASE_PERSONA = "You are LearnFlow Assistant, an advanced AI for an educational platform."

NAVIGATION_HELPER = (
    "The user is asking about navigating or finding resources on the LearnFlow "
    "platform. Be specific about where to find materials."
)

WEB_SEARCH_INTRO = (
    "I've searched the web for information related to this query. "
    "Here are some relevant results:"
)

CLOSING_INSTRUCTIONS = """\
Provide concise, accurate information about academic topics, learning resources, and study techniques. Be friendly and supportive.

When answering:
1. For educational questions, provide clear explanations with examples
2. For coding questions, provide well-commented code snippets
3. For resource questions, give specific paths where materials can be found
4. For course-specific questions, reference relevant course materials and topics
5. For general knowledge questions, use your knowledge to provide accurate and up-to-date information
6. For website-specific questions, guide users to the appropriate section of the LearnFlow website

If the user asks about content on the LearnFlow website, try to provide direct links or paths to the relevant pages.
If the user asks about academic topics not specific to LearnFlow, provide comprehensive educational answers.

Always maintain a helpful, educational tone and focus on providing value to students."""


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


@dataclass
class PromptBuilder:
    """Ordered list of instruction sections; empty sections are dropped."""

    sections: list[str] = field(default_factory=list)

    def add(self, text: str | None) -> PromptBuilder:
        if text and text.strip():
            self.sections.append(text.strip("\n"))
        return self

    def build(self) -> str:
        return "\n".join(self.sections)


# ---------------------------------------------------------------------------
# Section fragments
# ---------------------------------------------------------------------------


def course_section(facts: ExtractedQueryFacts, knowledge: KnowledgeBase) -> str | None:
    if not facts.course_code:
        return None
    course = knowledge.course(facts.course_code)
    if course is None:
        return None
    return (
        f"The user is asking about {course.code}: {course.name}. "
        f"This course covers: {', '.join(course.topics)}."
    )


def navigation_entries(query: str, knowledge: KnowledgeBase) -> list[str]:
    """Website-map entries whose name, code or semester appears in *query*."""
    q = query.lower()
    nav = knowledge.navigation
    lines: list[str] = []

    for page in nav.pages:
        if page.name.lower() in q:
            lines.append(f"The {page.name} page can be found at {page.path}. {page.description}".rstrip())

    for dept in nav.departments:
        code_hit = re.search(rf"\b{re.escape(dept.code.lower())}\b", q) is not None
        if code_hit or dept.name.lower() in q:
            lines.append(
                f"The {dept.name} ({dept.code}) department page can be found at {dept.path}. "
                f"It offers courses: {', '.join(dept.courses)}."
            )

    for sem in nav.semesters:
        pattern = rf"\b{sem.number}(st|nd|rd|th)?\s+sem(ester)?\b"
        if re.search(pattern, q):
            lines.append(
                f"The {sem.name} page can be found at {sem.path}. "
                f"It includes courses: {', '.join(sem.courses)}."
            )

    for resource in nav.resources:
        if resource.name.lower() in q:
            lines.append(
                f"The {resource.name} can be found at {resource.path}. {resource.description}".rstrip()
            )

    return lines


def navigation_section(
    query: str, facts: ExtractedQueryFacts, knowledge: KnowledgeBase
) -> str | None:
    if not facts.is_navigation_query:
        return None
    lines = [NAVIGATION_HELPER]
    if facts.semester is not None:
        semester = knowledge.semester(facts.semester)
        if semester is not None:
            lines.append(
                f"Semester {semester.number} resources are located at {semester.path} "
                f"and include courses: {', '.join(semester.courses)}."
            )
    lines.extend(navigation_entries(query, knowledge))
    return "\n".join(lines)


def resource_section(facts: ExtractedQueryFacts, results: SearchResultSet) -> str | None:
    hints: list[str] = []
    if facts.course_code:
        hints.append(f"The user is asking about course {facts.course_code}.")
    if facts.unit is not None:
        hints.append(f"They are specifically interested in Unit {facts.unit}.")
    if facts.semester is not None:
        hints.append(f"They are looking for Semester {facts.semester} materials.")
    if facts.resource_type is not None:
        hints.append(f"They want to find {facts.resource_type.value} resources.")

    matches = describe_matches(results)
    if not hints and not matches:
        return None
    return "\n".join(part for part in (" ".join(hints), matches.rstrip("\n")) if part)


def web_section(results: Sequence[WebSearchResult] | None) -> str | None:
    if not results:
        return None
    return f"{WEB_SEARCH_INTRO}{format_results(list(results))}"


def conversation_window(
    messages: Sequence[ChatMessage], size: int = CONVERSATION_WINDOW
) -> str:
    return "\n".join(m.content for m in messages[-size:])


def build_prompt(
    query: str,
    conversation: Sequence[ChatMessage],
    facts: ExtractedQueryFacts,
    knowledge: KnowledgeBase,
    resource_results: SearchResultSet | None = None,
    web_results: Sequence[WebSearchResult] | None = None,
) -> PromptEnvelope:
    """Assemble the prompt from already-gathered context."""
    instructions = (
        PromptBuilder()
        .add(BASE_PERSONA)
        .add(course_section(facts, knowledge))
        .add(navigation_section(query, facts, knowledge))
        .add(resource_section(facts, resource_results or SearchResultSet()))
        .add(web_section(web_results))
        .add(CLOSING_INSTRUCTIONS)
        .build()
    )
    return PromptEnvelope(
        system_instructions=instructions,
        conversation_window=conversation_window(conversation),
        user_query=query,
    )


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------


@dataclass
class PromptComposer:
    """Runs the extractors, gathers context, and builds the chat prompt."""

    knowledge: KnowledgeBase
    resources: ResourceIndex | None = None
    web_search: WebSearchClient | None = None

    async def _web_results(self, query: str) -> list[WebSearchResult]:
        if self.web_search is None:
            return []
        try:
            return await self.web_search.search(query)
        except WebSearchError as exc:
            logger.warning("Web search failed, continuing without it: %s", exc)
            return []

    async def compose(
        self,
        query: str,
        conversation: Sequence[ChatMessage],
        *,
        use_web_search: bool = True,
    ) -> PromptEnvelope:
        facts = extract_facts(query, self.knowledge.courses)
        results = self.resources.search(query) if self.resources else SearchResultSet()
        web: list[WebSearchResult] = []
        if use_web_search and facts.needs_web_search:
            logger.info("Performing web search for: %s", query[:100])
            web = await self._web_results(query)
        return build_prompt(query, conversation, facts, self.knowledge, results, web)
