"""Tests for prompt composition."""

from __future__ import annotations

import asyncio

from learnflow.errors import WebSearchError
from learnflow.knowledge import load_knowledge
from learnflow.models import (
    ChatMessage,
    DownloadResource,
    ExtractedQueryFacts,
    ResourceType,
    SearchResultSet,
    WebSearchResult,
)
from learnflow.prompts import (
    BASE_PERSONA,
    CLOSING_INSTRUCTIONS,
    NAVIGATION_HELPER,
    WEB_SEARCH_INTRO,
    PromptBuilder,
    PromptComposer,
    build_prompt,
    conversation_window,
    navigation_entries,
)

KNOWLEDGE = load_knowledge()


def _msgs(*contents: str) -> list[ChatMessage]:
    roles = ("user", "assistant")
    return [ChatMessage(role=roles[i % 2], content=c) for i, c in enumerate(contents)]


class FakeWebSearch:
    """Stands in for WebSearchClient."""

    def __init__(self, results=None, error: Exception | None = None):
        self.results = results or []
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.results


class TestBuilder:
    def test_drops_empty_sections(self):
        text = PromptBuilder().add("a").add(None).add("  \n").add("b\n").build()
        assert text == "a\nb"


class TestBuildPrompt:
    def test_course_section(self):
        facts = ExtractedQueryFacts(course_code="CHB101")
        env = build_prompt("nanomaterials in CHB 101", _msgs("q"), facts, KNOWLEDGE)
        assert "Chemistry Basics 101" in env.system_instructions
        assert "Nanomaterials" in env.system_instructions

    def test_unknown_course_has_no_section(self):
        facts = ExtractedQueryFacts(course_code="ZZZ999")
        env = build_prompt("q", _msgs("q"), facts, KNOWLEDGE)
        assert "The user is asking about ZZZ999:" not in env.system_instructions

    def test_section_order(self):
        facts = ExtractedQueryFacts(
            course_code="CHB101",
            semester=1,
            resource_type=ResourceType.NOTES,
            is_navigation_query=True,
        )
        results = SearchResultSet(downloads=[DownloadResource(title="Atoms deck")])
        web = [WebSearchResult(title="Ref", link="https://ref", snippet="s")]
        env = build_prompt("Where are CHB101 notes?", _msgs("q"), facts, KNOWLEDGE, results, web)
        text = env.system_instructions

        markers = [
            BASE_PERSONA,
            "Chemistry Basics 101",
            NAVIGATION_HELPER,
            "Semester 1 resources are located at /resources/semester1",
            "They want to find notes resources.",
            "I found 1 resources",
            WEB_SEARCH_INTRO,
            "1. [Ref](https://ref)",
            CLOSING_INSTRUCTIONS.splitlines()[0],
        ]
        positions = [text.index(m) for m in markers]
        assert positions == sorted(positions)

    def test_deterministic(self):
        facts = ExtractedQueryFacts(course_code="ITC101", is_navigation_query=True, semester=2)
        args = ("Where is ITC101 for 2nd sem?", _msgs("a", "b", "c"), facts, KNOWLEDGE)
        assert build_prompt(*args).render() == build_prompt(*args).render()

    def test_resource_hints_without_matches(self):
        facts = ExtractedQueryFacts(course_code="CSE201", unit=3)
        env = build_prompt("q", _msgs("q"), facts, KNOWLEDGE, SearchResultSet())
        assert (
            "The user is asking about course CSE201. "
            "They are specifically interested in Unit 3." in env.system_instructions
        )
        assert "I found" not in env.system_instructions

    def test_render_layout(self):
        env = build_prompt("final?", _msgs("first", "final?"), ExtractedQueryFacts(), KNOWLEDGE)
        rendered = env.render()
        assert rendered.startswith(BASE_PERSONA)
        assert rendered.endswith("\n\nConversation history:\nfirst\nfinal?\n\nUser query: final?")


class TestConversationWindow:
    def test_keeps_last_five(self):
        msgs = _msgs(*(f"m{i}" for i in range(8)))
        assert conversation_window(msgs) == "m3\nm4\nm5\nm6\nm7"

    def test_short_history(self):
        assert conversation_window(_msgs("only")) == "only"


class TestNavigationEntries:
    def test_page_and_department(self):
        lines = navigation_entries("where is the cgpa calculator for cse?", KNOWLEDGE)
        assert any("/tools/cgpa-calculator" in line for line in lines)
        assert any("/departments/cse" in line for line in lines)

    def test_department_code_needs_word_boundary(self):
        lines = navigation_entries("show me the itchy notes", KNOWLEDGE)
        assert not any("(ITC)" in line for line in lines)

    def test_semester_entry(self):
        lines = navigation_entries("3rd semester timetable", KNOWLEDGE)
        assert any(line.startswith("The Semester 3 page") for line in lines)


class TestComposer:
    def test_web_search_used_for_general_question(self):
        web = FakeWebSearch([WebSearchResult(title="Doc", link="https://doc", snippet="")])
        composer = PromptComposer(knowledge=KNOWLEDGE, web_search=web)
        env = asyncio.run(composer.compose("Explain recursion", _msgs("Explain recursion")))
        assert web.queries == ["Explain recursion"]
        assert "1. [Doc](https://doc)" in env.system_instructions

    def test_web_search_skipped_for_platform_question(self):
        web = FakeWebSearch([WebSearchResult(title="Doc", link="https://doc")])
        composer = PromptComposer(knowledge=KNOWLEDGE, web_search=web)
        asyncio.run(composer.compose("When is the assignment due?", _msgs("x")))
        assert web.queries == []

    def test_web_search_disabled(self):
        web = FakeWebSearch([WebSearchResult(title="Doc", link="https://doc")])
        composer = PromptComposer(knowledge=KNOWLEDGE, web_search=web)
        asyncio.run(composer.compose("Explain recursion", _msgs("x"), use_web_search=False))
        assert web.queries == []

    def test_web_search_failure_omits_section(self):
        web = FakeWebSearch(error=WebSearchError("quota exceeded"))
        composer = PromptComposer(knowledge=KNOWLEDGE, web_search=web)
        env = asyncio.run(composer.compose("Explain recursion", _msgs("Explain recursion")))
        assert WEB_SEARCH_INTRO not in env.system_instructions
        assert env.system_instructions.endswith(CLOSING_INSTRUCTIONS)
