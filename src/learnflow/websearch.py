"""Web search adapter -- Google Custom Search with an offline stand-in."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass

from .errors import WebSearchError
from .models import WebSearchResult

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
MAX_RESULTS = 3


def _result(title: str, link: str, snippet: str) -> WebSearchResult:
    return WebSearchResult(title=title, link=link, snippet=snippet)


# Topic keywords -> canned results. First matching topic wins.
SIMULATED_RESULTS: tuple[tuple[tuple[str, ...], tuple[WebSearchResult, ...]], ...] = (
    (
        ("python", "programming"),
        (
            _result("Python Documentation", "https://docs.python.org/3/",
                    "Official Python documentation with tutorials, library references, and more."),
            _result("W3Schools Python Tutorial", "https://www.w3schools.com/python/",
                    "Python tutorial with examples and exercises for beginners and advanced learners."),
            _result("Real Python - Python Tutorials", "https://realpython.com/",
                    "Python tutorials for developers of all skill levels, with in-depth articles and practical examples."),
        ),
    ),
    (
        ("math", "calculus"),
        (
            _result("Khan Academy - Mathematics", "https://www.khanacademy.org/math",
                    "Free online courses, lessons & practice in math, including arithmetic, algebra, geometry, and calculus."),
            _result("MIT OpenCourseWare - Mathematics", "https://ocw.mit.edu/courses/mathematics/",
                    "Free lecture notes, exams, and videos from MIT mathematics courses."),
            _result("Paul's Online Math Notes", "https://tutorial.math.lamar.edu/",
                    "Free and complete set of online notes for Algebra, Calculus, and Differential Equations."),
        ),
    ),
    (
        ("physics", "science"),
        (
            _result("Physics Classroom", "https://www.physicsclassroom.com/",
                    "Online physics tutorials and interactive activities for students and teachers."),
            _result("Khan Academy - Physics", "https://www.khanacademy.org/science/physics",
                    "Free online courses, lessons & practice in physics, including mechanics, electricity, and more."),
            _result("HyperPhysics", "http://hyperphysics.phy-astr.gsu.edu/hbase/index.html",
                    "Comprehensive physics reference with concepts organized in a hierarchical structure."),
        ),
    ),
)

GENERIC_RESULTS: tuple[WebSearchResult, ...] = (
    _result("Khan Academy", "https://www.khanacademy.org/",
            "Free online courses, lessons & practice in math, science, and more for students of all ages."),
    _result("Coursera", "https://www.coursera.org/",
            "Online courses from top universities and companies in various subjects."),
    _result("edX", "https://www.edx.org/",
            "Free online courses from Harvard, MIT, and more in computer science, business, and other subjects."),
)


def simulate_search(query: str) -> list[WebSearchResult]:
    """Deterministic results keyed by topic words in *query*."""
    q = query.lower()
    for keywords, results in SIMULATED_RESULTS:
        if any(k in q for k in keywords):
            return list(results)
    return list(GENERIC_RESULTS)


def format_results(results: list[WebSearchResult], limit: int = MAX_RESULTS) -> str:
    """Numbered markdown links with snippets; empty string for no results."""
    if not results:
        return ""
    parts = ["\n\nHere are some resources that might help:\n"]
    for i, r in enumerate(results[:limit], start=1):
        parts.append(f"{i}. [{r.title}]({r.link})\n   {r.snippet}\n")
    return "\n".join(parts)


@dataclass
class WebSearchClient:
    """Google Custom Search client.

    Without an ``api_key`` every search is answered by ``simulate_search``.
    With a key, provider faults raise ``WebSearchError``.
    """

    api_key: str | None = None
    engine_id: str | None = None
    max_results: int = MAX_RESULTS
    timeout: float = 10.0

    @property
    def simulated(self) -> bool:
        return not self.api_key

    def _search_sync(self, query: str) -> list[WebSearchResult]:
        params = urllib.parse.urlencode({
            "key": self.api_key,
            "cx": self.engine_id or "",
            "q": query,
        })
        req = urllib.request.Request(f"{GOOGLE_SEARCH_URL}?{params}", method="GET")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            error_body = exc.read().decode("utf-8", errors="replace")
            raise WebSearchError(f"Search API error ({exc.code}): {error_body}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise WebSearchError(f"Search request failed: {exc}") from exc
        except ValueError as exc:
            raise WebSearchError(f"Search API returned invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise WebSearchError(f"Search API returned {type(data).__name__}, expected an object")
        items = data.get("items")
        if not items:
            logger.info("No search results found for %r", query)
            return []
        if not isinstance(items, list):
            raise WebSearchError(f"Search API 'items' is {type(items).__name__}, expected a list")
        results: list[WebSearchResult] = []
        for item in items[: self.max_results]:
            if not isinstance(item, dict) or not item.get("link"):
                continue
            results.append(WebSearchResult(
                title=str(item.get("title", "")),
                link=str(item["link"]),
                snippet=str(item.get("snippet", "")),
            ))
        return results

    async def search(self, query: str) -> list[WebSearchResult]:
        if self.simulated:
            logger.debug("Using simulated web search results (no API key provided)")
            return simulate_search(query)[: self.max_results]
        return await asyncio.to_thread(self._search_sync, query)
