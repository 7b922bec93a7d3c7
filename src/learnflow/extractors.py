"""Query classifiers.

Every function here is total: it returns a fact, ``None`` or ``False`` and
never raises for any input string.
"""

from __future__ import annotations

import re
from collections.abc import Container

from .models import ExtractedQueryFacts, ResourceType

COURSE_CODE_RE = re.compile(r"\b([A-Za-z]{2,3})\s*(\d{3})\b")
SEMESTER_RE = re.compile(r"\b([1-9])(st|nd|rd|th)?\s+sem(ester)?\b", re.IGNORECASE)
UNIT_RE = re.compile(r"\bunit\s*(\d+)\b", re.IGNORECASE)
RESOURCE_TYPE_RE = re.compile(
    r"\b(pdf|notes|manual|assignment|lab|download)\b", re.IGNORECASE
)
YEAR_RE = re.compile(r"\b20\d{2}\b")

NAVIGATION_KEYWORDS: tuple[str, ...] = (
    "where",
    "find",
    "locate",
    "show me",
    "how to access",
    "resources",
    "materials",
    "lectures",
    "notes",
    "semester",
)

RECENCY_KEYWORDS: tuple[str, ...] = (
    "latest",
    "recent",
    "new",
    "current",
    "today",
    "yesterday",
    "this week",
    "this month",
    "this year",
    "update",
    "news",
)

PLATFORM_KEYWORDS: tuple[str, ...] = (
    "learnflow",
    "course",
    "assignment",
    "lecture",
    "professor",
    "class",
)


def extract_course_code(query: str, known_codes: Container[str]) -> str | None:
    """Return the first course code in *query* that exists in *known_codes*.

    ``"CHB 101"`` and ``"chb101"`` both resolve to ``"CHB101"``.
    """
    for match in COURSE_CODE_RE.finditer(query):
        code = f"{match.group(1)}{match.group(2)}".upper()
        if code in known_codes:
            return code
    return None


def extract_semester(query: str) -> int | None:
    match = SEMESTER_RE.search(query)
    return int(match.group(1)) if match else None


def extract_unit(query: str) -> int | None:
    match = UNIT_RE.search(query)
    return int(match.group(1)) if match else None


def extract_resource_type(query: str) -> ResourceType | None:
    match = RESOURCE_TYPE_RE.search(query)
    return ResourceType(match.group(1).lower()) if match else None


def is_navigation_query(query: str) -> bool:
    q = query.lower()
    return any(k in q for k in NAVIGATION_KEYWORDS)


def needs_web_search(query: str) -> bool:
    """Decide whether outside information would help answer *query*.

    True for anything that asks about recent events, and for anything that
    does not mention the platform itself.
    """
    q = query.lower()
    mentions_recency = any(k in q for k in RECENCY_KEYWORDS) or bool(YEAR_RE.search(q))
    about_platform = any(k in q for k in PLATFORM_KEYWORDS)
    return mentions_recency or not about_platform


def extract_facts(query: str, known_codes: Container[str]) -> ExtractedQueryFacts:
    return ExtractedQueryFacts(
        course_code=extract_course_code(query, known_codes),
        unit=extract_unit(query),
        semester=extract_semester(query),
        resource_type=extract_resource_type(query),
        is_navigation_query=is_navigation_query(query),
        needs_web_search=needs_web_search(query),
    )
