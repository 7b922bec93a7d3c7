"""Pydantic models for the LearnFlow chat relay."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Chat wire types
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """One turn of a conversation, as sent by the browser client."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    messages: list[ChatMessage]
    userId: str | None = None


# ---------------------------------------------------------------------------
# Query understanding
# ---------------------------------------------------------------------------

class ResourceType(str, Enum):
    PDF = "pdf"
    NOTES = "notes"
    MANUAL = "manual"
    ASSIGNMENT = "assignment"
    LAB = "lab"
    DOWNLOAD = "download"


class ExtractedQueryFacts(BaseModel):
    """Everything the extractors could read out of a single query."""

    course_code: str | None = None
    unit: int | None = None
    semester: int | None = None
    resource_type: ResourceType | None = None
    is_navigation_query: bool = False
    needs_web_search: bool = False


# ---------------------------------------------------------------------------
# Static platform knowledge (read-only at request time)
# ---------------------------------------------------------------------------

class CourseResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: str


class CourseInfo(BaseModel):
    """A course in the catalogue, keyed by its code (e.g. ``CHB101``)."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    description: str = ""
    topics: tuple[str, ...] = ()
    resources: tuple[CourseResource, ...] = ()


class SemesterInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    path: str
    courses: tuple[str, ...] = ()


class NavigationPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    description: str = ""


class NavigationDepartment(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    path: str
    courses: tuple[str, ...] = ()


class NavigationSemester(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    name: str
    path: str
    courses: tuple[str, ...] = ()


class NavigationTable(BaseModel):
    """Website map used to answer "where do I find..." questions."""

    model_config = ConfigDict(frozen=True)

    pages: tuple[NavigationPage, ...] = ()
    departments: tuple[NavigationDepartment, ...] = ()
    semesters: tuple[NavigationSemester, ...] = ()
    resources: tuple[NavigationPage, ...] = ()


class KnowledgeBase(BaseModel):
    """Read-only lookup tables handed to the orchestrator at startup."""

    model_config = ConfigDict(frozen=True)

    courses: dict[str, CourseInfo] = Field(default_factory=dict)
    semesters: dict[int, SemesterInfo] = Field(default_factory=dict)
    navigation: NavigationTable = Field(default_factory=NavigationTable)

    def course(self, code: str) -> CourseInfo | None:
        return self.courses.get(code.upper())

    def semester(self, number: int) -> SemesterInfo | None:
        return self.semesters.get(number)


# ---------------------------------------------------------------------------
# Resource index
# ---------------------------------------------------------------------------

class FileResource(BaseModel):
    """A file discovered under the resources directory."""

    name: str
    path: str           # project-relative, forward slashes
    extension: str
    size_bytes: int
    modified_at: datetime


class DownloadResource(BaseModel):
    """A curated entry from ``downloads.json``."""

    title: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    url: str | None = None


class SearchResultSet(BaseModel):
    assignments: list[FileResource] = Field(default_factory=list)
    notes: list[FileResource] = Field(default_factory=list)
    lab_manuals: list[FileResource] = Field(default_factory=list)
    downloads: list[DownloadResource] = Field(default_factory=list)

    @property
    def total_results(self) -> int:
        return (
            len(self.assignments)
            + len(self.notes)
            + len(self.lab_manuals)
            + len(self.downloads)
        )


# ---------------------------------------------------------------------------
# Web search / file scan
# ---------------------------------------------------------------------------

class WebSearchResult(BaseModel):
    title: str
    link: str
    snippet: str = ""


class ScannedFile(BaseModel):
    """A file read by the ``/scan`` command."""

    path: str       # relative to the project root, forward slashes
    extension: str
    content: str
    size: int
    lines: int


class ScanReport(BaseModel):
    scan_path: str
    scanned_files: int
    total_files: int
    files: list[ScannedFile] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

class PromptEnvelope(BaseModel):
    """The three parts of a composed prompt.

    ``user_query`` and ``conversation_window`` are carried as data and only
    ever appended after the instruction block.
    """

    model_config = ConfigDict(frozen=True)

    system_instructions: str
    conversation_window: str
    user_query: str

    def render(self) -> str:
        return (
            f"{self.system_instructions}\n\n"
            f"Conversation history:\n{self.conversation_window}\n\n"
            f"User query: {self.user_query}"
        )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

DEFAULT_PRODUCTION_ORIGINS = ("https://learnflow.vercel.app", "https://www.learnflow.app")


class LearnflowSettings(BaseModel):
    """Runtime configuration, read from the environment by ``load_settings``.

    CLI flags override these values for a single invocation.
    Precedence: CLI flag > environment > default.
    """

    gemini_api_key: str | None = None
    """Credential for the generation endpoint. Without it every chat falls back."""

    gemini_model: str = "gemini-1.5-flash"

    search_api_key: str | None = None
    """Google Custom Search key. Without it web search is simulated offline."""

    search_engine_id: str | None = None

    host: str = "127.0.0.1"
    port: int = 3001

    environment: str = "development"
    """``production`` restricts CORS origins and admin commands."""

    cors_origins: list[str] | None = None
    """Explicit CORS allow-list; ``None`` picks the environment default."""

    project_root: Path = Field(default_factory=Path.cwd)
    resources_dir: Path | None = None
    navigation_file: Path | None = None
    static_dir: Path | None = None
    site_url: str = "https://learn-flow-seven.vercel.app"

    admin_users: list[str] = Field(default_factory=lambda: ["admin", "developer"])

    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: float = 60.0

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def effective_cors_origins(self) -> list[str]:
        if self.cors_origins is not None:
            return self.cors_origins
        if self.is_production:
            return list(DEFAULT_PRODUCTION_ORIGINS)
        return ["*"]

    @property
    def effective_resources_dir(self) -> Path:
        return self.resources_dir or self.project_root / "resources"
