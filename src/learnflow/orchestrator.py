"""Request orchestrator -- turns a chat request into one assistant reply.

Two dispatch paths:

* admin commands (``/scan [path]``, ``/debug [path]``) read project files
  and ask the model for a code-review style report;
* everything else goes through the prompt composer and the model.

Generation and scan failures never escape ``handle``: the caller always
gets an assistant message back. Only a request without any user message
raises (``ClientInputError``).
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import ClientInputError, ScanError, UpstreamError
from .models import ChatMessage, ScanReport
from .prompts import PromptComposer
from .scanner import MAX_SCAN_FILES, scan_project

logger = logging.getLogger(__name__)

ADMIN_COMMANDS: tuple[str, ...] = ("/scan", "/debug")

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 800
ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 1000

# Characters of each file shown to the model during a scan.
EXCERPT_CHARS = 500


class TextGenerator(Protocol):
    async def generate(
        self, prompt: str, *, temperature: float = ..., max_output_tokens: int = ...
    ) -> str: ...


# ---------------------------------------------------------------------------
# Admin authorization
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdminPolicy:
    """Decides who may run admin commands.

    Listed identities are always allowed. ``open_access`` lets everyone in,
    which is the development default.
    """

    admin_users: frozenset[str] = frozenset()
    open_access: bool = False

    @classmethod
    def from_users(cls, users: Iterable[str], *, open_access: bool = False) -> AdminPolicy:
        return cls(admin_users=frozenset(u.strip() for u in users if u.strip()), open_access=open_access)

    def is_authorized(self, identity: str, command: str) -> bool:
        if command not in ADMIN_COMMANDS:
            return False
        return self.open_access or identity in self.admin_users


# ---------------------------------------------------------------------------
# Fallback replies
# ---------------------------------------------------------------------------

GREETING_REPLY = "Hello! I'm LearnFlow Assistant. How can I help you with your educational needs today?"
HELP_REPLY = (
    "I'm here to help with your educational questions. "
    "You can ask me about courses, assignments, or study resources."
)
COURSE_REPLY = (
    "LearnFlow offers various courses across different disciplines. "
    "You can find course materials in the Resources section of the website."
)
ASSIGNMENT_REPLY = (
    "For assignment help, please check the specific course page where all "
    "assignments are listed with their due dates and requirements."
)
RESOURCE_REPLY = (
    "Educational resources are available in the Resources section. "
    "You can filter by course, semester, or topic to find what you need."
)
GENERIC_REPLY = (
    "I'm currently experiencing connection issues with my knowledge base. "
    "Please try again later or rephrase your question."
)
APOLOGY_REPLY = "I'm sorry, I encountered an error processing your request. Please try again later."

# Checked in order; first match wins.
FALLBACK_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(hello|hi)\b"), GREETING_REPLY),
    (re.compile(r"help"), HELP_REPLY),
    (re.compile(r"course|class"), COURSE_REPLY),
    (re.compile(r"assignment|homework"), ASSIGNMENT_REPLY),
    (re.compile(r"resource|material"), RESOURCE_REPLY),
)


def fallback_reply(query: str) -> str:
    """Canned answer used when the model cannot be reached."""
    q = query.lower()
    for pattern, reply in FALLBACK_RULES:
        if pattern.search(q):
            return reply
    return GENERIC_REPLY


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def latest_user_message(messages: Sequence[ChatMessage]) -> ChatMessage:
    for message in reversed(messages):
        if message.role == "user":
            return message
    raise ClientInputError("No user message found")


def parse_command(content: str) -> tuple[str, str] | None:
    """Split ``/scan some/path`` into ``("/scan", "some/path")``."""
    text = content.strip()
    for command in ADMIN_COMMANDS:
        if text.startswith(command):
            return command, text[len(command):].strip()
    return None


def build_analysis_prompt(report: ScanReport) -> str:
    blocks = []
    for f in report.files:
        excerpt = f.content[:EXCERPT_CHARS]
        if len(f.content) > EXCERPT_CHARS:
            excerpt += "..."
        blocks.append(
            f"File: {f.path} ({f.lines} lines)\n"
            f"Extension: {f.extension}\n"
            f"First {EXCERPT_CHARS} chars: {excerpt}\n"
        )
    return (
        "You are a code review expert. Analyze these files for potential issues:\n"
        + "\n".join(blocks)
        + "\nIdentify potential issues like:\n"
        "1. Syntax errors\n"
        "2. Broken imports\n"
        "3. Unused variables or dead code\n"
        "4. Missing tags or structural issues\n"
        "5. Unhandled async code or bad API calls\n\n"
        "Format your response as a clear, concise report with specific issues and suggested fixes."
    )


def format_file_listing(report: ScanReport) -> str:
    return "\n".join(f"- {f.path} ({f.lines} lines)" for f in report.files)


def scan_header(report: ScanReport) -> str:
    return (
        "📁 File Scan Results:\n\n"
        f"Scanned {report.scanned_files} files in {report.scan_path}\n"
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


@dataclass
class ChatOrchestrator:
    composer: PromptComposer
    llm: TextGenerator | None
    project_root: Path
    admin_policy: AdminPolicy = field(default_factory=AdminPolicy)
    max_scan_files: int = MAX_SCAN_FILES

    async def handle(self, messages: Sequence[ChatMessage], identity: str) -> ChatMessage:
        latest = latest_user_message(messages)
        content = latest.content.strip()

        command = parse_command(content)
        if command is not None:
            name, scan_path = command
            logger.info("Command %s from %s (path=%r)", name, identity, scan_path or "/")
            reply = await self.run_command(name, scan_path, identity)
        else:
            logger.info("Chat request from %s", identity)
            reply = await self.run_chat(content, messages)
        return ChatMessage(role="assistant", content=reply)

    async def _generate(self, prompt: str, *, temperature: float, max_output_tokens: int) -> str:
        if self.llm is None:
            raise UpstreamError("No LLM client configured")
        return await self.llm.generate(
            prompt, temperature=temperature, max_output_tokens=max_output_tokens
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def run_chat(self, query: str, messages: Sequence[ChatMessage]) -> str:
        envelope = await self.composer.compose(query, messages)
        try:
            return await self._generate(
                envelope.render(),
                temperature=CHAT_TEMPERATURE,
                max_output_tokens=CHAT_MAX_TOKENS,
            )
        except UpstreamError as exc:
            logger.error("Generation failed, using fallback response: %s", exc)
            return fallback_reply(query)

    # ------------------------------------------------------------------
    # Admin commands
    # ------------------------------------------------------------------

    async def run_command(self, command: str, scan_path: str, identity: str) -> str:
        if not self.admin_policy.is_authorized(identity, command):
            logger.warning("Denied %s for %s", command, identity)
            return f"🔒 The {command} command is restricted to administrators."

        try:
            report = await asyncio.to_thread(
                scan_project, self.project_root, scan_path, max_files=self.max_scan_files
            )
        except ScanError as exc:
            logger.warning("Scan failed for %r: %s", scan_path, exc)
            return f"❌ Scan Error: {exc}"
        except OSError as exc:
            logger.error("Error scanning files under %r: %s", scan_path, exc)
            return f"❌ Scan Error: could not read {scan_path or '/'} ({exc.strerror or exc})"

        reply = scan_header(report)
        if not report.files:
            return reply + "\nNo files found matching the criteria."

        try:
            analysis = await self._generate(
                build_analysis_prompt(report),
                temperature=ANALYSIS_TEMPERATURE,
                max_output_tokens=ANALYSIS_MAX_TOKENS,
            )
        except UpstreamError as exc:
            logger.error("File analysis failed: %s", exc)
            return (
                reply
                + "\nFile analysis failed. Here's a list of files found:\n"
                + format_file_listing(report)
            )
        return reply + "\n" + analysis
