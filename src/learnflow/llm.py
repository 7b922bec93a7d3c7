"""LLM client -- async wrapper around Gemini's ``generateContent`` endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field

from .errors import UpstreamError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1/models"
DEFAULT_MODEL = "gemini-1.5-flash"


@dataclass
class LLMClient:
    """Minimal Gemini client using stdlib only.

    One attempt per call: any provider failure raises ``UpstreamError`` and
    the caller decides what to do about it.
    """

    api_key: str
    model: str = DEFAULT_MODEL
    timeout: float = 60.0
    _total_calls: int = field(default=0, init=False, repr=False)
    _failed_calls: int = field(default=0, init=False, repr=False)

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_BASE_URL}/{self.model}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    @staticmethod
    def _build_body(prompt: str, temperature: float, max_output_tokens: int) -> bytes:
        return json.dumps({
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }).encode("utf-8")

    @staticmethod
    def _extract_text(data: object) -> str:
        """Pull ``candidates[0].content.parts[0].text`` out of a response."""
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]  # type: ignore[index]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamError("Invalid response format from Gemini API") from exc
        if not isinstance(text, str):
            raise UpstreamError("Invalid response format from Gemini API")
        return text

    def _generate_sync(self, prompt: str, temperature: float, max_output_tokens: int) -> str:
        """Blocking call. Meant to be run via asyncio.to_thread."""
        req = urllib.request.Request(
            self.endpoint,
            data=self._build_body(prompt, temperature, max_output_tokens),
            headers=self._headers(),
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            error_body = exc.read().decode("utf-8", errors="replace")
            raise UpstreamError(f"Gemini API error ({exc.code}): {error_body}") from exc
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise UpstreamError(f"Gemini request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError(f"Gemini API returned invalid JSON: {exc}") from exc
        return self._extract_text(data)

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_output_tokens: int = 800,
    ) -> str:
        """Send *prompt* and return the generated text."""
        self._total_calls += 1
        try:
            return await asyncio.to_thread(
                self._generate_sync, prompt, temperature, max_output_tokens
            )
        except UpstreamError:
            self._failed_calls += 1
            raise

    def get_stats(self) -> dict[str, int]:
        return {"total_calls": self._total_calls, "failed_calls": self._failed_calls}
