"""Settings loading: ``.env`` file plus environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from pathlib import Path

from pydantic import ValidationError

from .errors import ConfigError
from .models import LearnflowSettings

logger = logging.getLogger(__name__)


def _dotenv_pairs(text: str) -> Iterator[tuple[str, str]]:
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.removeprefix("export ").strip()
        if key:
            yield key, value.strip().strip("\"'")


def find_dotenv(start_dir: Path) -> Path | None:
    """Nearest ``.env`` at *start_dir* or in one of its parents."""
    here = start_dir.resolve()
    for directory in (here, *here.parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return candidate
    return None


def load_dotenv(start_dir: Path) -> Path | None:
    """Copy the nearest ``.env`` into ``os.environ`` and return its path.

    Variables already present in the environment win over the file.
    """
    path = find_dotenv(start_dir)
    if path is None:
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return None
    loaded = 0
    for key, value in _dotenv_pairs(text):
        if key not in os.environ:
            os.environ[key] = value
            loaded += 1
    logger.debug("Loaded %d variable(s) from %s", loaded, path)
    return path


def _csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def load_settings(environ: Mapping[str, str] | None = None) -> LearnflowSettings:
    """Build settings from *environ* (``os.environ`` by default).

    Unset or blank variables keep the model default.
    """
    env = os.environ if environ is None else environ

    def get(name: str) -> str | None:
        value = env.get(name, "").strip()
        return value or None

    values: dict[str, object] = {}
    mapping = {
        "GEMINI_API_KEY": "gemini_api_key",
        "GEMINI_MODEL": "gemini_model",
        "GOOGLE_SEARCH_API_KEY": "search_api_key",
        "GOOGLE_SEARCH_ENGINE_ID": "search_engine_id",
        "HOST": "host",
        "PORT": "port",
        "LEARNFLOW_PROJECT_ROOT": "project_root",
        "LEARNFLOW_RESOURCES_DIR": "resources_dir",
        "LEARNFLOW_NAVIGATION_FILE": "navigation_file",
        "LEARNFLOW_STATIC_DIR": "static_dir",
        "LEARNFLOW_SITE_URL": "site_url",
        "LEARNFLOW_RATE_LIMIT": "rate_limit_max_requests",
        "LEARNFLOW_RATE_WINDOW": "rate_limit_window_seconds",
    }
    for var, field_name in mapping.items():
        value = get(var)
        if value is not None:
            values[field_name] = value

    environment = get("LEARNFLOW_ENV") or get("NODE_ENV")
    if environment:
        values["environment"] = environment
    origins = get("LEARNFLOW_CORS_ORIGINS")
    if origins:
        values["cors_origins"] = _csv(origins)
    admins = get("LEARNFLOW_ADMIN_USERS")
    if admins:
        values["admin_users"] = _csv(admins)

    try:
        return LearnflowSettings.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
