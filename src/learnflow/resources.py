"""Resource index -- an in-memory snapshot of local study material.

Built once at startup from the ``resources/`` tree:

    resources/
        assignments/     indexed recursively
        notes/           indexed recursively
        lab-manuals/     indexed recursively
        downloads.json   curated list of {title, description, tags, url}

The snapshot is never refreshed while the process runs.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .models import DownloadResource, FileResource, SearchResultSet

logger = logging.getLogger(__name__)

INDEXABLE_EXTENSIONS: frozenset[str] = frozenset(
    {".pdf", ".doc", ".docx", ".txt", ".md", ".json"}
)

# Category attribute on SearchResultSet -> directory under resources/.
CATEGORY_DIRS: dict[str, str] = {
    "assignments": "assignments",
    "notes": "notes",
    "lab_manuals": "lab-manuals",
}

DOWNLOADS_FILE = "downloads.json"

# How many entries per category the prompt shows.
CONTEXT_EXAMPLES = 3


class ResourceIndex:
    """Category-grouped file and download listing with substring search."""

    def __init__(self, resources_dir: Path, project_root: Path | None = None) -> None:
        self.resources_dir = resources_dir
        self.project_root = (project_root or resources_dir.parent).resolve()
        self.files: dict[str, list[FileResource]] = {c: [] for c in CATEGORY_DIRS}
        self.downloads: list[DownloadResource] = []

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create missing directories, scan every category, load downloads.

        Never raises: a category that cannot be read is left empty.
        """
        for sub in CATEGORY_DIRS.values():
            target = self.resources_dir / sub
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.warning("Could not create directory %s: %s", target, exc)

        for category, sub in CATEGORY_DIRS.items():
            try:
                self.files[category] = self._scan_category(self.resources_dir / sub)
            except OSError as exc:
                logger.warning("Error scanning %s directory: %s", sub, exc)
                self.files[category] = []

        self.downloads = self._load_downloads()

        logger.info(
            "Resource index ready: %d assignments, %d notes, %d lab manuals, %d downloads",
            len(self.files["assignments"]),
            len(self.files["notes"]),
            len(self.files["lab_manuals"]),
            len(self.downloads),
        )

    def _scan_category(self, directory: Path) -> list[FileResource]:
        if not directory.is_dir():
            logger.info("%s does not exist, using empty list", directory)
            return []

        def _on_error(exc: OSError) -> None:
            logger.warning("Could not read %s: %s", exc.filename, exc.strerror)

        found: list[FileResource] = []
        for dirpath, dirnames, filenames in os.walk(directory, onerror=_on_error):
            dirnames.sort()
            for fname in sorted(filenames):
                ext = os.path.splitext(fname)[1].lower()
                if ext not in INDEXABLE_EXTENSIONS:
                    continue
                full = Path(dirpath) / fname
                try:
                    st = full.stat()
                except OSError as exc:
                    logger.warning("Error accessing %s: %s", full, exc)
                    continue
                found.append(FileResource(
                    name=fname,
                    path=self._relative(full),
                    extension=ext,
                    size_bytes=st.st_size,
                    modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                ))
        return found

    def _relative(self, path: Path) -> str:
        resolved = path.resolve()
        try:
            return resolved.relative_to(self.project_root).as_posix()
        except ValueError:
            return resolved.as_posix()

    def _load_downloads(self) -> list[DownloadResource]:
        path = self.resources_dir / DOWNLOADS_FILE
        if not path.exists():
            try:
                path.write_text("[]\n", encoding="utf-8")
                logger.info("Created empty %s", path)
            except OSError as exc:
                logger.warning("Could not create %s: %s", path, exc)
            return []

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading %s: %s", path, exc)
            return []
        if not isinstance(raw, list):
            logger.error("%s must contain a JSON array, got %s", path, type(raw).__name__)
            return []

        items: list[DownloadResource] = []
        for i, entry in enumerate(raw):
            try:
                items.append(DownloadResource.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Skipping invalid entry %d in %s: %s", i, path, exc)
        return items

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def search(self, query: str) -> SearchResultSet:
        """Case-insensitive substring match of the whole query."""
        needle = query.strip().lower()
        if not needle:
            return SearchResultSet()

        def file_hits(category: str) -> list[FileResource]:
            return [
                f for f in self.files[category]
                if needle in f.name.lower() or needle in f.path.lower()
            ]

        downloads = [
            d for d in self.downloads
            if needle in d.title.lower()
            or needle in d.description.lower()
            or any(needle in tag.lower() for tag in d.tags)
        ]
        return SearchResultSet(
            assignments=file_hits("assignments"),
            notes=file_hits("notes"),
            lab_manuals=file_hits("lab_manuals"),
            downloads=downloads,
        )

    def counts(self) -> dict[str, int]:
        out = {c: len(files) for c, files in self.files.items()}
        out["downloads"] = len(self.downloads)
        return out


def describe_matches(results: SearchResultSet, limit: int = CONTEXT_EXAMPLES) -> str:
    """Summarise a result set for the prompt: counts plus a few examples."""
    if results.total_results == 0:
        return ""

    lines = [f"I found {results.total_results} resources that might be relevant:"]
    file_groups = (
        ("assignments", results.assignments),
        ("notes", results.notes),
        ("lab manuals", results.lab_manuals),
    )
    for label, files in file_groups:
        if not files:
            continue
        lines.append(f"- {len(files)} {label}")
        lines.extend(f"  * {f.name} ({f.path})" for f in files[:limit])
    if results.downloads:
        lines.append(f"- {len(results.downloads)} downloads")
        lines.extend(
            f"  * {d.title} ({d.url or 'No URL provided'})"
            for d in results.downloads[:limit]
        )
    return "\n".join(lines) + "\n"
