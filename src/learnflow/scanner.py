"""Project file scanner used by the ``/scan`` and ``/debug`` commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .errors import ScanError
from .models import ScanReport, ScannedFile

logger = logging.getLogger(__name__)

# Directories to skip unconditionally (hidden directories are skipped too).
SKIP_DIRS: set[str] = {
    "node_modules", "dist", "build", ".git", ".github",
    "__pycache__", ".venv", "venv",
}

DEFAULT_EXTENSIONS: tuple[str, ...] = (
    ".html", ".css", ".js", ".jsx", ".ts", ".tsx", ".json", ".env", ".py",
)

MAX_SCAN_FILES = 20


def resolve_scan_path(root: Path, scan_path: str) -> Path:
    """Resolve *scan_path* against *root*, refusing anything outside it."""
    root = root.resolve()
    target = (root / scan_path.strip()).resolve() if scan_path.strip() else root
    try:
        target.relative_to(root)
    except ValueError:
        raise ScanError(f"Path is outside the project root: {scan_path}") from None
    if not target.exists():
        raise ScanError(f"Path does not exist: {scan_path}")
    return target


def list_files(target: Path, extensions: tuple[str, ...] = DEFAULT_EXTENSIONS) -> list[Path]:
    """Every matching file under *target*, sorted by path."""
    if target.is_file():
        return [target] if _matches(target.name, extensions) else []

    def _on_error(exc: OSError) -> None:
        logger.warning("Error scanning directory %s: %s", exc.filename, exc.strerror)

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(target, onerror=_on_error):
        # Prune excluded directories in-place so os.walk skips them.
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )
        for fname in filenames:
            if _matches(fname, extensions):
                found.append(Path(dirpath) / fname)
    found.sort(key=lambda p: p.as_posix())
    return found


def _matches(fname: str, extensions: tuple[str, ...]) -> bool:
    if not extensions:
        return True
    # ".env" has no suffix as far as splitext is concerned.
    ext = os.path.splitext(fname)[1].lower() or fname.lower()
    return ext in extensions


def within_root(path: Path, root: Path) -> bool:
    """True when *path*, with symlinks followed, stays under *root*."""
    try:
        path.resolve().relative_to(root.resolve())
    except (OSError, ValueError):
        return False
    return True


def read_file(path: Path, root: Path) -> ScannedFile | None:
    if not within_root(path, root):
        logger.warning("Skipping %s: it resolves outside %s", path, root)
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Error reading file %s: %s", path, exc)
        return None
    ext = os.path.splitext(path.name)[1].lower() or path.name.lower()
    return ScannedFile(
        path=path.resolve().relative_to(root.resolve()).as_posix(),
        extension=ext,
        content=content,
        size=len(content),
        lines=len(content.split("\n")),
    )


def scan_project(
    root: Path,
    scan_path: str = "",
    *,
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
    max_files: int = MAX_SCAN_FILES,
) -> ScanReport:
    """Read up to *max_files* matching files below ``root / scan_path``.

    Files whose symlinks lead outside *root* are left out of the listing.
    Raises ``ScanError`` when the path is missing or escapes *root*.
    """
    target = resolve_scan_path(root, scan_path)
    candidates = []
    for p in list_files(target, extensions):
        if within_root(p, root):
            candidates.append(p)
        else:
            logger.warning("Skipping %s: it resolves outside %s", p, root)
    files = [f for f in (read_file(p, root) for p in candidates[:max_files]) if f is not None]
    return ScanReport(
        scan_path=scan_path.strip() or "/",
        scanned_files=len(files),
        total_files=len(candidates),
        files=files,
    )
