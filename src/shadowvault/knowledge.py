"""Maintenance of a project's ``.ai`` knowledge store."""

from __future__ import annotations

import math
import os
from datetime import datetime
from pathlib import Path

from .models import KnowledgeStats, SessionRecap

STORE_DIRNAME = ".ai"
STORE_LAYOUT = ("plans", "docs", "context/archive", "prompts", "cache", "agents")
INDEX_FILENAME = "INDEX.md"
SESSION_FILENAME = "session.md"
TOKENS_PER_KIB = 250
RECAP_LINES = 10
RECAP_DOCUMENTS = 5


def find_store(start: Path) -> Path | None:
    """Return the nearest ``.ai`` directory at or above ``start``."""

    start = start.resolve(strict=False)
    for directory in (start, *start.parents):
        if directory == directory.parent:
            break
        candidate = directory / STORE_DIRNAME
        if candidate.is_dir():
            return candidate
    return None


def init_store(project_root: Path) -> list[Path]:
    """Create the store layout under ``project_root``; returns directories created."""

    store = project_root / STORE_DIRNAME
    created: list[Path] = []
    for relative in STORE_LAYOUT:
        directory = store / relative
        if not directory.is_dir():
            directory.mkdir(parents=True, exist_ok=True)
            created.append(directory)
    return created


def archive_session(store: Path, now: datetime | None = None) -> Path | None:
    """Move the active ``session.md`` into ``context/archive``."""

    session = store / SESSION_FILENAME
    if not session.is_file():
        return None

    now = now or datetime.now()
    archive_dir = store / "context" / "archive"
    archive_dir.mkdir(parents=True, exist_ok=True)

    stem = f"session-{now:%Y%m%d-%H%M}"
    destination = archive_dir / f"{stem}.md"
    counter = 1
    while destination.exists():
        counter += 1
        destination = archive_dir / f"{stem}-{counter}.md"

    session.replace(destination)
    return destination


def rebuild_index(store: Path, now: datetime | None = None) -> Path:
    """Regenerate ``docs/INDEX.md`` from the markdown documents in ``docs``."""

    now = now or datetime.now()
    docs = store / "docs"
    docs.mkdir(parents=True, exist_ok=True)
    index = docs / INDEX_FILENAME

    lines = [
        "# AI Knowledge Index",
        f"*Generated on {now:%Y-%m-%d %H:%M}*",
        "",
        "## Documents",
    ]
    for document in sorted(docs.rglob("*.md")):
        if document == index:
            continue
        relative = document.relative_to(docs).as_posix()
        lines.append(f"- [{_document_title(document) or relative}]({relative})")

    index.write_text("\n".join(lines) + "\n")
    return index


def collect_stats(store: Path) -> KnowledgeStats:
    total_bytes = 0
    for dirpath, _dirnames, filenames in os.walk(store):
        for name in filenames:
            path = Path(dirpath) / name
            if not path.is_symlink():
                total_bytes += path.stat().st_size

    cache_files = _files(store / "cache", "*")
    oldest = min((path.stat().st_mtime for path in cache_files), default=None)

    return KnowledgeStats(
        total_bytes=total_bytes,
        doc_count=len(_files(store / "docs", "*.md")),
        cache_count=len(cache_files),
        plan_count=len(_files(store / "plans", "*.md")),
        estimated_tokens=math.ceil(total_bytes / 1024) * TOKENS_PER_KIB,
        oldest_cache=datetime.fromtimestamp(oldest) if oldest is not None else None,
    )


def session_recap(store: Path) -> SessionRecap:
    archive_dir = store / "context" / "archive"
    sessions = sorted(_files(archive_dir, "*"), key=lambda path: path.stat().st_mtime, reverse=True)

    last_session: str | None = None
    recap: list[str] = []
    if sessions:
        latest = sessions[0]
        last_session = latest.name
        for line in latest.read_text(errors="replace").splitlines():
            if line.startswith("# ") or line.startswith("Date: "):
                continue
            recap.append(line)
            if len(recap) == RECAP_LINES:
                break

    plans = tuple(sorted(path.name for path in _files(store / "plans", "*.md")))

    index = store / "docs" / INDEX_FILENAME
    if index.is_file():
        entries = [line[2:] for line in index.read_text().splitlines() if line.startswith("- ")]
    else:
        entries = sorted(path.name for path in (store / "docs").glob("*.md") if path.is_file())

    return SessionRecap(
        last_session=last_session,
        recap_lines=tuple(recap),
        plans=plans,
        documents=tuple(entries[:RECAP_DOCUMENTS]),
        document_total=len(entries),
    )


def _files(directory: Path, pattern: str) -> list[Path]:
    if not directory.is_dir():
        return []
    return [path for path in directory.rglob(pattern) if path.is_file()]


def _document_title(path: Path) -> str | None:
    with path.open(errors="replace") as handle:
        for line in handle:
            if line.startswith("# "):
                return line[2:].strip()
    return None
