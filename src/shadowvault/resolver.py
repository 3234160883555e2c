"""Project root detection and vault key derivation."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from .config import DEFAULT_MANIFEST_FILES, DEFAULT_ROOT_MARKERS, Settings
from .errors import ResolutionError
from .models import ProjectIdentity

logger = logging.getLogger(__name__)


def resolve(
    cwd: Path | str,
    *,
    root_markers: Iterable[str] = DEFAULT_ROOT_MARKERS,
    manifest_files: Iterable[str] = DEFAULT_MANIFEST_FILES,
) -> ProjectIdentity:
    """Return the ``ProjectIdentity`` for ``cwd``.

    The nearest ancestor (``cwd`` included, the filesystem root excluded)
    holding a root marker or a dependency manifest becomes the project root.
    Without one, ``cwd`` itself is the root. The key is the root's name.
    """

    try:
        real_cwd = Path(cwd).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise ResolutionError(f"Cannot resolve working directory '{cwd}': {exc}") from exc
    if not real_cwd.is_dir():
        raise ResolutionError(f"Working directory '{real_cwd}' is not a directory")

    names = tuple(root_markers) + tuple(manifest_files)
    root = _find_root(real_cwd, names) or real_cwd
    key = root.name
    if not key:
        raise ResolutionError(f"Cannot derive a project key from '{root}'")

    logger.debug("Resolved '%s' to project '%s' at '%s'", real_cwd, key, root)
    return ProjectIdentity(root=root, key=key)


def resolve_with(cwd: Path, settings: Settings) -> ProjectIdentity:
    return resolve(cwd, root_markers=settings.root_markers, manifest_files=settings.manifest_files)


def working_directory() -> Path:
    """Return the process working directory, read once per invocation."""

    try:
        return Path(os.getcwd())
    except OSError as exc:
        raise ResolutionError(f"Working directory is unreadable: {exc}") from exc


def is_inside(path: Path, parent: Path) -> bool:
    """Return ``True`` if ``path`` equals or lies beneath ``parent`` once resolved."""

    return path.resolve(strict=False).is_relative_to(parent.resolve(strict=False))


def _find_root(start: Path, names: tuple[str, ...]) -> Path | None:
    for directory in (start, *start.parents):
        if directory == directory.parent:
            break
        if any(os.path.lexists(directory / name) for name in names):
            return directory
    return None
