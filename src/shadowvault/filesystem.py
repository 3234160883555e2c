"""Filesystem helpers for shadowvault."""

from __future__ import annotations

import os
import stat
import uuid
from pathlib import Path

from .errors import LinkError, ProbeError
from .models import LinkState

_TEMP_ATTEMPTS = 8


def probe_link_state(path: Path) -> LinkState:
    """Classify whatever occupies ``path`` without following symlinks."""

    try:
        mode = path.lstat().st_mode
    except FileNotFoundError:
        return LinkState.ABSENT
    except OSError as exc:
        raise ProbeError(path, exc.strerror or str(exc)) from exc

    if stat.S_ISLNK(mode):
        return LinkState.MANAGED_LINK
    return LinkState.FOREIGN_FILE


def is_regular_file(path: Path) -> bool:
    """Return ``True`` if ``path`` itself (not a link target) is a regular file."""

    try:
        return stat.S_ISREG(path.lstat().st_mode)
    except OSError:
        return False


def symlink_points_to(source: Path, target: Path) -> bool:
    """Return ``True`` if ``source`` symlink resolves to ``target``."""

    if not source.is_symlink():
        return False
    try:
        current = Path(os.readlink(source))
        if current == target:
            return True
        current_resolved = (source.parent / current).resolve(strict=False)
        target_resolved = target.resolve(strict=False)
    except (OSError, RuntimeError):
        # Symlink loops raise RuntimeError before Python 3.13.
        return False
    return current_resolved == target_resolved


def ensure_directory(path: Path) -> bool:
    """Create ``path`` (one level only). Returns ``True`` if it was created."""

    if path.is_dir():
        return False
    try:
        path.mkdir()
    except FileExistsError as exc:
        if path.is_dir():
            return False
        raise LinkError(path, "a non-directory already occupies this path") from exc
    except OSError as exc:
        raise LinkError(path, exc.strerror or str(exc)) from exc
    return True


def replace_with_symlink(link: Path, target: Path) -> None:
    """Atomically point ``link`` at ``target``.

    The symlink is created under a temporary sibling name and renamed over
    ``link``, so observers see either the previous entry or the finished link.
    ``link`` must not be a directory.
    """

    temp_path = _create_temp_symlink(link, target)
    try:
        os.replace(temp_path, link)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise LinkError(link, exc.strerror or str(exc)) from exc


def remove_link(path: Path) -> None:
    """Delete the symlink or regular file at ``path``; missing paths are ignored."""

    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        raise LinkError(path, exc.strerror or str(exc)) from exc


def prune_empty_directory(path: Path) -> bool:
    """Remove ``path`` if it is an empty directory. Returns ``True`` if removed."""

    try:
        path.rmdir()
    except OSError:
        return False
    return True


def file_size(path: Path) -> int:
    return path.stat().st_size


def _create_temp_symlink(link: Path, target: Path) -> Path:
    for _ in range(_TEMP_ATTEMPTS):
        temp_path = link.parent / f".{link.name}.shadowvault-tmp-{uuid.uuid4().hex[:12]}"
        try:
            temp_path.symlink_to(target)
        except FileExistsError:
            continue
        except OSError as exc:
            raise LinkError(link, exc.strerror or str(exc)) from exc
        return temp_path
    raise LinkError(link, "could not allocate a temporary link name")
