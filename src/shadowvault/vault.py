"""Read access to the central vault directory."""

from __future__ import annotations

import errno
import logging
import os
import stat
from pathlib import Path
from typing import Mapping

from .errors import VaultReadError

logger = logging.getLogger(__name__)

_MISSING_ERRNOS = frozenset({errno.ENOENT, errno.ENOTDIR, errno.ELOOP})


class Vault:
    """The per-user vault holding one entry directory per project key."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def entry_path(self, key: str) -> Path:
        return self.root / key

    def lookup_source(self, key: str, vault_filename: str) -> Path | None:
        """Return the project's source for ``vault_filename`` or ``None``."""

        return self._lookup(self.entry_path(key) / vault_filename)

    def lookup_fallback(self, vault_filename: str) -> Path | None:
        """Return the shared file at the vault root or ``None``."""

        return self._lookup(self.root / vault_filename)

    def projects(self) -> list[str]:
        """Return the keys of every project entry, sorted by name."""

        try:
            children = list(self.root.iterdir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise VaultReadError(self.root, exc.strerror or str(exc)) from exc

        return sorted(child.name for child in children if child.is_dir() and not child.name.startswith("."))

    def create_entry(self, key: str, seed_files: Mapping[str, str] | None = None) -> list[Path]:
        """Create the entry for ``key`` and write any missing seed files.

        Existing files are never overwritten. Returns the files written.
        """

        entry = self.entry_path(key)
        entry.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        for name, content in (seed_files or {}).items():
            path = entry / name
            if path.exists() or path.is_symlink():
                continue
            path.write_text(content)
            written.append(path)
        return written

    def _lookup(self, path: Path) -> Path | None:
        try:
            mode = os.stat(path).st_mode
        except OSError as exc:
            if exc.errno in _MISSING_ERRNOS:
                return None
            raise VaultReadError(path, exc.strerror or str(exc)) from exc

        if not stat.S_ISREG(mode):
            logger.debug("Ignoring non-file vault entry '%s'", path)
            return None
        if not os.access(path, os.R_OK):
            raise VaultReadError(path, "permission denied")
        return path
