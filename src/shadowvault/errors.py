"""Exception hierarchy for shadowvault."""

from __future__ import annotations

from pathlib import Path


class ShadowVaultError(RuntimeError):
    """Raised when shadowvault encounters an unrecoverable state."""


class ResolutionError(ShadowVaultError):
    """No usable project identity could be derived from the working directory."""


class KnowledgeStoreNotFoundError(ShadowVaultError):
    """No ``.ai`` knowledge store exists in the project tree."""


class ProbeError(ShadowVaultError):
    """A target path could not be inspected."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Unable to inspect '{path}': {reason}")
        self.path = path


class LinkError(ShadowVaultError):
    """Creating, replacing, or removing a link failed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Unable to update '{path}': {reason}")
        self.path = path


class VaultReadError(ShadowVaultError):
    """A vault entry or file exists but cannot be read."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Vault path '{path}' is unreadable: {reason}")
        self.path = path
