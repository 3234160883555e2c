"""Shared models and enums for shadowvault."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath


@dataclass(frozen=True, slots=True)
class ArtifactSpec:
    """A context file the reconciler links from the vault into a project."""

    id: str
    vault_filename: str
    target_relative_path: PurePosixPath
    requires_parent_dir: bool = False
    conflicts_with_real_file: bool = False
    supports_fallback: bool = False
    description: str = ""

    @property
    def parent_dir(self) -> PurePosixPath | None:
        if not self.requires_parent_dir:
            return None
        return self.target_relative_path.parent


@dataclass(frozen=True, slots=True)
class ProjectIdentity:
    """The project root for a working directory and its vault key."""

    root: Path
    key: str

    def target_path(self, artifact: ArtifactSpec) -> Path:
        return self.root.joinpath(*artifact.target_relative_path.parts)


class LinkState(str, Enum):
    """What currently occupies an artifact's target path."""

    ABSENT = "absent"
    MANAGED_LINK = "managed_link"
    FOREIGN_FILE = "foreign_file"


class ReconcileAction(str, Enum):
    """Outcome of reconciling a single artifact."""

    UNCHANGED = "unchanged"
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"
    RECLAIMED = "reclaimed"
    SKIPPED = "skipped"
    FAILED = "failed"


_MUTATING_ACTIONS = frozenset(
    {ReconcileAction.CREATED, ReconcileAction.UPDATED, ReconcileAction.REMOVED, ReconcileAction.RECLAIMED}
)


@dataclass(frozen=True, slots=True)
class ArtifactResult:
    """Result emitted for each artifact during a reconciliation pass."""

    artifact: ArtifactSpec
    target: Path
    source: Path | None
    state: LinkState | None
    action: ReconcileAction
    details: str | None = None

    @property
    def changed(self) -> bool:
        return self.action in _MUTATING_ACTIONS


@dataclass(frozen=True, slots=True)
class ReconcileReport:
    """Collection of artifact results for one project."""

    identity: ProjectIdentity
    results: tuple[ArtifactResult, ...]

    @property
    def changed(self) -> bool:
        return any(result.changed for result in self.results)

    @property
    def failures(self) -> tuple[ArtifactResult, ...]:
        return tuple(result for result in self.results if result.action is ReconcileAction.FAILED)

    def result_for(self, artifact_id: str) -> ArtifactResult:
        for result in self.results:
            if result.artifact.id == artifact_id:
                return result
        raise KeyError(artifact_id)


class HealthStatus(str, Enum):
    """Presence of an artifact source inside a vault entry."""

    PRESENT = "present"
    MISSING = "missing"
    UNREADABLE = "unreadable"


@dataclass(frozen=True, slots=True)
class ArtifactHealth:
    artifact: ArtifactSpec
    status: HealthStatus
    size: int | None = None


@dataclass(frozen=True, slots=True)
class ProjectHealth:
    """Health of a single vault project entry."""

    key: str
    path: Path
    artifacts: tuple[ArtifactHealth, ...]

    @property
    def present_count(self) -> int:
        return sum(1 for item in self.artifacts if item.status is HealthStatus.PRESENT)


@dataclass(frozen=True, slots=True)
class HealthReport:
    """Read-only listing of every vault project entry."""

    vault_root: Path
    projects: tuple[ProjectHealth, ...]
    fallback: Path | None = None


@dataclass(frozen=True, slots=True)
class KnowledgeStats:
    """Usage numbers for a project's ``.ai`` knowledge store."""

    total_bytes: int
    doc_count: int
    cache_count: int
    plan_count: int
    estimated_tokens: int
    oldest_cache: datetime | None = None


@dataclass(frozen=True, slots=True)
class SessionRecap:
    """What ``shadowvault ai resume`` shows about previous work."""

    last_session: str | None
    recap_lines: tuple[str, ...]
    plans: tuple[str, ...]
    documents: tuple[str, ...]
    document_total: int
