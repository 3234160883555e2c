"""Reconciliation of vault artifacts into a project directory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .catalog import ARTIFACTS, validate_catalog
from .config import DEFAULT_SHARED_CONFIG
from .errors import LinkError, ProbeError, VaultReadError
from .filesystem import (
    ensure_directory,
    is_regular_file,
    probe_link_state,
    prune_empty_directory,
    remove_link,
    replace_with_symlink,
    symlink_points_to,
)
from .models import (
    ArtifactResult,
    ArtifactSpec,
    LinkState,
    ProjectIdentity,
    ReconcileAction,
    ReconcileReport,
)
from .vault import Vault

logger = logging.getLogger(__name__)


class Reconciler:
    """Converges a project's artifact links to what its vault entry provides.

    Every artifact is handled independently: a failure on one is logged and
    recorded in the report, and the remaining artifacts are still processed.
    """

    def __init__(
        self,
        vault: Vault,
        *,
        catalog: Sequence[ArtifactSpec] = ARTIFACTS,
        shared_config_filename: str = DEFAULT_SHARED_CONFIG,
    ) -> None:
        self.vault = vault
        self.catalog = validate_catalog(catalog)
        self.shared_config_filename = shared_config_filename

    def reconcile(self, identity: ProjectIdentity) -> ReconcileReport:
        results = [self._reconcile_artifact(identity, artifact) for artifact in self.catalog]
        report = ReconcileReport(identity=identity, results=tuple(results))
        if report.failures:
            logger.warning(
                "%d of %d artifacts for '%s' could not be reconciled",
                len(report.failures),
                len(results),
                identity.key,
            )
        return report

    # ------------------------------------------------------------------
    # Internal helpers

    def _reconcile_artifact(self, identity: ProjectIdentity, artifact: ArtifactSpec) -> ArtifactResult:
        target = identity.target_path(artifact)
        source, vault_note = self._desired_source(identity, artifact)

        try:
            state = probe_link_state(target)
        except ProbeError as exc:
            logger.warning("Skipping %s: %s", artifact.id, exc)
            return ArtifactResult(
                artifact=artifact,
                target=target,
                source=source,
                state=None,
                action=ReconcileAction.SKIPPED,
                details=str(exc),
            )

        try:
            action, details = self._converge(artifact, target, state, source)
        except (LinkError, OSError) as exc:
            logger.warning("Failed to reconcile %s: %s", artifact.id, exc)
            return ArtifactResult(
                artifact=artifact,
                target=target,
                source=source,
                state=state,
                action=ReconcileAction.FAILED,
                details=str(exc),
            )

        if action is not ReconcileAction.UNCHANGED:
            logger.info("%s %s (%s)", action.value.capitalize(), target, artifact.id)

        return ArtifactResult(
            artifact=artifact,
            target=target,
            source=source,
            state=state,
            action=action,
            details=details or vault_note,
        )

    def _desired_source(self, identity: ProjectIdentity, artifact: ArtifactSpec) -> tuple[Path | None, str | None]:
        try:
            source = self.vault.lookup_source(identity.key, artifact.vault_filename)
            if source is None and artifact.supports_fallback:
                source = self.vault.lookup_fallback(self.shared_config_filename)
        except VaultReadError as exc:
            logger.warning("Vault unreadable for %s, treating its source as absent: %s", artifact.id, exc)
            return None, "vault unreadable"
        return source, None

    def _converge(
        self,
        artifact: ArtifactSpec,
        target: Path,
        state: LinkState,
        source: Path | None,
    ) -> tuple[ReconcileAction, str | None]:
        if state is LinkState.FOREIGN_FILE:
            if not artifact.conflicts_with_real_file:
                return ReconcileAction.SKIPPED, "Existing file is not managed by shadowvault"
            if not is_regular_file(target):
                return ReconcileAction.SKIPPED, "Existing directory is left in place"
            if source is None:
                self._unlink(artifact, target)
                return ReconcileAction.REMOVED, "Removed conflicting file"
            self._link(artifact, target, source)
            return ReconcileAction.RECLAIMED, "Replaced conflicting file"

        if state is LinkState.MANAGED_LINK:
            if source is None:
                self._unlink(artifact, target)
                return ReconcileAction.REMOVED, None
            if symlink_points_to(target, source):
                return ReconcileAction.UNCHANGED, None
            self._link(artifact, target, source)
            return ReconcileAction.UPDATED, None

        if source is None:
            return ReconcileAction.UNCHANGED, None
        self._link(artifact, target, source)
        return ReconcileAction.CREATED, None

    def _link(self, artifact: ArtifactSpec, target: Path, source: Path) -> None:
        if artifact.requires_parent_dir and ensure_directory(target.parent):
            logger.debug("Created directory '%s'", target.parent)
        replace_with_symlink(target, source)

    def _unlink(self, artifact: ArtifactSpec, target: Path) -> None:
        remove_link(target)
        if artifact.requires_parent_dir and prune_empty_directory(target.parent):
            logger.debug("Removed empty directory '%s'", target.parent)
