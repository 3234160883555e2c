"""Read-only health report over every vault project entry."""

from __future__ import annotations

from typing import Sequence

from .catalog import ARTIFACTS
from .config import DEFAULT_SHARED_CONFIG
from .errors import VaultReadError
from .filesystem import file_size
from .models import ArtifactHealth, ArtifactSpec, HealthReport, HealthStatus, ProjectHealth
from .vault import Vault


def build_report(
    vault: Vault,
    *,
    catalog: Sequence[ArtifactSpec] = ARTIFACTS,
    shared_config_filename: str = DEFAULT_SHARED_CONFIG,
) -> HealthReport:
    projects = tuple(_project_health(vault, key, catalog) for key in vault.projects())

    try:
        fallback = vault.lookup_fallback(shared_config_filename)
    except VaultReadError:
        fallback = None

    return HealthReport(vault_root=vault.root, projects=projects, fallback=fallback)


def _project_health(vault: Vault, key: str, catalog: Sequence[ArtifactSpec]) -> ProjectHealth:
    artifacts: list[ArtifactHealth] = []
    for artifact in catalog:
        try:
            source = vault.lookup_source(key, artifact.vault_filename)
        except VaultReadError:
            artifacts.append(ArtifactHealth(artifact=artifact, status=HealthStatus.UNREADABLE))
            continue

        if source is None:
            artifacts.append(ArtifactHealth(artifact=artifact, status=HealthStatus.MISSING))
            continue

        try:
            size = file_size(source)
        except OSError:
            artifacts.append(ArtifactHealth(artifact=artifact, status=HealthStatus.UNREADABLE))
            continue
        artifacts.append(ArtifactHealth(artifact=artifact, status=HealthStatus.PRESENT, size=size))

    return ProjectHealth(key=key, path=vault.entry_path(key), artifacts=tuple(artifacts))
