"""Static table of the artifacts shadowvault links into projects."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Iterable

from .models import ArtifactSpec


class CatalogError(ValueError):
    """Raised when an artifact table violates its invariants."""


class UnknownArtifactError(KeyError):
    """Raised when looking up an artifact id that is not in the catalog."""


def _artifact(
    id: str,
    vault_filename: str,
    target: str,
    *,
    conflicts: bool = False,
    fallback: bool = False,
    description: str = "",
) -> ArtifactSpec:
    target_path = PurePosixPath(target)
    return ArtifactSpec(
        id=id,
        vault_filename=vault_filename,
        target_relative_path=target_path,
        requires_parent_dir=len(target_path.parts) > 1,
        conflicts_with_real_file=conflicts,
        supports_fallback=fallback,
        description=description,
    )


# Laravel Boost installs real copies of AGENTS.md, CLAUDE.md, .mcp.json and
# boost.json; those are the only targets flagged as conflicting.
ARTIFACTS: tuple[ArtifactSpec, ...] = (
    _artifact("agent-rules", "AGENTS.md", "AGENTS.md", conflicts=True, description="Coding agent guidelines"),
    _artifact("gemini-context", "GEMINI.md", "GEMINI.md", description="Gemini project context"),
    _artifact("claude-rules", "CLAUDE.md", "CLAUDE.md", conflicts=True, description="Claude project rules"),
    _artifact("editor-cursor", ".cursorrules", ".cursorrules", description="Cursor editor rules"),
    _artifact("editor-windsurf", ".windsurfrules", ".windsurfrules", description="Windsurf editor rules"),
    _artifact(
        "copilot",
        "copilot-instructions.md",
        ".github/copilot-instructions.md",
        description="GitHub Copilot instructions",
    ),
    _artifact("cody-context", "cody-context.json", ".cody/context.json", description="Cody context sources"),
    _artifact("cody-ignore", "cody-ignore", ".cody/ignore", description="Cody ignore patterns"),
    _artifact("mcp-config", "mcp.json", ".mcp.json", conflicts=True, description="MCP server configuration"),
    _artifact("boost-config", "boost.json", "boost.json", conflicts=True, description="Laravel Boost configuration"),
    _artifact("model-config", "opencode.json", ".opencode.json", fallback=True, description="OpenCode model config"),
)


def validate_catalog(artifacts: Iterable[ArtifactSpec]) -> tuple[ArtifactSpec, ...]:
    """Check id and target uniqueness and that every target stays inside the project."""

    seen_ids: set[str] = set()
    seen_targets: set[PurePosixPath] = set()
    validated: list[ArtifactSpec] = []

    for artifact in artifacts:
        target = artifact.target_relative_path
        if artifact.id in seen_ids:
            raise CatalogError(f"Duplicate artifact id '{artifact.id}'")
        if target in seen_targets:
            raise CatalogError(f"Artifact '{artifact.id}' reuses target '{target}'")
        if target.is_absolute() or ".." in target.parts:
            raise CatalogError(f"Artifact '{artifact.id}' target '{target}' must stay inside the project root")
        if len(target.parts) > 2:
            raise CatalogError(f"Artifact '{artifact.id}' target '{target}' nests deeper than one directory")
        if artifact.requires_parent_dir and len(target.parts) != 2:
            raise CatalogError(f"Artifact '{artifact.id}' requires a parent directory but targets the root")
        if "/" in artifact.vault_filename:
            raise CatalogError(f"Artifact '{artifact.id}' vault filename must be a plain name")

        seen_ids.add(artifact.id)
        seen_targets.add(target)
        validated.append(artifact)

    return tuple(validated)


def get_artifact(artifact_id: str, artifacts: Iterable[ArtifactSpec] = ARTIFACTS) -> ArtifactSpec:
    for artifact in artifacts:
        if artifact.id == artifact_id:
            return artifact
    raise UnknownArtifactError(artifact_id)


validate_catalog(ARTIFACTS)
