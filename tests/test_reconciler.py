from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from shadowvault.catalog import ARTIFACTS
from shadowvault.errors import LinkError, ProbeError, VaultReadError
from shadowvault.models import LinkState, ProjectIdentity, ReconcileAction
from shadowvault.reconciler import Reconciler
from shadowvault.vault import Vault


def _snapshot(root: Path) -> dict[str, tuple[bool, str | None, int]]:
    state: dict[str, tuple[bool, str | None, int]] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if name != ".git"]
        for name in dirnames + filenames:
            path = Path(dirpath) / name
            rel = path.relative_to(root).as_posix()
            info = path.lstat()
            target = os.readlink(path) if path.is_symlink() else None
            state[rel] = (path.is_symlink(), target, info.st_ino)
    return state


def test_empty_entry_creates_nothing(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    report = Reconciler(vault).reconcile(project)

    assert [result.action for result in report.results] == [ReconcileAction.UNCHANGED] * len(ARTIFACTS)
    assert not report.changed
    assert _snapshot(project.root) == {}


def test_missing_entry_creates_nothing(vault: Vault, project: ProjectIdentity) -> None:
    report = Reconciler(vault).reconcile(project)

    assert not report.changed
    assert _snapshot(project.root) == {}


def test_single_source_creates_single_link(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    source = entry / "AGENTS.md"
    source.write_text("# rules\n")

    report = Reconciler(vault).reconcile(project)

    result = report.result_for("agent-rules")
    assert result.action is ReconcileAction.CREATED
    assert result.state is LinkState.ABSENT
    link = project.root / "AGENTS.md"
    assert link.is_symlink()
    assert Path(os.readlink(link)) == source
    assert link.read_text() == "# rules\n"
    assert list(_snapshot(project.root)) == ["AGENTS.md"]


def test_nested_target_creates_directory_then_converges(
    vault: Vault, project: ProjectIdentity, entry: Path
) -> None:
    source = entry / "copilot-instructions.md"
    source.write_text("be helpful\n")
    reconciler = Reconciler(vault)

    first = reconciler.reconcile(project)
    link = project.root / ".github" / "copilot-instructions.md"
    assert first.result_for("copilot").action is ReconcileAction.CREATED
    assert (project.root / ".github").is_dir()
    assert link.is_symlink() and link.resolve() == source.resolve()

    before = _snapshot(project.root)
    second = reconciler.reconcile(project)

    assert not second.changed
    assert _snapshot(project.root) == before


def test_cody_pair_shares_directory(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    (entry / "cody-context.json").write_text("{}\n")
    (entry / "cody-ignore").write_text("vendor/\n")

    Reconciler(vault).reconcile(project)

    assert (project.root / ".cody" / "context.json").is_symlink()
    assert (project.root / ".cody" / "ignore").is_symlink()


def test_conflicting_foreign_file_is_reclaimed(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    source = entry / "AGENTS.md"
    source.write_text("vault rules\n")
    foreign = project.root / "AGENTS.md"
    foreign.write_text("installed by another tool\n")

    result = Reconciler(vault).reconcile(project).result_for("agent-rules")

    assert result.state is LinkState.FOREIGN_FILE
    assert result.action is ReconcileAction.RECLAIMED
    assert foreign.is_symlink()
    assert foreign.read_text() == "vault rules\n"


def test_conflicting_foreign_file_removed_without_source(
    vault: Vault, project: ProjectIdentity, entry: Path
) -> None:
    foreign = project.root / ".mcp.json"
    foreign.write_text("{}\n")

    result = Reconciler(vault).reconcile(project).result_for("mcp-config")

    assert result.action is ReconcileAction.REMOVED
    assert not foreign.exists()


def test_non_conflicting_foreign_file_is_untouched(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    (entry / ".cursorrules").write_text("vault cursor rules\n")
    foreign = project.root / ".cursorrules"
    foreign.write_text("my own rules\n")
    before = foreign.stat()

    reconciler = Reconciler(vault)
    first = reconciler.reconcile(project).result_for("editor-cursor")
    second = reconciler.reconcile(project).result_for("editor-cursor")

    assert first.action is ReconcileAction.SKIPPED
    assert second.action is ReconcileAction.SKIPPED
    assert not foreign.is_symlink()
    assert foreign.read_text() == "my own rules\n"
    assert foreign.stat().st_mtime_ns == before.st_mtime_ns


def test_foreign_directory_is_never_removed(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    (entry / "CLAUDE.md").write_text("claude\n")
    occupied = project.root / "CLAUDE.md"
    occupied.mkdir()
    (occupied / "notes.txt").write_text("keep\n")

    result = Reconciler(vault).reconcile(project).result_for("claude-rules")

    assert result.action is ReconcileAction.SKIPPED
    assert (occupied / "notes.txt").read_text() == "keep\n"


def test_stale_link_is_retargeted(vault: Vault, project: ProjectIdentity, entry: Path, tmp_path: Path) -> None:
    source = entry / "GEMINI.md"
    source.write_text("context\n")
    link = project.root / "GEMINI.md"
    link.symlink_to(tmp_path / "gone.md")

    result = Reconciler(vault).reconcile(project).result_for("gemini-context")

    assert result.state is LinkState.MANAGED_LINK
    assert result.action is ReconcileAction.UPDATED
    assert link.resolve() == source.resolve()


def test_link_without_source_is_removed(vault: Vault, project: ProjectIdentity, entry: Path, tmp_path: Path) -> None:
    link = project.root / "GEMINI.md"
    link.symlink_to(tmp_path / "elsewhere.md")

    result = Reconciler(vault).reconcile(project).result_for("gemini-context")

    assert result.action is ReconcileAction.REMOVED
    assert not link.is_symlink()


def test_model_config_uses_shared_fallback(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    shared = vault.root / "laravel_nova_stack.json"
    shared.write_text("{}\n")
    reconciler = Reconciler(vault)

    reconciler.reconcile(project)
    link = project.root / ".opencode.json"
    assert link.resolve() == shared.resolve()

    own = entry / "opencode.json"
    own.write_text('{"model": "x"}\n')
    result = reconciler.reconcile(project).result_for("model-config")

    assert result.action is ReconcileAction.UPDATED
    assert link.resolve() == own.resolve()


def test_fallback_only_applies_to_model_config(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    (vault.root / "AGENTS.md").write_text("shared\n")
    reconciler = Reconciler(vault, shared_config_filename="AGENTS.md")

    report = reconciler.reconcile(project)

    assert report.result_for("agent-rules").action is ReconcileAction.UNCHANGED
    assert report.result_for("model-config").action is ReconcileAction.CREATED


def test_add_then_remove_round_trip(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    reconciler = Reconciler(vault)
    before = _snapshot(project.root)

    source = entry / "AGENTS.md"
    source.write_text("rules\n")
    assert reconciler.reconcile(project).result_for("agent-rules").action is ReconcileAction.CREATED

    source.unlink()
    assert reconciler.reconcile(project).result_for("agent-rules").action is ReconcileAction.REMOVED
    assert _snapshot(project.root) == before


def test_nested_round_trip_removes_created_directory(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    reconciler = Reconciler(vault)
    before = _snapshot(project.root)

    source = entry / "copilot-instructions.md"
    source.write_text("be helpful\n")
    assert reconciler.reconcile(project).result_for("copilot").action is ReconcileAction.CREATED

    source.unlink()
    assert reconciler.reconcile(project).result_for("copilot").action is ReconcileAction.REMOVED
    assert not (project.root / ".github").exists()
    assert _snapshot(project.root) == before


def test_removing_link_keeps_non_empty_parent(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    workflows = project.root / ".github" / "workflows"
    workflows.mkdir(parents=True)
    (entry / "cody-context.json").write_text("{}\n")
    (entry / "cody-ignore").write_text("vendor/\n")
    (entry / "copilot-instructions.md").write_text("be helpful\n")
    reconciler = Reconciler(vault)
    reconciler.reconcile(project)

    (entry / "cody-context.json").unlink()
    (entry / "copilot-instructions.md").unlink()
    report = reconciler.reconcile(project)

    assert report.result_for("copilot").action is ReconcileAction.REMOVED
    assert report.result_for("cody-context").action is ReconcileAction.REMOVED
    assert workflows.is_dir()
    assert (project.root / ".cody" / "ignore").is_symlink()


def test_self_referencing_link_is_replaced(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    source = entry / "GEMINI.md"
    source.write_text("context\n")
    (entry / "AGENTS.md").write_text("rules\n")
    link = project.root / "GEMINI.md"
    link.symlink_to("GEMINI.md")

    report = Reconciler(vault).reconcile(project)

    result = report.result_for("gemini-context")
    assert result.state is LinkState.MANAGED_LINK
    assert result.action is ReconcileAction.UPDATED
    assert link.resolve() == source.resolve()
    assert report.result_for("agent-rules").action is ReconcileAction.CREATED
    assert not report.failures


def test_unexpected_os_error_is_recorded_as_failure(
    vault: Vault,
    project: ProjectIdentity,
    entry: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    (entry / "AGENTS.md").write_text("rules\n")
    (entry / "GEMINI.md").write_text("context\n")
    (project.root / "GEMINI.md").symlink_to(entry / "stale.md")

    from shadowvault import reconciler as reconciler_module

    def broken(source: Path, target: Path) -> bool:
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(reconciler_module, "symlink_points_to", broken)

    with caplog.at_level(logging.WARNING, logger="shadowvault"):
        report = Reconciler(vault).reconcile(project)

    assert report.result_for("gemini-context").action is ReconcileAction.FAILED
    assert report.result_for("agent-rules").action is ReconcileAction.CREATED
    assert "gemini-context" in caplog.text


def test_link_failure_does_not_stop_other_artifacts(
    vault: Vault,
    project: ProjectIdentity,
    entry: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    (entry / "AGENTS.md").write_text("rules\n")
    (entry / "GEMINI.md").write_text("context\n")

    from shadowvault import reconciler as reconciler_module

    original = reconciler_module.replace_with_symlink

    def flaky(link: Path, target: Path) -> None:
        if link.name == "AGENTS.md":
            raise LinkError(link, "Permission denied")
        original(link, target)

    monkeypatch.setattr(reconciler_module, "replace_with_symlink", flaky)

    with caplog.at_level(logging.WARNING, logger="shadowvault"):
        report = Reconciler(vault).reconcile(project)

    assert report.result_for("agent-rules").action is ReconcileAction.FAILED
    assert report.result_for("gemini-context").action is ReconcileAction.CREATED
    assert not (project.root / "AGENTS.md").exists()
    assert len(report.failures) == 1
    assert "agent-rules" in caplog.text


def test_probe_error_skips_artifact(
    vault: Vault, project: ProjectIdentity, entry: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (entry / "AGENTS.md").write_text("rules\n")
    (entry / "GEMINI.md").write_text("context\n")

    from shadowvault import reconciler as reconciler_module

    original = reconciler_module.probe_link_state

    def failing_probe(path: Path) -> LinkState:
        if path.name == "AGENTS.md":
            raise ProbeError(path, "Input/output error")
        return original(path)

    monkeypatch.setattr(reconciler_module, "probe_link_state", failing_probe)

    report = Reconciler(vault).reconcile(project)

    skipped = report.result_for("agent-rules")
    assert skipped.action is ReconcileAction.SKIPPED
    assert skipped.state is None
    assert not (project.root / "AGENTS.md").exists()
    assert (project.root / "GEMINI.md").is_symlink()


def test_parent_path_occupied_by_file_is_skipped(vault: Vault, project: ProjectIdentity, entry: Path) -> None:
    (entry / "copilot-instructions.md").write_text("copilot\n")
    blocker = project.root / ".github"
    blocker.write_text("not a directory\n")

    result = Reconciler(vault).reconcile(project).result_for("copilot")

    assert result.action is ReconcileAction.SKIPPED
    assert blocker.read_text() == "not a directory\n"


def test_unreadable_vault_is_treated_as_absent(
    vault: Vault,
    project: ProjectIdentity,
    entry: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    source = entry / "AGENTS.md"
    source.write_text("rules\n")
    reconciler = Reconciler(vault)
    reconciler.reconcile(project)
    assert (project.root / "AGENTS.md").is_symlink()

    def unreadable(key: str, vault_filename: str) -> Path | None:
        raise VaultReadError(vault.entry_path(key) / vault_filename, "Permission denied")

    monkeypatch.setattr(vault, "lookup_source", unreadable)

    with caplog.at_level(logging.WARNING, logger="shadowvault"):
        result = reconciler.reconcile(project).result_for("agent-rules")

    assert result.action is ReconcileAction.REMOVED
    assert result.details == "vault unreadable"
    assert not (project.root / "AGENTS.md").is_symlink()
    assert "Vault unreadable" in caplog.text
