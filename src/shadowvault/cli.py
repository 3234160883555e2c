"""Command-line interface for shadowvault."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Iterable

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import knowledge
from .config import ConfigError, Settings, default_config_path, load_config, render_config
from .errors import KnowledgeStoreNotFoundError, ShadowVaultError
from .health import build_report
from .models import ArtifactResult, HealthReport, HealthStatus, ReconcileAction
from .reconciler import Reconciler
from .resolver import is_inside, resolve_with, working_directory
from .vault import Vault

app = typer.Typer(help="Link per-project AI context files from a central vault")
ai_app = typer.Typer(help="Maintain the project's .ai knowledge store")
app.add_typer(ai_app, name="ai")

console = Console()
err_console = Console(stderr=True)

SEED_FILES = ("AGENTS.md", "GEMINI.md")


class Shell(str, Enum):
    ZSH = "zsh"
    BASH = "bash"


ZSH_HOOK = """\
# shadowvault shell integration (zsh)
_shadowvault_chpwd() {
  command shadowvault sync --quiet
}
autoload -Uz add-zsh-hook
add-zsh-hook chpwd _shadowvault_chpwd
_shadowvault_chpwd
alias vault-check='shadowvault check'
"""

BASH_HOOK = """\
# shadowvault shell integration (bash)
_shadowvault_prompt() {
  if [[ "$PWD" != "${_SHADOWVAULT_LAST_PWD:-}" ]]; then
    _SHADOWVAULT_LAST_PWD="$PWD"
    command shadowvault sync --quiet
  fi
}
PROMPT_COMMAND="_shadowvault_prompt${PROMPT_COMMAND:+;$PROMPT_COMMAND}"
alias vault-check='shadowvault check'
"""


def _configure_logging(level: int) -> None:
    package_logger = logging.getLogger("shadowvault")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.addHandler(RichHandler(console=err_console, show_time=False, show_path=False))
    package_logger.setLevel(level)


def _load_settings(config: Path | None) -> Settings:
    return load_config(config)


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print("[red]Permission denied.[/red] Check access to the vault and the project directory.")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(f"[red]{message}[/red]")
        if "does not exist" in message:
            console.print("[yellow]Use 'shadowvault config --config <path>' to create a configuration file.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, ShadowVaultError):
        console.print(f"[red]{exc}[/red]")
        if isinstance(exc, KnowledgeStoreNotFoundError):
            console.print("[yellow]Run 'shadowvault ai init' from the project root first.[/yellow]")
        raise typer.Exit(code=1)
    raise exc


def _format_sync_results(results: Iterable[ArtifactResult], root: Path) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Artifact")
    table.add_column("Target")
    table.add_column("Action")
    table.add_column("Details", overflow="fold")

    action_styles = {
        ReconcileAction.CREATED: "green",
        ReconcileAction.UPDATED: "green",
        ReconcileAction.RECLAIMED: "yellow",
        ReconcileAction.REMOVED: "yellow",
        ReconcileAction.SKIPPED: "yellow",
        ReconcileAction.FAILED: "red",
    }

    for result in results:
        style = action_styles.get(result.action, "white")
        table.add_row(
            result.artifact.id,
            result.target.relative_to(root).as_posix(),
            f"[{style}]{result.action.value}[/{style}]",
            result.details or "",
        )

    console.print(table)


def _format_health(report: HealthReport) -> None:
    status_labels = {
        HealthStatus.PRESENT: "[green]present[/green]",
        HealthStatus.MISSING: "[red]MISSING[/red]",
        HealthStatus.UNREADABLE: "[red]UNREADABLE[/red]",
    }

    for project in report.projects:
        table = Table(title=f"Project: {project.key}", show_header=True, header_style="bold magenta")
        table.add_column("Artifact")
        table.add_column("File")
        table.add_column("Status")
        table.add_column("Size", justify="right")
        for item in project.artifacts:
            table.add_row(
                item.artifact.id,
                item.artifact.vault_filename,
                status_labels[item.status],
                f"{item.size} B" if item.size is not None else "",
            )
        console.print(table)


def _print_health_records(report: HealthReport) -> None:
    for project in report.projects:
        for item in project.artifacts:
            record = {
                "project": project.key,
                "artifact": item.artifact.id,
                "file": item.artifact.vault_filename,
                "status": item.status.value,
                "size": item.size,
            }
            typer.echo(json.dumps(record))


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    _configure_logging(logging.DEBUG if debug else logging.WARNING)


@app.command()
def sync(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to the shadowvault config file"),
    directory: Path | None = typer.Option(
        None,
        "--directory",
        "-C",
        help="Reconcile this directory instead of the current one",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only report problems (for shell hooks)"),
) -> None:
    """Link the current project's context files from the vault."""

    try:
        settings = _load_settings(config)
        cwd = directory if directory is not None else working_directory()
        if is_inside(cwd, settings.vault_root):
            return

        identity = resolve_with(cwd, settings)
        reconciler = Reconciler(
            Vault(settings.vault_root),
            shared_config_filename=settings.shared_config_filename,
        )
        report = reconciler.reconcile(identity)
        if not quiet:
            console.print(f"[bold]Project:[/bold] {identity.key} ({identity.root})")
            _format_sync_results(report.results, identity.root)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def check(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to the shadowvault config file"),
    records: bool = typer.Option(False, "--records", help="Print one JSON record per artifact"),
) -> None:
    """Show which artifacts every vault project provides."""

    try:
        settings = _load_settings(config)
        report = build_report(
            Vault(settings.vault_root),
            shared_config_filename=settings.shared_config_filename,
        )
        if records:
            _print_health_records(report)
            return

        if not report.projects:
            console.print(f"[yellow]No vault projects found under '{report.vault_root}'.[/yellow]")
        _format_health(report)
        if report.fallback is not None:
            console.print(f"[green]Shared config:[/green] {report.fallback}")
        else:
            console.print(f"[yellow]Shared config '{settings.shared_config_filename}' not configured.[/yellow]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def init(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to the shadowvault config file"),
    link: bool = typer.Option(False, "--sync/--no-sync", help="Reconcile the project right after seeding"),
) -> None:
    """Create the vault entry for the current project."""

    try:
        settings = _load_settings(config)
        identity = resolve_with(working_directory(), settings)
        vault = Vault(settings.vault_root)
        seeds = {name: f"# {identity.key}\n" for name in SEED_FILES}
        written = vault.create_entry(identity.key, seeds)

        console.print(f"[green]Vault entry ready at '{vault.entry_path(identity.key)}'.[/green]")
        for path in written:
            console.print(f"  created {path.name}")

        if link:
            Reconciler(vault, shared_config_filename=settings.shared_config_filename).reconcile(identity)
            console.print("[green]Linked vault artifacts into the project.[/green]")
        else:
            console.print("Links are created on the next directory change or 'shadowvault sync'.")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command("config")
def write_config(
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to write the configuration file",
        dir_okay=False,
        writable=True,
    ),
    vault_root: Path | None = typer.Option(None, "--vault-root", help="Vault directory to record"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config if present"),
) -> None:
    """Create a starter shadowvault configuration file."""

    config_path = config or default_config_path()
    if config_path.exists() and not force:
        console.print(f"[red]Configuration '{config_path}' already exists. Use --force to overwrite.[/red]")
        raise typer.Exit(code=1)

    settings = Settings(vault_root=vault_root.expanduser()) if vault_root else Settings()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(render_config(settings))
    console.print(f"[green]Created '{config_path}'.[/green]")


@app.command()
def hook(shell: Shell = typer.Option(Shell.ZSH, "--shell", "-s", help="Shell to integrate with")) -> None:
    """Print the shell snippet that runs 'shadowvault sync' on every directory change."""

    typer.echo(ZSH_HOOK if shell is Shell.ZSH else BASH_HOOK, nl=False)


def _require_store() -> Path:
    store = knowledge.find_store(working_directory())
    if store is None:
        raise KnowledgeStoreNotFoundError("No .ai directory found in project tree.")
    return store


@ai_app.command("init")
def ai_init(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to the shadowvault config file"),
) -> None:
    """Create the .ai knowledge store at the project root."""

    try:
        settings = _load_settings(config)
        identity = resolve_with(working_directory(), settings)
        created = knowledge.init_store(identity.root)
        console.print(f"[bold]Project root:[/bold] {identity.root}")
        for directory in created:
            console.print(f"  created {directory.relative_to(identity.root).as_posix()}")
        console.print("[green]Knowledge store ready.[/green]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@ai_app.command("save")
def ai_save() -> None:
    """Archive the active session and rebuild the document index."""

    try:
        store = _require_store()
        archived = knowledge.archive_session(store)
        if archived is not None:
            console.print(f"Session archived: [green]{archived.relative_to(store).as_posix()}[/green]")
        else:
            console.print("No active session.md found to archive.")
        index = knowledge.rebuild_index(store)
        console.print(f"Index updated: [green]{index.relative_to(store).as_posix()}[/green]")
        _print_stats(store)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@ai_app.command("stats")
def ai_stats() -> None:
    """Show size, document counts and estimated token savings."""

    try:
        _print_stats(_require_store())
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@ai_app.command("resume")
def ai_resume() -> None:
    """Recap the last archived session, active plans and key documents."""

    try:
        recap = knowledge.session_recap(_require_store())
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)
        return

    if recap.last_session:
        console.print(f"[blue]Last session:[/blue] {recap.last_session}")
        for line in recap.recap_lines:
            console.print(f"  {line}", markup=False)
    else:
        console.print("No archived sessions found.")

    console.print("[blue]Active plans:[/blue]")
    if recap.plans:
        for plan in recap.plans:
            console.print(f"  {plan}", markup=False)
    else:
        console.print("  [yellow]No active plans found.[/yellow]")

    console.print("[blue]Available documents:[/blue]")
    for document in recap.documents:
        console.print(f"  {document}", markup=False)
    if recap.document_total > len(recap.documents):
        console.print(f"  ... ({recap.document_total} total)")


def _print_stats(store: Path) -> None:
    stats = knowledge.collect_stats(store)
    table = Table(show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Total size", f"{stats.total_bytes} B")
    table.add_row("Knowledge docs", str(stats.doc_count))
    table.add_row("Cached responses", str(stats.cache_count))
    table.add_row("Active plans", str(stats.plan_count))
    table.add_row("Est. token savings", str(stats.estimated_tokens))
    table.add_row("Cache age", f"{stats.oldest_cache:%Y-%m-%d}" if stats.oldest_cache else "empty")
    console.print(table)


def run() -> None:
    """Entry point used for console_script bindings."""

    app()
