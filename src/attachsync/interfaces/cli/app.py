"""CLI application for attachsync using Rich and Typer."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from attachsync.core.config import default_vault_path, setup_logging
from attachsync.core.errors import AttachSyncError
from attachsync.core.factory import build_service
from attachsync.core.service import AttachmentService
from attachsync.core.settings import DEFAULT_NAME_PATTERN, DEFAULT_PATH_PATTERN, Rule
from attachsync.core.types import LocationMode, ScopeMode
from attachsync.vault.watcher import VaultWatcher

app = typer.Typer(
    name="attachsync",
    help="attachsync - rename note attachments after their notes",
    no_args_is_help=True,
)
settings_app = typer.Typer(help="View and change vault settings", no_args_is_help=True)
rules_app = typer.Typer(help="Manage per-extension rules", no_args_is_help=True)
app.add_typer(settings_app, name="settings")
app.add_typer(rules_app, name="rules")

console = Console()

VaultOption = typer.Option(
    None,
    "--vault",
    "-v",
    help="Path to vault directory (default: $ATTACHSYNC_VAULT or current directory)",
)
DebugOption = typer.Option(False, "--debug", "-d", help="Enable debug logging")


def notify(message: str) -> None:
    """Print a short notification."""
    console.print(f"[cyan]{message}[/cyan]")


def _load_service(vault: Optional[str], debug: bool = False) -> AttachmentService:
    """Configure logging and build the service, exiting on setup errors."""
    setup_logging(debug=debug)
    vault_path = Path(vault).expanduser() if vault else default_vault_path()
    try:
        return build_service(vault_path, notify=notify)
    except AttachSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _update_settings(service: AttachmentService, **changes) -> None:
    try:
        service.store.update(**changes)
    except AttachSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def print_settings(service: AttachmentService) -> None:
    """Print general settings and the rule table."""
    settings = service.store.settings

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Settings file", str(service.store.path))
    table.add_row("Auto-rename", "enabled" if settings.enable_auto_rename else "disabled")
    table.add_row("Debounce", f"{settings.debounce_delay_ms} ms")
    table.add_row("Scope", settings.scope_mode.value)
    if settings.scope_mode is not ScopeMode.VAULT:
        label = "Watched folders" if settings.scope_mode is ScopeMode.INCLUDE else "Ignored folders"
        table.add_row(label, "\n".join(settings.watched_paths) or "[dim](none)[/dim]")
    table.add_row("Default name", settings.default_name_pattern)
    table.add_row("Default path", settings.default_path_pattern)
    console.print(table)
    print_rules(service)


def print_rules(service: AttachmentService) -> None:
    rules = service.store.settings.rules
    if not rules:
        console.print("[dim]No rules: default patterns apply to every attachment.[/dim]")
        return

    table = Table(title="Extension Rules", show_header=True)
    table.add_column("#", style="dim")
    table.add_column("ID")
    table.add_column("Label", style="green")
    table.add_column("Extensions")
    table.add_column("Name Pattern")
    table.add_column("Location")

    for i, rule in enumerate(rules, 1):
        location = (
            "[dim]original folder[/dim]"
            if rule.location_mode is LocationMode.ORIGINAL
            else rule.path_pattern
        )
        table.add_row(
            str(i),
            rule.id,
            rule.label,
            ", ".join(rule.extensions),
            rule.name_pattern,
            location,
        )
    console.print(table)


@app.command()
def process(
    note: str = typer.Argument(..., help="Note path relative to the vault"),
    vault: Optional[str] = VaultOption,
    debug: bool = DebugOption,
):
    """Rename attachments for one note now."""
    service = _load_service(vault, debug)
    renamed = asyncio.run(service.process_active_note(note))
    console.print(f"[green]Renamed {renamed} attachment(s)[/green]")


@app.command("process-all")
def process_all(
    vault: Optional[str] = VaultOption,
    debug: bool = DebugOption,
):
    """Rename attachments for all notes in scope."""
    service = _load_service(vault, debug)
    asyncio.run(service.process_all())


@app.command()
def rename(
    note: str = typer.Argument(..., help="Current note path"),
    new_path: str = typer.Argument(..., help="New note path"),
    vault: Optional[str] = VaultOption,
    debug: bool = DebugOption,
):
    """Rename a note and reconcile its attachments."""
    service = _load_service(vault, debug)
    try:
        renamed = asyncio.run(service.rename_note(note, new_path))
    except AttachSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Renamed {renamed} attachment(s)[/green]")


async def watch_vault(service: AttachmentService) -> None:
    """Run the watcher until cancelled."""
    loop = asyncio.get_running_loop()
    watcher = VaultWatcher(service.host, loop)
    service.start([watcher, service.host])
    watcher.start()
    try:
        while True:
            await asyncio.sleep(1)
            if not watcher.is_running:
                logging.getLogger(__name__).error("Observer thread died unexpectedly")
                break
    finally:
        watcher.stop()
        await service.shutdown()


@app.command()
def watch(
    vault: Optional[str] = VaultOption,
    debug: bool = DebugOption,
):
    """Watch the vault and rename attachments when notes are renamed."""
    service = _load_service(vault, debug)
    settings = service.store.settings
    console.print(
        Panel.fit(
            f"[bold blue]attachsync[/bold blue]\n"
            f"[dim]Vault: {service.host.root}[/dim]\n"
            f"Auto-rename: {'on' if settings.enable_auto_rename else 'off'}, "
            f"debounce {settings.debounce_delay_ms} ms\n"
            "Press Ctrl+C to stop.",
            title="Watching",
            border_style="blue",
        )
    )
    try:
        asyncio.run(watch_vault(service))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


# --- settings ---


@settings_app.command("show")
def settings_show(vault: Optional[str] = VaultOption):
    """Show current settings."""
    print_settings(_load_service(vault))


@settings_app.command("init")
def settings_init(
    vault: Optional[str] = VaultOption,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write the default settings file."""
    service = _load_service(vault)
    if service.store.exists and not force:
        console.print(f"[yellow]Settings already exist: {service.store.path}[/yellow]")
        raise typer.Exit(1)
    service.store.save()
    console.print(f"[green]Wrote {service.store.path}[/green]")


@settings_app.command("scope")
def settings_scope(
    mode: ScopeMode = typer.Argument(..., help="vault, include or exclude"),
    folders: Optional[list[str]] = typer.Argument(None, help="Watched or ignored folders"),
    vault: Optional[str] = VaultOption,
):
    """Set the scope mode and, optionally, its folders."""
    service = _load_service(vault)
    changes: dict = {"scope_mode": mode}
    if folders:
        changes["watched_paths"] = folders
    _update_settings(service, **changes)
    console.print(f"[green]Scope set to: {mode.value}[/green]")


@settings_app.command("auto")
def settings_auto(
    state: str = typer.Argument(..., help="on or off"),
    vault: Optional[str] = VaultOption,
):
    """Enable or disable renaming when notes are renamed."""
    if state.lower() in ("on", "true", "1"):
        enabled = True
    elif state.lower() in ("off", "false", "0"):
        enabled = False
    else:
        console.print("[red]Usage: settings auto on|off[/red]")
        raise typer.Exit(1)
    service = _load_service(vault)
    _update_settings(service, enable_auto_rename=enabled)
    console.print(f"[green]Auto-rename {'enabled' if enabled else 'disabled'}[/green]")


@settings_app.command("debounce")
def settings_debounce(
    delay_ms: int = typer.Argument(..., min=0, help="Delay in milliseconds"),
    vault: Optional[str] = VaultOption,
):
    """Set the debounce delay for rename events."""
    service = _load_service(vault)
    _update_settings(service, debounce_delay_ms=delay_ms)
    console.print(f"[green]Debounce set to {delay_ms} ms[/green]")


@settings_app.command("defaults")
def settings_defaults(
    name: Optional[str] = typer.Option(None, "--name", help="Default name pattern"),
    path: Optional[str] = typer.Option(None, "--path", help="Default path pattern"),
    vault: Optional[str] = VaultOption,
):
    """Set the patterns used when no rules are defined."""
    changes = {}
    if name is not None:
        changes["default_name_pattern"] = name
    if path is not None:
        changes["default_path_pattern"] = path
    if not changes:
        console.print("[red]Nothing to change: pass --name and/or --path[/red]")
        raise typer.Exit(1)
    service = _load_service(vault)
    _update_settings(service, **changes)
    console.print("[green]Default patterns updated[/green]")


# --- rules ---


@rules_app.command("list")
def rules_list(vault: Optional[str] = VaultOption):
    """List extension rules in match order."""
    print_rules(_load_service(vault))


@rules_app.command("add")
def rules_add(
    label: str = typer.Argument(..., help="Rule label"),
    extensions: list[str] = typer.Option(
        ..., "--ext", "-e", help="File extension (repeatable)"
    ),
    name_pattern: str = typer.Option(DEFAULT_NAME_PATTERN, "--name", help="Name pattern"),
    path_pattern: str = typer.Option(DEFAULT_PATH_PATTERN, "--path", help="Path pattern"),
    location: LocationMode = typer.Option(
        LocationMode.PATTERN, "--location", help="pattern (move) or original (stay)"
    ),
    vault: Optional[str] = VaultOption,
):
    """Append a rule (first matching rule wins)."""
    service = _load_service(vault)
    rule = Rule(
        label=label,
        extensions=extensions,
        name_pattern=name_pattern,
        path_pattern=path_pattern,
        location_mode=location,
    )
    try:
        service.store.add_rule(rule)
    except AttachSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Added rule {rule.id} ({label})[/green]")


@rules_app.command("remove")
def rules_remove(
    rule: str = typer.Argument(..., help="Rule id or 1-based position"),
    vault: Optional[str] = VaultOption,
):
    """Remove a rule."""
    service = _load_service(vault)
    rules = service.store.settings.rules
    rule_id = rule
    known = service.store.settings.rule_by_id(rule) is not None
    if not known and rule.isdigit() and 1 <= int(rule) <= len(rules):
        rule_id = rules[int(rule) - 1].id
    try:
        service.store.remove_rule(rule_id)
    except AttachSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Removed rule {rule_id}[/green]")


def run_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run_cli()
