"""
envedit CLI - inspect and edit .env files safely

Main entry point for the envedit command-line tool. Every write goes through
the backup-then-atomic-replace path in ``envedit.core.storage``.
"""

import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import Settings, load_settings
from .core.model import is_valid_key
from .core.session import EditSession
from .core.storage import StorageError, delete_backup, list_backups, read_file, restore_backup
from .core.validation import ValidationLevel, has_errors


console = Console()

LEVEL_STYLES = {
    ValidationLevel.ERROR: "red",
    ValidationLevel.WARNING: "yellow",
    ValidationLevel.INFO: "blue",
}


def configure_logging(debug: bool):
    """Send envedit's log records to the console through rich."""
    if not debug:
        return
    package_logger = logging.getLogger("envedit")
    package_logger.setLevel(logging.DEBUG)
    if any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        return
    package_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


def _fail(message: str, hint: str = ""):
    console.print(f"[red]Error: {message}[/red]")
    if hint:
        console.print(f"[dim]{hint}[/dim]")
    sys.exit(1)


def _display(value: str) -> str:
    return value.replace("\n", "\\n").replace("\t", "\\t")


def _open_session(ctx: click.Context, path: str) -> EditSession:
    settings: Settings = ctx.obj
    try:
        return EditSession.open(path, history_size=settings.history_size)
    except StorageError as exc:
        _fail(str(exc))


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, verbose):
    """
    envedit - Safe editing for .env files
    """
    settings = load_settings()
    configure_logging(verbose or settings.debug)
    ctx.obj = settings


@cli.command()
@click.argument('path', type=click.Path())
@click.option('--filter', 'query', default="", help='Fuzzy filter on key or value')
@click.pass_context
def show(ctx, path, query):
    """
    Show the variables in a .env file.
    """
    session = _open_session(ctx, path)
    entries = session.document.filter(query)

    if not entries:
        console.print("[yellow]No variables found[/yellow]")
        return

    table = Table(title=path, box=box.ROUNDED)
    table.add_column("Line", style="dim", justify="right")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_column("Category", style="magenta")
    table.add_column("Secret", style="yellow")
    table.add_column("Export", style="blue")

    for entry in entries:
        table.add_row(
            str(entry.line),
            entry.key,
            _display(entry.value),
            entry.category,
            "✓" if entry.is_secret else "",
            "✓" if entry.exported else "",
        )

    console.print(table)


@cli.command()
@click.argument('path', type=click.Path())
@click.argument('key')
@click.pass_context
def get(ctx, path, key):
    """
    Print the value of KEY.
    """
    session = _open_session(ctx, path)
    entry = session.document.get(key)
    if entry is None:
        _fail(f"Key '{key}' not found in {path}")
    click.echo(entry.value)


@cli.command(name="set")
@click.argument('path', type=click.Path())
@click.argument('key')
@click.argument('value')
@click.option('--export', 'exported', is_flag=True, help='Prefix a new key with export (existing keys keep their form)')
@click.pass_context
def set_value(ctx, path, key, value, exported):
    """
    Set KEY to VALUE, adding the key if it does not exist.

    The previous file is kept as a timestamped backup.
    """
    if not is_valid_key(key):
        _fail(f"Invalid key '{key}'", "Keys must match [A-Za-z_][A-Za-z0-9_]*")

    session = _open_session(ctx, path)
    try:
        if session.update(key, value):
            console.print(f"[green]✓ Updated '{key}'[/green]")
            if exported:
                console.print("[dim]Note: --export ignored, key already exists[/dim]")
        else:
            session.add(key, value, exported=exported)
            console.print(f"[green]✓ Added '{key}'[/green]")
    except StorageError as exc:
        _fail(str(exc), "The file on disk was not changed.")


@cli.command()
@click.argument('path', type=click.Path())
@click.argument('key')
@click.pass_context
def unset(ctx, path, key):
    """
    Remove KEY (the first occurrence if it is duplicated).
    """
    session = _open_session(ctx, path)
    try:
        removed = session.delete(key)
    except StorageError as exc:
        _fail(str(exc), "The file on disk was not changed.")

    if not removed:
        console.print(f"[yellow]Key '{key}' not found[/yellow]")
        return
    console.print(f"[green]✓ Removed '{key}'[/green]")


@cli.command()
@click.argument('path', type=click.Path())
@click.pass_context
def validate(ctx, path):
    """
    Check a .env file for duplicate keys and suspicious values.

    Exits with status 1 if any errors are found.
    """
    session = _open_session(ctx, path)
    issues = session.validate()

    if not issues:
        console.print("[green]✓ No issues found[/green]")
        return

    table = Table(title="Validation Issues", box=box.ROUNDED)
    table.add_column("Line", style="dim", justify="right")
    table.add_column("Level")
    table.add_column("Message")

    for issue in issues:
        style = LEVEL_STYLES[issue.level]
        table.add_row(str(issue.line), f"[{style}]{issue.level.value}[/{style}]", issue.message)

    console.print(table)

    if has_errors(issues):
        sys.exit(1)


@cli.command()
@click.argument('path', type=click.Path())
@click.argument('other', type=click.Path())
@click.pass_context
def compare(ctx, path, other):
    """
    Compare the keys and values of two .env files.
    """
    session = _open_session(ctx, path)
    try:
        other_file = read_file(other)
    except StorageError as exc:
        _fail(str(exc))

    result = session.document.compare(other_file)

    if not result.has_differences:
        console.print(f"[green]✓ {path} and {other} have the same {result.matching_keys} keys[/green]")
        return

    table = Table(title=f"{path} vs {other}", box=box.ROUNDED)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column(Path(path).name, style="green")
    table.add_column(Path(other).name, style="blue")

    for diff in result.differences:
        if diff.only_in_current:
            status = "[green]+ only here[/green]"
        elif diff.only_in_other:
            status = "[red]- missing[/red]"
        elif diff.different:
            status = "[yellow]~ different[/yellow]"
        else:
            continue
        table.add_row(diff.key, status, _display(diff.current_value), _display(diff.other_value))

    console.print(table)
    console.print(
        f"[dim]{result.matching_keys} matching, {result.different_values} different, "
        f"{result.only_in_current} only in {path}, {result.only_in_other} only in {other}[/dim]"
    )


@cli.command()
@click.argument('path', type=click.Path())
def backups(path):
    """
    List backups of a .env file, newest first.
    """
    found = list_backups(path)
    if not found:
        console.print(f"[yellow]No backups found for {path}[/yellow]")
        return

    table = Table(title=f"Backups of {path}", box=box.ROUNDED)
    table.add_column("Timestamp", style="cyan", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Path", style="dim")

    for backup in found:
        table.add_row(backup.timestamp.strftime("%Y-%m-%d %H:%M:%S"), f"{backup.size} B", str(backup.path))

    console.print(table)


@cli.command()
@click.argument('backup', type=click.Path())
@click.argument('path', type=click.Path())
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
def restore(backup, path, yes):
    """
    Restore BACKUP over PATH.

    The current file is kept as a pre-restore backup first.
    """
    if not yes and not click.confirm(f"Restore {path} from {backup}?"):
        console.print("[yellow]Restore cancelled[/yellow]")
        return

    try:
        safety_copy = restore_backup(backup, path)
    except StorageError as exc:
        _fail(str(exc))

    console.print(f"[green]✓ Restored {path} from {backup}[/green]")
    if safety_copy:
        console.print(f"[dim]Previous content saved to {safety_copy}[/dim]")


@cli.command(name="delete-backup")
@click.argument('backup', type=click.Path())
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
def delete_backup_command(backup, yes):
    """
    Delete a backup file.
    """
    if not yes and not click.confirm(f"Delete {backup}?"):
        console.print("[yellow]Delete cancelled[/yellow]")
        return

    try:
        delete_backup(backup)
    except StorageError as exc:
        _fail(str(exc))

    console.print(f"[green]✓ Deleted {backup}[/green]")


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
