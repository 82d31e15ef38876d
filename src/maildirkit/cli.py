"""Command-line access to maildir mailboxes."""

from __future__ import annotations

import functools
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import get_settings
from .errors import MaildirError, ScanError
from .mailbox import Maildir

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(help="Inspect and manipulate Maildir mailboxes.", no_args_is_help=True)

F = TypeVar("F", bound=Callable[..., Any])

PathArg = Annotated[Optional[Path], typer.Argument(help="Mailbox directory (defaults to MAILDIR_ROOT)")]
KeyArg = Annotated[str, typer.Argument(help="Message key")]


@app.callback()
def _app_callback(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR")] = None,
) -> None:
    level = (log_level or get_settings().log_level).upper()
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _handle_errors(func: F) -> F:
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ScanError as e:
            for err in e.errors:
                err_console.print(f"[yellow]{escape(str(err))}[/]")
            if e.cause is not None:
                err_console.print(f"[red]{escape(str(e.cause))}[/]")
            raise typer.Exit(code=1) from None
        except (MaildirError, OSError, ValueError) as e:
            err_console.print(f"[red]Error:[/] {escape(str(e))}")
            raise typer.Exit(code=1) from None

    return wrapper  # type: ignore[return-value]


def _open(path: Path | None) -> Maildir:
    resolved = path or get_settings().root
    if resolved is None:
        err_console.print("[red]No mailbox given and MAILDIR_ROOT is not set.[/]")
        raise typer.Exit(code=2)
    return Maildir(resolved)


def _flag_text(flags: tuple[Any, ...]) -> str:
    return "".join(str(flag) for flag in flags)


@app.command("init")
@_handle_errors
def init(path: PathArg = None) -> None:
    """Create tmp/, new/ and cur/ (safe to run again)."""
    mailbox = _open(path)
    mailbox.init()
    console.print(f"[green]Initialized[/] {mailbox.path}")


@app.command("deliver")
@_handle_errors
def deliver(
    path: PathArg = None,
    file: Annotated[Optional[Path], typer.Option("--file", "-f", help="Read the message from a file instead of stdin")] = None,
    flags: Annotated[Optional[str], typer.Option("--flags", help="Publish into cur/ with these flags, e.g. 'S'")] = None,
) -> None:
    """Deliver one message read from stdin or --file."""
    mailbox = _open(path)
    if flags is None:
        delivery = mailbox.new_delivery()
    else:
        _msg, delivery = mailbox.create(list(flags))
    with delivery:
        if file is not None:
            with file.open("rb") as f:
                delivery.copy_from(f)
        else:
            delivery.copy_from(sys.stdin.buffer)
    typer.echo(delivery.key)


@app.command("unseen")
@_handle_errors
def unseen(path: PathArg = None) -> None:
    """Move new messages into cur/ and print their keys."""
    try:
        promoted = _open(path).unseen()
    except ScanError as e:
        for msg in e.partial:
            typer.echo(msg.key)
        raise
    for msg in promoted:
        typer.echo(msg.key)


@app.command("count")
@_handle_errors
def count(path: PathArg = None) -> None:
    """Print the number of messages waiting in new/."""
    typer.echo(_open(path).unseen_count())


@app.command("ls")
@_handle_errors
def list_messages(path: PathArg = None) -> None:
    """List messages in cur/ with their flags."""
    mailbox = _open(path)
    table = Table(title=str(mailbox.path), show_lines=False)
    table.add_column("key", overflow="fold")
    table.add_column("flags")
    for msg in sorted(mailbox.messages(), key=lambda m: m.key):
        table.add_row(msg.key, _flag_text(msg.flags))
    console.print(table)


@app.command("flags")
@_handle_errors
def flags(
    key: KeyArg,
    path: PathArg = None,
    set_: Annotated[Optional[str], typer.Option("--set", help="Replace the flags, e.g. 'FS'; empty clears")] = None,
) -> None:
    """Show or replace the flags of a message."""
    mailbox = _open(path)
    if set_ is not None:
        mailbox.set_flags(key, list(set_))
    typer.echo(_flag_text(mailbox.flags(key)))


@app.command("cat")
@_handle_errors
def cat(key: KeyArg, path: PathArg = None) -> None:
    """Write the raw message to stdout."""
    with _open(path).open(key) as f:
        typer.echo(f.read(), nl=False)


@app.command("rm")
@_handle_errors
def remove(key: KeyArg, path: PathArg = None) -> None:
    """Delete a message."""
    _open(path).remove(key)


@app.command("mv")
@_handle_errors
def move(
    source: Annotated[Path, typer.Argument(help="Source mailbox")],
    target: Annotated[Path, typer.Argument(help="Target mailbox")],
    key: KeyArg,
    overwrite: Annotated[bool, typer.Option("--overwrite/--no-overwrite", help="Replace an entry with the same key")] = True,
) -> None:
    """Move a message to another mailbox, keeping key and flags."""
    Maildir(source).move(Maildir(target), key, overwrite=overwrite)


@app.command("cp")
@_handle_errors
def copy(
    source: Annotated[Path, typer.Argument(help="Source mailbox")],
    target: Annotated[Path, typer.Argument(help="Target mailbox")],
    key: KeyArg,
) -> None:
    """Copy a message to another mailbox under a new key."""
    typer.echo(Maildir(source).copy(Maildir(target), key).key)


@app.command("clean")
@_handle_errors
def clean(
    path: PathArg = None,
    hours: Annotated[Optional[float], typer.Option("--hours", help="Retention window in hours")] = None,
) -> None:
    """Remove abandoned files from tmp/."""
    retention = timedelta(hours=hours) if hours is not None else None
    removed = _open(path).clean(retention)
    console.print(f"Removed {len(removed)} stale file(s)")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
