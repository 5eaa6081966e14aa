"""CLI for inspecting locally stored drafts."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from draftkit.config import DraftkitConfig, load_config, merge_cli_overrides
from draftkit.drafts.models import Draft
from draftkit.drafts.schema import DRAFT_SCHEMA, PUBLISH_SCHEMA
from draftkit.drafts.store import DraftStore, JsonFileKeyValueStore
from draftkit.validation import validate

app = typer.Typer(
    name="draftkit",
    help="Inspect, validate and clear locally stored drafts.",
)

console = Console()


class _State:
    config: DraftkitConfig = DraftkitConfig()


state = _State()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from draftkit import __version__

        console.print(f"draftkit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to a .draftkit.toml file.",
        ),
    ] = None,
    store_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--store-dir",
            help="Directory holding the draft store.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Show debug logging.",
        ),
    ] = False,
) -> None:
    """Draftkit - local draft inspection."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )
    state.config = merge_cli_overrides(load_config(config_path), store_dir=store_dir)


def _open_store() -> tuple[DraftStore, JsonFileKeyValueStore]:
    backend = JsonFileKeyValueStore(Path(state.config.store.directory))
    return DraftStore(backend, state.config.media.handle_prefix), backend


def _load_or_exit(store: DraftStore, key: str) -> Draft:
    draft = store.load(key)
    if draft is None:
        console.print(f"[red]Error:[/red] No draft stored under '{key}'")
        raise typer.Exit(1)
    return draft


def _format_value(value: object) -> str:
    if value is None or value == "" or value == []:
        return "-"
    if isinstance(value, list):
        return ", ".join(str(entry) for entry in value)
    return str(value)


@app.command("list")
def list_cmd() -> None:
    """List stored drafts."""
    store, backend = _open_store()
    prefix = f"{state.config.store.key_prefix}:"
    keys = [key for key in backend.keys() if key.startswith(prefix)]
    if not keys:
        console.print("[yellow]No drafts stored.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Drafts in {backend.path}")
    table.add_column("Key")
    table.add_column("Title")
    table.add_column("Gallery", justify="right")
    table.add_column("Updated")
    for key in keys:
        draft = store.load(key)
        if draft is None:
            table.add_row(key, "[red]unreadable[/red]", "-", "-")
            continue
        table.add_row(
            key,
            draft.title or "[dim]untitled[/dim]",
            str(len(draft.gallery)),
            draft.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def show(
    key: Annotated[str, typer.Argument(help="Store key of the draft.")],
) -> None:
    """Print a stored draft: fields, gallery and attachments."""
    store, _ = _open_store()
    draft = _load_or_exit(store, key)

    fields = Table.grid(padding=(0, 2))
    fields.add_column(style="bold")
    fields.add_column()
    for name, value in draft.model_dump(exclude={"gallery", "attachments"}).items():
        fields.add_row(name, _format_value(value))
    console.print(Panel(fields, title=draft.title or "untitled"))

    if draft.gallery:
        gallery = Table(title="Gallery")
        gallery.add_column("#", justify="right")
        gallery.add_column("Kind")
        gallery.add_column("Title")
        gallery.add_column("URL")
        gallery.add_column("Thumbnail")
        gallery.add_column("Duration", justify="right")
        for item in draft.gallery:
            gallery.add_row(
                str(item.sort_order),
                item.kind,
                item.title,
                item.url or "-",
                item.thumbnail_url or "-",
                _format_value(item.duration),
            )
        console.print(gallery)
    else:
        console.print("[dim]No gallery items.[/dim]")

    if draft.attachments:
        attachments = Table(title="Attachments")
        attachments.add_column("File")
        attachments.add_column("Path")
        attachments.add_column("Size (MB)", justify="right")
        for attachment in draft.attachments:
            attachments.add_row(
                attachment.file_name,
                attachment.file_path or "-",
                _format_value(attachment.file_size_mb),
            )
        console.print(attachments)


@app.command("validate")
def validate_cmd(
    key: Annotated[str, typer.Argument(help="Store key of the draft.")],
    publish: Annotated[
        bool,
        typer.Option(
            "--publish",
            help="Check against the stricter publish rules.",
        ),
    ] = False,
) -> None:
    """Validate a stored draft and list its problems."""
    store, _ = _open_store()
    draft = _load_or_exit(store, key)
    result = validate(draft, PUBLISH_SCHEMA if publish else DRAFT_SCHEMA)
    if result.is_valid:
        console.print(f"[green]Draft '{key}' is valid.[/green]")
        return

    console.print(f"[red]Draft '{key}' has {len(result.errors)} invalid field(s):[/red]")
    for field, messages in result.errors.items():
        for message in messages:
            console.print(f"  - {field}: {message}")
    raise typer.Exit(1)


@app.command()
def clear(
    key: Annotated[str, typer.Argument(help="Store key of the draft.")],
) -> None:
    """Remove a stored draft."""
    store, _ = _open_store()
    if not store.has_draft(key):
        console.print(f"[yellow]No draft stored under '{key}'.[/yellow]")
        return
    store.clear(key)
    console.print(f"Cleared draft '{key}'.")
