"""
CLI entry point for minddeck.
"""

# Standard library imports
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

# Third-party imports
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

# Local application imports
from minddeck.cache import LocalCache
from minddeck.config import Settings, get_settings
from minddeck.exceptions import (
    CacheError,
    CardNotFoundError,
    DeckNotFoundError,
    ImportFormatError,
    InputValidationError,
    StorageQuotaError,
)
from minddeck.exporter import (
    CSV_EXPORT_FILENAME,
    JSON_EXPORT_FILENAME,
    write_export,
)
from minddeck.models import Deck
from minddeck.operations import DeckManager
from minddeck.remote import RemoteDeckClient
from minddeck.store import DeckStore
from minddeck.study import StudySession
from minddeck.undo import UndoOffer, await_choice
from minddeck.cli.prompts import FormField, ask_form, confirm_undo
from minddeck.cli.study_ui import start_study_flow

T = TypeVar("T")

console = Console()

app = typer.Typer(
    name="minddeck",
    help="MindDeck: flashcard decks with an offline cache and a shared backend.",
    add_completion=False,
    rich_markup_mode="markdown",
)


# ---------------------------------------------------------------------------
# Settings & plumbing
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    cache: Optional[Path] = typer.Option(  # noqa: B008
        None,
        "--cache",
        help="Local cache file (':memory:' for a throwaway cache). "
        "Falls back to MINDDECK_CACHE_PATH.",
    ),
    remote_url: Optional[str] = typer.Option(
        None,
        "--remote-url",
        help="Backend base URL. Falls back to MINDDECK_REMOTE_URL.",
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Use only the local cache."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log debug output to stderr."
    ),
):
    """Resolve settings once and hand them to every command."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )
    settings = get_settings()
    updates = {}
    if cache is not None:
        updates["cache_path"] = cache
    if remote_url is not None:
        updates["remote_url"] = remote_url.strip().rstrip("/") or None
    if offline:
        updates["remote_url"] = None
    ctx.obj = settings.model_copy(update=updates)


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else get_settings()


def _run(settings: Settings, operation: Callable[[DeckManager], Awaitable[T]]) -> T:
    """
    Open the cache, wire store and manager, and run one async operation.

    Outstanding background remote updates are awaited before the loop closes.
    """

    async def runner() -> T:
        remote = (
            RemoteDeckClient(settings.remote_url, timeout=settings.request_timeout)
            if settings.remote_url
            else None
        )
        with LocalCache(
            settings.cache_path, quota_bytes=settings.storage_quota_bytes
        ) as cache:
            store = DeckStore(cache, remote=remote)
            manager = DeckManager(store, undo_timeout=settings.undo_timeout)
            try:
                return await operation(manager)
            finally:
                await store.drain()

    return asyncio.run(runner())


def _run_or_exit(settings: Settings, operation: Callable[[DeckManager], Awaitable[T]]) -> T:
    """Run an operation, turning expected failures into messages and exit code 1."""
    try:
        return _run(settings, operation)
    except typer.Exit:
        raise
    except StorageQuotaError as e:
        console.print(f"[bold red]Storage full:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except ImportFormatError as e:
        console.print(f"[bold red]Import failed:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except (InputValidationError, DeckNotFoundError, CardNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except CacheError as e:
        console.print(f"[bold red]Local cache error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except Exception as e:
        console.print(f"[bold red]An unexpected error occurred:[/bold red] {e}")
        raise typer.Exit(code=1) from e


async def _offer_undo(offer: UndoOffer, no_undo: bool) -> bool:
    """Print the offer and, unless disabled, ask whether to take it."""
    console.print(f"[green]{offer.message}[/green]")
    if no_undo:
        offer.expire()
        return False
    undone = await await_choice(offer, confirm_undo)
    if undone:
        console.print("[yellow]Undone.[/yellow]")
    elif not offer.used and offer.remaining <= 0:
        console.print("[dim]Undo window closed; change kept.[/dim]")
    return undone


_no_undo_option = typer.Option(  # noqa: B008
    False, "--no-undo", help="Do not offer to undo."
)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


def _display_decks(cons: Console, decks) -> None:
    """Print a table with one row per deck."""
    table = Table(title="Decks")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Cards", style="magenta", justify="right")
    for deck in decks:
        table.add_row(str(deck.id), deck.name, deck.description, str(len(deck.cards)))
    cons.print(table)


def _display_cards(cons: Console, deck: Deck) -> None:
    """Print a deck's cards, or a notice if it has none."""
    if not deck.cards:
        cons.print("[yellow]No cards in this deck yet.[/yellow]")
        return
    table = Table(title=f"{deck.name}")
    table.add_column("ID", style="dim")
    table.add_column("Front", style="cyan")
    table.add_column("Back", style="magenta")
    for card in deck.cards:
        table.add_row(str(card.id), card.front, card.back)
    cons.print(table)


@app.command("list")
def list_decks(ctx: typer.Context):
    """List all decks."""
    decks = _run_or_exit(_settings(ctx), lambda m: m.list_decks())
    if not decks:
        console.print("[yellow]No decks yet - create one.[/yellow]")
        return
    _display_decks(console, decks)


@app.command()
def show(
    ctx: typer.Context,
    deck_id: str = typer.Argument(..., help="ID of the deck to show."),
):
    """Show a deck and its cards."""
    deck = _run_or_exit(_settings(ctx), lambda m: m.get_deck(deck_id))
    console.print(f"[bold cyan]{deck.name}[/bold cyan]")
    if deck.description:
        console.print(deck.description)
    _display_cards(console, deck)


# ---------------------------------------------------------------------------
# Deck commands
# ---------------------------------------------------------------------------


@app.command()
def create(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Deck name."),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Optional description."
    ),
):
    """Create a new deck (prompts for missing fields)."""

    async def operation(manager: DeckManager):
        values = {"name": name, "description": description or ""}
        if name is None:
            answers = await ask_form(
                "Create deck",
                [
                    FormField("name", "Deck name"),
                    FormField("description", "Description (optional)", description or ""),
                ],
            )
            if answers is None:
                return None
            values = answers
        return await manager.create_deck(values["name"], values["description"])

    deck = _run_or_exit(_settings(ctx), operation)
    if deck is not None:
        console.print(
            f"[bold green]Created deck[/bold green] [cyan]{deck.name}[/cyan] (id {deck.id})"
        )


@app.command()
def edit(
    ctx: typer.Context,
    deck_id: str = typer.Argument(..., help="ID of the deck to edit."),
    name: Optional[str] = typer.Option(None, "--name", "-n"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
):
    """Edit a deck's name and description."""

    async def operation(manager: DeckManager):
        if name is None and description is None:
            deck = await manager.get_deck(deck_id)
            answers = await ask_form(
                "Edit deck",
                [
                    FormField("name", "Deck name", deck.name),
                    FormField("description", "Description (optional)", deck.description),
                ],
            )
            if answers is None:
                return None
            return await manager.edit_deck(deck_id, answers["name"], answers["description"])
        return await manager.edit_deck(deck_id, name, description)

    deck = _run_or_exit(_settings(ctx), operation)
    if deck is not None:
        console.print(f"[bold green]Saved deck[/bold green] [cyan]{deck.name}[/cyan]")


@app.command()
def delete(
    ctx: typer.Context,
    deck_id: str = typer.Argument(..., help="ID of the deck to delete."),
    no_undo: bool = _no_undo_option,
):
    """Delete a deck, with a short window to undo."""

    async def operation(manager: DeckManager):
        offer = await manager.delete_deck(deck_id)
        return await _offer_undo(offer, no_undo)

    _run_or_exit(_settings(ctx), operation)


# ---------------------------------------------------------------------------
# Card commands
# ---------------------------------------------------------------------------


@app.command("add-card")
def add_card(
    ctx: typer.Context,
    deck_id: str = typer.Argument(..., help="ID of the deck to add to."),
    front: Optional[str] = typer.Option(None, "--front", "-f"),
    back: Optional[str] = typer.Option(None, "--back", "-b"),
):
    """Add a card to a deck (prompts for missing sides)."""

    async def operation(manager: DeckManager):
        values = {"front": front, "back": back}
        if front is None or back is None:
            answers = await ask_form(
                "Add card",
                [
                    FormField("front", "Front", front or ""),
                    FormField("back", "Back", back or ""),
                ],
            )
            if answers is None:
                return None
            values = answers
        return await manager.add_card(deck_id, values["front"], values["back"])

    card = _run_or_exit(_settings(ctx), operation)
    if card is not None:
        console.print(f"[bold green]Added card[/bold green] (id {card.id})")


@app.command("edit-card")
def edit_card(
    ctx: typer.Context,
    deck_id: str = typer.Argument(...),
    card_id: str = typer.Argument(...),
    front: Optional[str] = typer.Option(None, "--front", "-f"),
    back: Optional[str] = typer.Option(None, "--back", "-b"),
):
    """Edit a card; blank values keep the current text."""

    async def operation(manager: DeckManager):
        if front is None and back is None:
            deck = await manager.get_deck(deck_id)
            card = deck.find_card(card_id)
            if card is None:
                raise CardNotFoundError(f"Card not found: {card_id}")
            answers = await ask_form(
                "Edit card",
                [FormField("front", "Front", card.front), FormField("back", "Back", card.back)],
            )
            if answers is None:
                return None
            return await manager.edit_card(deck_id, card_id, answers["front"], answers["back"])
        return await manager.edit_card(deck_id, card_id, front, back)

    card = _run_or_exit(_settings(ctx), operation)
    if card is not None:
        console.print(f"[bold green]Saved card[/bold green] (id {card.id})")


@app.command("delete-card")
def delete_card(
    ctx: typer.Context,
    deck_id: str = typer.Argument(...),
    card_id: str = typer.Argument(...),
    no_undo: bool = _no_undo_option,
):
    """Delete a card, with a short window to undo."""

    async def operation(manager: DeckManager):
        offer = await manager.delete_card(deck_id, card_id)
        return await _offer_undo(offer, no_undo)

    _run_or_exit(_settings(ctx), operation)


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    ctx: typer.Context,
    deck_id: str = typer.Argument(..., help="ID of the deck to study."),
):
    """Flip through a deck's cards."""

    async def operation(manager: DeckManager):
        return StudySession(await manager.get_deck(deck_id))

    session = _run_or_exit(_settings(ctx), operation)
    start_study_flow(session)


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


@app.command("import")
def import_decks(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="A .json or .csv file."),  # noqa: B008
    keep_decks: bool = typer.Option(
        False,
        "--keep-decks",
        help="Keep each source deck separate instead of merging all cards "
        "into one 'Imported Deck' (JSON deck files only).",
    ),
    no_undo: bool = _no_undo_option,
):
    """Import decks from JSON or CSV."""

    async def operation(manager: DeckManager):
        outcome = await manager.import_file(file, preserve_grouping=keep_decks)
        result = outcome.result
        console.print(
            f"Read {result.source_format.upper()}"
            + (f" ({result.shape.value.replace('_', ' ')})" if result.shape else "")
            + f": {result.card_count} card(s)"
        )
        return await _offer_undo(outcome.undo, no_undo)

    _run_or_exit(_settings(ctx), operation)


export_app = typer.Typer(
    name="export",
    help="Export decks to JSON or CSV.",
)
app.add_typer(export_app)

_output_option = typer.Option(  # noqa: B008
    None,
    "--output",
    "-o",
    help="Destination file (defaults to the standard export name in the current directory).",
    dir_okay=False,
)


@export_app.command("json")
def export_json_cmd(ctx: typer.Context, output: Optional[Path] = _output_option):
    """Export all decks as pretty-printed JSON."""
    text = _run_or_exit(_settings(ctx), lambda m: m.export_json())
    _write_or_exit(output or Path(JSON_EXPORT_FILENAME), text)


@export_app.command("csv")
def export_csv_cmd(ctx: typer.Context, output: Optional[Path] = _output_option):
    """Export all cards as deck_name,deck_description,front,back CSV."""

    async def operation(manager: DeckManager):
        if not await manager.list_decks():
            return None
        return await manager.export_csv()

    text = _run_or_exit(_settings(ctx), operation)
    if text is None:
        console.print("[yellow]No decks to export.[/yellow]")
        return
    _write_or_exit(output or Path(CSV_EXPORT_FILENAME), text)


def _write_or_exit(path: Path, text: str) -> None:
    try:
        write_export(path, text)
    except IOError as e:
        console.print(f"[bold]An error occurred during export: {e}[/bold]")
        raise typer.Exit(code=1) from e
    console.print(f"Exported decks to [cyan]{path}[/cyan]")


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    data_file: Optional[Path] = typer.Option(  # noqa: B008
        None, "--data-file", help="JSON file holding the collection."
    ),
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
):
    """Run the backend server."""
    import uvicorn

    from minddeck.server import create_app

    settings = _settings(ctx)
    data_path = data_file or settings.data_file
    bind_host = host or settings.host
    bind_port = port or settings.port
    console.print(
        f"MindDeck server running on [cyan]http://{bind_host}:{bind_port}[/cyan]"
    )
    uvicorn.run(create_app(data_path), host=bind_host, port=bind_port)


@app.command()
def health(ctx: typer.Context):
    """Check whether the backend is reachable."""
    settings = _settings(ctx)
    if not settings.remote_url:
        console.print("[yellow]No backend configured (offline mode).[/yellow]")
        raise typer.Exit(code=1)
    client = RemoteDeckClient(settings.remote_url, timeout=settings.request_timeout)
    if asyncio.run(client.health()):
        console.print(f"[bold green]Backend OK[/bold green] at {settings.remote_url}")
    else:
        console.print(f"[bold red]Backend unreachable[/bold red] at {settings.remote_url}")
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {e}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
