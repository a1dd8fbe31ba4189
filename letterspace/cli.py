"""
Command-line interface for Letterspace.

Provides commands for:
- Listing, showing, creating and soft-deleting documents
- Managing the recently-deleted trash
- Translating documents into variations
- Bible reader bookmarks
- Token usage and API keys

Usage:
    letterspace docs list
    letterspace docs new --title "Sunday" --text "Grace and peace."
    letterspace trash list
    letterspace translate 1A2B --language Spanish --save
    letterspace bible bookmark-add John 3 --verse 16
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from letterspace import __version__
from letterspace.bookmarks import BibleReaderData
from letterspace.config import APP_NAME, get_settings_path
from letterspace.keys import SERVICES, KeyManager, env_var_for
from letterspace.models import Document, DocumentDecodeError, DocumentElement, ElementType
from letterspace.pipeline import TranslationLanguage, TranslationPipeline
from letterspace.settings import KeyValueStore
from letterspace.storage import DocumentStore, DocumentStoreError
from letterspace.translate.base import create_generator
from letterspace.translate.errors import TranslationError
from letterspace.translate.tokens import ADDITIONAL_TOKENS_AMOUNT, ADDITIONAL_TOKENS_PRICE, TokenUsage
from letterspace.trash import TrashManager

app = typer.Typer(
    name="letterspace",
    help="Letterspace: documents, trash and translation for Letterspace Canvas",
    add_completion=False,
)
docs_app = typer.Typer(help="Create, inspect and delete documents", add_completion=False)
trash_app = typer.Typer(help="Recently deleted documents", add_completion=False)
bible_app = typer.Typer(help="Bible reader bookmarks and position", add_completion=False)
keys_app = typer.Typer(help="Manage API keys", add_completion=False)
app.add_typer(docs_app, name="docs")
app.add_typer(trash_app, name="trash")
app.add_typer(bible_app, name="bible")
app.add_typer(keys_app, name="keys")

console = Console()

# Global options set by the main callback
state: dict = {"root": None}


def version_callback(value: bool):
    if value:
        console.print(f"Letterspace v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging",
    ),
    root: Optional[Path] = typer.Option(
        None, "--root", "-r",
        help=f"Documents directory (default: $LETTERSPACE_HOME or ~/Documents/{APP_NAME})",
    ),
):
    """Letterspace: documents, trash and translation."""
    setup_logging(verbose)
    state["root"] = root


def fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/] {message}")
    raise typer.Exit(1)


def get_store() -> DocumentStore:
    return DocumentStore(state["root"])


def get_settings() -> KeyValueStore:
    root = state["root"]
    return KeyValueStore(get_settings_path(root))


def resolve_document(store: DocumentStore, doc_ref: str) -> Document:
    """Load a document by id, id prefix or title fragment."""
    try:
        if store.exists(doc_ref):
            return store.load(doc_ref)
        matches = store.find(doc_ref)
    except (DocumentStoreError, DocumentDecodeError) as e:
        fail(str(e))
    if not matches:
        fail(f"No document matches '{doc_ref}'")
    if len(matches) > 1:
        names = ", ".join(f"{d.display_title} ({d.id[:8]})" for d in matches[:5])
        fail(f"'{doc_ref}' is ambiguous: {names}")
    return matches[0]


def _short_date(value) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M") if value else "-"


# ----------------------------------------------------------------------
# Documents
# ----------------------------------------------------------------------

@docs_app.command("list")
def docs_list(
    query: Optional[str] = typer.Argument(None, help="Filter by id prefix or title"),
):
    """List documents, most recently modified first."""
    store = get_store()
    documents = store.find(query) if query else store.list_documents()
    if not documents:
        console.print("[yellow]No documents found.[/]")
        return

    table = Table(title=f"Documents in {store.root}")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Elements", justify="right")
    table.add_column("Variations", justify="right")
    table.add_column("Modified", style="green")
    for doc in documents:
        title = escape(doc.display_title) + (" [dim](variation)[/]" if doc.is_variation else "")
        table.add_row(doc.id[:8], title, str(len(doc.elements)), str(len(doc.variations)), _short_date(doc.modified_at))
    console.print(table)


@docs_app.command("show")
def docs_show(
    doc_ref: str = typer.Argument(..., help="Document id, id prefix or title"),
    content: bool = typer.Option(True, "--content/--no-content", help="Print the document text"),
):
    """Show a document's metadata and content."""
    doc = resolve_document(get_store(), doc_ref)
    console.print(doc.describe(), markup=False)
    if doc.subtitle:
        console.print(f"  Subtitle: {doc.subtitle}")
    for variation in doc.variations:
        console.print(f"  [cyan]↳ {escape(variation.name)}[/] ({variation.document_id[:8]})")
    for marker in doc.markers:
        console.print(f"  [yellow]◆ {escape(marker.title)}[/] at {marker.position} ({marker.type})")
    if content and doc.content:
        console.print("\n[bold]Content:[/]\n")
        console.print(doc.content, markup=False)


@docs_app.command("new")
def docs_new(
    title: str = typer.Option(..., "--title", "-t", help="Document title"),
    subtitle: str = typer.Option("", "--subtitle", "-s", help="Document subtitle"),
    text: Optional[list[str]] = typer.Option(None, "--text", help="Text block (repeatable)"),
    input_file: Optional[Path] = typer.Option(None, "--input", "-i", help="Read a text block from a file"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
):
    """Create a new document."""
    elements = []
    for block in text or []:
        elements.append(DocumentElement(type=ElementType.TEXT_BLOCK, content=block))
    if input_file:
        if not input_file.is_file():
            fail(f"File not found: {input_file}")
        elements.append(DocumentElement(
            type=ElementType.TEXT_BLOCK,
            content=input_file.read_text(encoding="utf-8"),
        ))

    doc = Document(title=title, subtitle=subtitle, elements=elements, tags=list(tags) if tags else None)
    try:
        path = get_store().save(doc)
    except DocumentStoreError as e:
        fail(str(e))
    console.print(f"[green]✓[/] Created '{doc.display_title}' ({doc.id})")
    console.print(f"[dim]{path}[/]")


@docs_app.command("delete")
def docs_delete(
    doc_refs: list[str] = typer.Argument(..., help="Documents to move to the trash"),
):
    """Move documents to the trash."""
    store = get_store()
    ids = [resolve_document(store, ref).id for ref in doc_refs]
    succeeded, failed = store.move_to_trash(ids)
    if succeeded:
        console.print(f"[green]✓[/] Moved {succeeded} document(s) to the trash")
    if failed:
        fail(f"{failed} document(s) could not be moved to the trash")


@docs_app.command("variation")
def docs_variation(
    doc_ref: str = typer.Argument(..., help="Parent document"),
    name: str = typer.Option(..., "--name", "-n", help="Variation name"),
    location: Optional[str] = typer.Option(None, "--location", help="Where it will be presented"),
    service_time: Optional[str] = typer.Option(None, "--service-time", help="Service time"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Notes"),
):
    """Create a variation (copy) of a document."""
    store = get_store()
    parent = resolve_document(store, doc_ref)
    variation = parent.create_variation(name, location=location, service_time=service_time, notes=notes)
    try:
        store.save(parent)
        store.save(variation)
    except DocumentStoreError as e:
        fail(str(e))
    console.print(f"[green]✓[/] Created variation '{name}' ({variation.id}) of '{parent.display_title}'")


# ----------------------------------------------------------------------
# Trash
# ----------------------------------------------------------------------

@trash_app.command("list")
def trash_list():
    """List recently deleted documents; expired ones are purged."""
    trash = TrashManager(get_store())
    items = trash.load_deleted()
    if not items:
        console.print("[yellow]Trash is empty.[/]")
        return

    table = Table(title="Recently Deleted")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Deleted", style="yellow")
    table.add_column("Days left", justify="right", style="green")
    for item in items:
        table.add_row(
            item.document.id[:8],
            escape(item.document.display_title),
            _short_date(item.deleted_at),
            str(item.days_remaining(max_days=trash.max_days)),
        )
    console.print(table)
    console.print(f"\n[dim]Items are permanently deleted after {trash.max_days} days[/]")


def _match_trashed(trash: TrashManager, doc_refs: list[str]) -> list[str]:
    ids = [p.stem for p in trash.trashed_paths()]
    matched = []
    for ref in doc_refs:
        candidates = [i for i in ids if i.lower().startswith(ref.lower())]
        if len(candidates) != 1:
            fail(f"'{ref}' matches {len(candidates)} trashed documents")
        matched.append(candidates[0])
    return matched


@trash_app.command("restore")
def trash_restore(
    doc_refs: list[str] = typer.Argument(..., help="Trashed document ids (or prefixes)"),
):
    """Restore documents from the trash."""
    trash = TrashManager(get_store())
    restored = trash.restore_many(_match_trashed(trash, doc_refs))
    console.print(f"[green]✓[/] Restored {len(restored)} document(s)")
    if len(restored) != len(doc_refs):
        raise typer.Exit(1)


@trash_app.command("delete")
def trash_delete(
    doc_refs: list[str] = typer.Argument(..., help="Trashed document ids (or prefixes)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Permanently delete documents from the trash."""
    trash = TrashManager(get_store())
    ids = _match_trashed(trash, doc_refs)
    if not yes and not typer.confirm(f"Permanently delete {len(ids)} document(s)?"):
        raise typer.Exit(0)
    deleted = trash.delete_many(ids)
    console.print(f"[green]✓[/] Permanently deleted {len(deleted)} document(s)")
    if len(deleted) != len(ids):
        raise typer.Exit(1)


@trash_app.command("empty")
def trash_empty(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Permanently delete everything in the trash."""
    if not yes and not typer.confirm("Permanently delete all documents in the trash?"):
        raise typer.Exit(0)
    try:
        count = TrashManager(get_store()).empty()
    except OSError as e:
        fail(f"Could not empty the trash: {e}")
    console.print(f"[green]✓[/] Removed {count} document(s)")


# ----------------------------------------------------------------------
# Translation
# ----------------------------------------------------------------------

@app.command()
def translate(
    doc_ref: str = typer.Argument(..., help="Document id, id prefix or title"),
    language: str = typer.Option(
        "Spanish", "--language", "-l",
        help="Target language (name or ISO code)",
    ),
    backend: str = typer.Option(
        "gemini", "--backend", "-b",
        help="Generation backend (gemini, openai, anthropic, dummy)",
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m",
        help="Model name for LLM backends",
    ),
    save: bool = typer.Option(
        False, "--save",
        help="Store the result as a translation variation",
    ),
):
    """Translate a document, optionally saving it as a variation."""
    try:
        target = TranslationLanguage.parse(language)
    except ValueError as e:
        fail(f"{e}. Available: {', '.join(lang.value for lang in TranslationLanguage)}")

    store = get_store()
    doc = resolve_document(store, doc_ref)
    try:
        generator = create_generator(backend, model=model, token_usage=TokenUsage(get_settings()))
    except ValueError as e:
        fail(str(e))
    pipeline = TranslationPipeline(generator)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Translating...", total=100)
        pipeline.progress_callback = lambda msg, pct: progress.update(
            task, description=msg, completed=int(pct * 100)
        )
        try:
            outcome = pipeline.translate_document(doc, target)
        except TranslationError as e:
            fail(str(e))

    console.print(f"\n[bold green]Translation ({target.value}) complete![/]\n")
    if outcome.translated_title:
        console.print(f"[bold]{escape(outcome.translated_title)}[/]")
    if outcome.translated_subtitle:
        console.print(f"[italic]{escape(outcome.translated_subtitle)}[/]")
    console.print(outcome.translated_text, markup=False)

    if outcome.errors:
        console.print(f"\n[yellow]{len(outcome.errors)} section(s) could not be translated:[/]")
        for error in outcome.errors:
            console.print(f"  - {error}", markup=False)

    if save:
        try:
            variation = pipeline.create_translation_variation(doc, outcome, store=store)
        except DocumentStoreError as e:
            fail(str(e))
        console.print(f"\n[green]Saved variation:[/] {variation.id}")


@app.command()
def tokens(
    purchase: bool = typer.Option(False, "--purchase", help=f"Add {ADDITIONAL_TOKENS_AMOUNT:,} tokens"),
    reset: bool = typer.Option(False, "--reset", help="Reset the usage counter"),
):
    """Show AI token usage."""
    usage = TokenUsage(get_settings())
    if purchase:
        usage.purchase_additional()
        console.print(f"[green]✓[/] Added {ADDITIONAL_TOKENS_AMOUNT:,} tokens ({ADDITIONAL_TOKENS_PRICE})")
    if reset:
        usage.reset()
        console.print("[green]✓[/] Usage counter reset")

    table = Table(title="Token Usage")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Used", f"{usage.current_usage:,}")
    table.add_row("Limit", f"{usage.total_limit:,}")
    table.add_row("Remaining", f"{usage.remaining():,}")
    table.add_row("Used %", f"{usage.usage_fraction() * 100:.1f}%")
    table.add_row("Top-ups purchased", str(usage.additional_tokens_purchased))
    console.print(table)


# ----------------------------------------------------------------------
# Bible reader
# ----------------------------------------------------------------------

@bible_app.command("bookmark-add")
def bible_bookmark_add(
    book: str = typer.Argument(..., help="Book name, e.g. John"),
    chapter: int = typer.Argument(..., help="Chapter number"),
    verse: int = typer.Option(1, "--verse", help="Verse number"),
    translation: str = typer.Option("KJV", "--translation", "-t", help="Bible translation"),
    notes: str = typer.Option("", "--notes", help="Notes"),
):
    """Bookmark a Bible passage."""
    reader = BibleReaderData(get_settings())
    bookmark = reader.add_bookmark(book, chapter, translation, verse=verse, notes=notes)
    console.print(f"[green]✓[/] Bookmarked {bookmark.reference}")


@bible_app.command("bookmarks")
def bible_bookmarks():
    """List Bible bookmarks."""
    reader = BibleReaderData(get_settings())
    if not reader.bookmarks:
        console.print("[yellow]No bookmarks.[/]")
        return
    table = Table(title="Bible Bookmarks")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Reference", style="cyan")
    table.add_column("Added", style="green")
    table.add_column("Notes")
    for number, bookmark in enumerate(reader.bookmarks, start=1):
        table.add_row(str(number), escape(bookmark.reference), _short_date(bookmark.date_added), escape(bookmark.notes))
    console.print(table)


@bible_app.command("bookmark-remove")
def bible_bookmark_remove(
    number: int = typer.Argument(..., help="Bookmark number as shown by 'bible bookmarks'"),
):
    """Remove a Bible bookmark."""
    reader = BibleReaderData(get_settings())
    removed = reader.remove_bookmark(number - 1)
    if removed is None:
        console.print(f"[yellow]⚠[/] No bookmark #{number}")
        return
    console.print(f"[green]✓[/] Removed {removed.reference}")


@bible_app.command("last-read")
def bible_last_read(
    book: Optional[str] = typer.Option(None, "--book", help="Set the book"),
    chapter: Optional[int] = typer.Option(None, "--chapter", help="Set the chapter"),
    translation: Optional[str] = typer.Option(None, "--translation", "-t", help="Set the translation"),
):
    """Show or update the last-read position."""
    reader = BibleReaderData(get_settings())
    if book or chapter or translation:
        reader.save_last_read(
            book or reader.last_read_book,
            chapter or reader.last_read_chapter,
            translation or reader.last_read_translation,
        )
    console.print(
        f"Last read: [cyan]{reader.last_read_book} {reader.last_read_chapter}[/] "
        f"({reader.last_read_translation})"
    )


# ----------------------------------------------------------------------
# API keys
# ----------------------------------------------------------------------

@keys_app.command("set")
def keys_set(
    service: str = typer.Argument(..., help=f"Service ({', '.join(SERVICES)})"),
    key: Optional[str] = typer.Option(None, "--key", help="Key value (prompted when omitted)"),
):
    """Store an API key."""
    if not key:
        from getpass import getpass
        key = getpass(f"Enter API key for {service}: ")
    if not key:
        fail("Key cannot be empty")

    storage = KeyManager().set_key(service, key)
    console.print(f"[green]✓[/] API key for {service} saved to {storage}")
    if storage == "config":
        console.print("[yellow]Note:[/] Key stored in local file (~/.letterspace/keys.json)")
        console.print("       For better security, use environment variables")


@keys_app.command("status")
def keys_status(
    service: Optional[str] = typer.Argument(None, help="Service to check (all when omitted)"),
):
    """Show which API keys are configured."""
    km = KeyManager()
    infos = [km.get_key_info(service)] if service else km.list_keys()

    table = Table(title="API Keys Status")
    table.add_column("Service", style="cyan")
    table.add_column("Status")
    table.add_column("Source", style="yellow")
    table.add_column("Value", style="dim")
    for info in infos:
        status = "[green]✓ Set[/]" if info.is_set else "[red]✗ Not set[/]"
        table.add_row(info.service, status, info.source, info.masked_value or "-")
    console.print(table)

    missing = [info.service for info in infos if not info.is_set]
    for name in missing:
        console.print(f"  Set {name}: [cyan]letterspace keys set {name}[/] or export {env_var_for(name)}")
    console.print("\n[dim]Priority: env > keychain > config file[/]")


if __name__ == "__main__":
    app()
