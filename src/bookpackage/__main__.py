"""CLI entry point for the book package service."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from keyring.errors import KeyringError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from bookpackage import __version__
from bookpackage.alignment.extractor import extract_alignment
from bookpackage.config import Settings, delete_token, get_stored_token, store_token
from bookpackage.ingest.usfm_parser import find_verse, parse_verses
from bookpackage.logs import setup_logging
from bookpackage.service import ResourceService

console = Console()


def _settings(language: str | None, organization: str | None) -> Settings:
    settings = Settings.from_env()
    if language:
        settings.language = language
    if organization:
        settings.organization = organization
    return settings


def _mask(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log resolution steps")
def cli(verbose: bool):
    """Door43 book package resolver - resources for Bible translators."""
    setup_logging(
        logging.DEBUG if verbose else logging.WARNING, token=get_stored_token()
    )


@cli.command()
@click.argument("book")
@click.option("--language", "-l", default=None, help="Language code (default: en)")
@click.option("--organization", "-O", default=None, help="Owning organization")
@click.option("--output", "-o", type=click.Path(), help="Write summary JSON to file")
def package(book: str, language: str | None, organization: str | None, output: str | None):
    """Assemble the translation package for BOOK.

    Example: bookpackage package JON
    """
    settings = _settings(language, organization)

    async def run():
        async with ResourceService(settings) as service:
            return await service.get_book_package(book)

    result = asyncio.run(run())
    if result is None:
        console.print(f"[red]Error: could not assemble a package for {book}[/red]")
        sys.exit(1)

    if output:
        Path(output).write_text(json.dumps(result.summary(), indent=2))
        console.print(f"[green]✓ Summary written to {output}[/green]")
        return

    table = Table(
        title=f"{result.organization}/{result.language} {result.book}",
    )
    table.add_column("Resource type", style="cyan")
    table.add_column("Source", style="green")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    for name, slot in result.slots.items():
        table.add_row(name, slot.source, slot.path, str(len(slot.raw_content)))
    console.print(table)

    if result.is_empty:
        console.print("[yellow]No resource types resolved[/yellow]")


@cli.command()
@click.argument("word_id")
@click.option("--language", "-l", default=None, help="Language code (default: en)")
def word(word_id: str, language: str | None):
    """Show a Translation Words article (e.g. kt/god, god, or an rc:// link)."""
    settings = _settings(language, None)

    async def run():
        async with ResourceService(settings) as service:
            return await service.get_translation_word(word_id)

    article = asyncio.run(run())
    if article is None:
        console.print(f"[yellow]No word article found for {word_id}[/yellow]")
        sys.exit(1)

    body = f"[bold]{article.category_label}[/bold]\n\n{escape(article.definition)}"
    if article.translation_suggestions:
        body += f"\n\n[bold]Translation suggestions[/bold]\n{escape(article.translation_suggestions)}"
    if article.bible_references:
        body += f"\n\n[dim]References: {', '.join(article.bible_references)}[/dim]"
    console.print(Panel(body, title=article.title))


@cli.command()
@click.argument("article_id")
@click.option("--language", "-l", default=None, help="Language code (default: en)")
def article(article_id: str, language: str | None):
    """Show a Translation Academy article (e.g. figs-metaphor)."""
    settings = _settings(language, None)

    async def run():
        async with ResourceService(settings) as service:
            return await service.get_translation_academy_article(article_id)

    result = asyncio.run(run())
    if result is None:
        console.print(f"[yellow]No academy article found for {article_id}[/yellow]")
        sys.exit(1)

    title = result.title
    if result.subtitle:
        title += f" - {result.subtitle}"
    body = escape(result.description or result.content)
    if result.strategies:
        body += f"\n\n[bold]Translation strategies[/bold]\n{escape(result.strategies)}"
    console.print(Panel(body, title=title, subtitle=result.category))


@cli.command()
@click.argument("reference")
@click.option("--language", "-l", default=None, help="Language code (default: en)")
def helps(reference: str, language: str | None):
    """Show notes, questions and word links for REFERENCE.

    Example: bookpackage helps "JON 1:3"
    """
    settings = _settings(language, None)

    async def run():
        async with ResourceService(settings) as service:
            return await service.get_passage_helps(reference)

    result = asyncio.run(run())
    if result is None:
        console.print(f"[red]Error: cannot read reference {reference!r}[/red]")
        console.print("[dim]Use BOOK C:V, e.g. JON 1:3[/dim]")
        sys.exit(1)

    console.print(f"[bold blue]{result.reference}[/bold blue]")
    if result.is_empty:
        console.print("[yellow]No helps found[/yellow]")
        return

    for note in result.notes:
        console.print(f"\n[bold cyan]{note.reference}[/bold cyan] {escape(note.quote)}")
        console.print(f"  {escape(note.note)}")
        if note.support_reference:
            console.print(f"  [dim]{note.support_reference}[/dim]")
    for question in result.questions:
        console.print(f"\n[bold green]Q[/bold green] {escape(question.question)}")
        console.print(f"  {escape(question.response)}")
    if result.word_links:
        console.print("\n[bold]Words:[/bold]")
        for link in result.word_links:
            console.print(f"  • {link.orig_words}: {link.tw_link}")


@cli.command()
@click.argument("usfm_file", type=click.Path(exists=True))
@click.option("--chapter", "-c", type=int, required=True, help="Chapter number")
@click.option("--verse", "-V", type=int, required=True, help="Verse number")
@click.option("--output", "-o", type=click.Path(), help="Write alignment JSON to file")
def align(usfm_file: str, chapter: int, verse: int, output: str | None):
    """Extract word tokens and alignment groups for one verse of an aligned USFM file."""
    content = Path(usfm_file).read_text(encoding="utf-8")
    found = find_verse(parse_verses(content), chapter, verse)
    if found is None:
        console.print(f"[red]Error: {chapter}:{verse} not found in {usfm_file}[/red]")
        sys.exit(1)

    result = extract_alignment(found.objects, found.reference)

    if output:
        Path(output).write_text(
            json.dumps(result.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        console.print(f"[green]✓ Alignment written to {output}[/green]")
        return

    console.print(Panel(result.text.strip(), title=result.verse_ref))

    table = Table(title="Alignment groups")
    table.add_column("Group", style="cyan")
    table.add_column("Source", style="magenta")
    table.add_column("Strong")
    table.add_column("Target words", style="green")
    for group in result.groups:
        words = " … ".join(i.text for i in group.instances)
        marker = " [yellow](split)[/yellow]" if group.is_non_contiguous else ""
        table.add_row(
            group.group_id.rsplit("-", 1)[-1],
            group.source_word,
            group.strong,
            words + marker,
        )
    console.print(table)

    unaligned = [t.text for t in result.tokens if t.is_highlightable and not t.alignment]
    if unaligned:
        console.print(f"[dim]Unaligned words: {', '.join(unaligned)}[/dim]")


@cli.group()
def token():
    """Manage the Door43 API token in the OS keychain."""
    pass


@token.command("set")
@click.option("--token", "value", prompt=True, hide_input=True, help="API token")
def token_set(value: str):
    """Store an API token for authenticated requests."""
    try:
        store_token(value)
    except KeyringError as e:
        console.print(f"[red]Error: could not store token: {e}[/red]")
        sys.exit(1)
    console.print("[green]✓ Token stored in keychain[/green]")


@token.command("show")
def token_show():
    """Show the configured token, masked."""
    value = get_stored_token()
    if not value:
        console.print("[yellow]No token configured; requests are anonymous[/yellow]")
        return
    console.print(f"Token: {_mask(value)}")


@token.command("clear")
def token_clear():
    """Remove the stored API token."""
    if delete_token():
        console.print("[green]✓ Token removed[/green]")
    else:
        console.print("[dim]No stored token[/dim]")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8000, help="Port to bind to")
def serve(host: str, port: int):
    """Start the API server."""
    import uvicorn

    console.print(f"[bold blue]Starting API server on {host}:{port}[/bold blue]")
    uvicorn.run("bookpackage.api.main:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    cli()
