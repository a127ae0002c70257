"""CLI entry point for SocraticReader."""

from pathlib import Path
from typing import Optional

import click


@click.group(invoke_without_command=True)
@click.pass_context
def main(ctx: click.Context) -> None:
    """SocraticReader: a reading companion that checks in when you get stuck."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(read)


@main.command()
@click.argument("path", required=False, type=click.Path(exists=True, dir_okay=False, path_type=Path))
def read(path: Optional[Path] = None) -> None:
    """Open a document in the terminal reader (demo article by default)."""
    from socraticreader.app.main_app import SocraticReaderApp

    app = SocraticReaderApp(document_path=path)
    app.run()


@main.command()
@click.option("--manual-ticks", is_flag=True, help="Only advance dwell time on tick requests")
def serve(manual_ticks: bool) -> None:
    """Run the JSON-lines bridge on stdin/stdout."""
    import asyncio

    from socraticreader.server.__main__ import main as serve_main

    asyncio.run(serve_main(manual_ticks=manual_ticks))


@main.command()
def documents() -> None:
    """List bundled documents."""
    from socraticreader.documents.registry import DocumentLibrary

    library = DocumentLibrary()
    for document in library.list_documents():
        click.echo(f"  {document.id}: {document.title} ({len(document.units)} units)")


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(path: Path) -> None:
    """Show word counts and expected dwell times for a document."""
    from socraticreader.config.settings import Settings
    from socraticreader.engine.document_loader import DocumentError, load_document
    from socraticreader.engine.stat_store import StatStore

    try:
        document = load_document(path)
    except DocumentError as e:
        raise click.ClickException(str(e)) from e

    tracker = Settings.load().tracker
    store = StatStore(
        document.units,
        reading_rate_wpm=tracker.reading_rate_wpm,
        slack_factor=tracker.slack_factor,
    )
    click.echo(f"{document.title} ({len(document.units)} units)")
    for stats in store.snapshot().values():
        click.echo(
            f"  {stats.id}: {stats.word_count} words, "
            f"stuck after {stats.expected_dwell_seconds:.1f}s"
        )
