"""CLI commands for chapterize.

Commands:
- chapters: Extract chapters from an ebook
- toc: Show the flattened NCX of an EPUB
- split: Segment a plain-text file into chapters
- metadata: Show book metadata and optionally extract the cover
- calibre: Report calibre tool availability
"""

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from chapterize.config.settings import load_settings
from chapterize.core.chapter_extractor import extract_chapters, extract_chapters_from_text
from chapterize.core.converter import CalibreConverter
from chapterize.core.epub_archive import EpubArchive, read_package
from chapterize.core.models import Chapter, Deadline, Metadata
from chapterize.core.ncx_parser import read_toc
from chapterize.exceptions import ChapterizeError

app = typer.Typer(
    name="chapterize",
    help="Extract titled chapters from ebooks.",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show pipeline logs"),
) -> None:
    """Extract titled chapters from ebooks."""
    # Logs go to stderr so --json output stays parseable
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _resolve_file_or_exit(file: str) -> Path:
    path = Path(file).expanduser().resolve()
    if not path.exists():
        console.print(f"[red]✗ Archivo no encontrado: {path}[/red]")
        raise typer.Exit(code=1)
    return path


def _load_settings_or_exit(config: str | None):
    try:
        return load_settings(Path(config) if config else None)
    except (ValueError, TypeError) as e:
        console.print(f"[red]✗ Configuración inválida: {e}[/red]")
        raise typer.Exit(code=1)


def _print_chapters(chapters: list[Chapter], preview: int) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Título")
    table.add_column("Palabras", justify="right")
    if preview:
        table.add_column("Vista previa", style="dim")

    for chapter in chapters:
        row = [str(chapter.index + 1), chapter.title, f"{chapter.word_count:,}"]
        if preview:
            row.append(chapter.summary(preview).replace("\n", " "))
        table.add_row(*row)

    console.print(table)


def _print_metadata(meta: Metadata) -> None:
    table = Table(show_header=False, box=None)
    table.add_column(style="dim")
    table.add_column()

    rows = [
        ("Título", meta.title),
        ("Autores", ", ".join(meta.authors)),
        ("Editorial", meta.publisher),
        ("Fecha", meta.publish_date),
        ("Idioma", meta.language),
        ("ISBN", meta.isbn),
        ("Serie", f"{meta.series} #{meta.series_index:g}" if meta.series else ""),
        ("Etiquetas", ", ".join(meta.tags)),
    ]
    for label, value in rows:
        if value:
            table.add_row(label, value)

    console.print(table)


def _dump_json(chapters: list[Chapter], **extra) -> None:
    payload = {**extra, "chapters": [c.to_dict() for c in chapters]}
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.command()
def chapters(
    file: str = typer.Argument(..., help="Path to the ebook (EPUB, MOBI, PDF, TXT...)"),
    as_json: bool = typer.Option(False, "--json", help="Print chapters as JSON"),
    preview: int = typer.Option(0, "--preview", "-p", help="Show N characters of each chapter"),
    keep_html: bool = typer.Option(False, "--keep-html", help="Keep raw HTML slices (JSON output)"),
    no_convert: bool = typer.Option(False, "--no-convert", help="Never call ebook-convert"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Overall time limit in seconds"),
    config: str | None = typer.Option(None, "--config", "-c", help="YAML settings file"),
) -> None:
    """Extract chapters from an ebook."""
    path = _resolve_file_or_exit(file)
    settings = _load_settings_or_exit(config)
    if keep_html:
        settings = replace(settings, extraction=replace(settings.extraction, keep_html=True))

    try:
        result = extract_chapters(
            path,
            settings=settings,
            deadline=Deadline.after(timeout),
            use_converter=not no_convert,
        )
    except ChapterizeError as e:
        console.print(f"[red]✗ Error de extracción: {e}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        _dump_json(result.chapters, source=path.name, method=result.method.value)
        return

    console.print(
        f"[green]✓ {len(result.chapters)} capítulos extraídos[/green] "
        f"[dim]({result.method.value}, {result.total_words:,} palabras)[/dim]"
    )
    for name, error in result.attempts:
        console.print(f"  [yellow]⚠ {name}: {error}[/yellow]")
    _print_chapters(result.chapters, preview)


@app.command()
def toc(
    file: str = typer.Argument(..., help="Path to an EPUB file"),
    as_json: bool = typer.Option(False, "--json", help="Print entries as JSON"),
) -> None:
    """Show the table of contents stored in an EPUB's NCX."""
    path = _resolve_file_or_exit(file)

    try:
        entries, _ = read_toc(EpubArchive.open(path))
    except ChapterizeError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        data = [
            {"title": e.title, "level": e.level, "href": e.href, "order": e.order}
            for e in entries
        ]
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    console.print(f"[green]✓ TOC con {len(entries)} entradas[/green]")
    for entry in entries:
        indent = "  " * (entry.level - 1)
        console.print(f"{indent}{entry.title} [dim]{entry.href}[/dim]")


@app.command()
def split(
    file: str = typer.Argument(..., help="Path to a plain-text file"),
    as_json: bool = typer.Option(False, "--json", help="Print chapters as JSON"),
    preview: int = typer.Option(0, "--preview", "-p", help="Show N characters of each chapter"),
    config: str | None = typer.Option(None, "--config", "-c", help="YAML settings file"),
) -> None:
    """Segment a plain-text file into chapters."""
    path = _resolve_file_or_exit(file)
    settings = _load_settings_or_exit(config)

    text = path.read_text(encoding="utf-8", errors="replace")
    result = extract_chapters_from_text(text, settings.extraction)

    if as_json:
        _dump_json(result, source=path.name, method="text_split")
        return

    console.print(f"[green]✓ {len(result)} capítulos[/green]")
    _print_chapters(result, preview)


@app.command()
def metadata(
    file: str = typer.Argument(..., help="Path to the ebook"),
    as_json: bool = typer.Option(False, "--json", help="Print metadata as JSON"),
    cover: str | None = typer.Option(None, "--cover", help="Write the cover image to this path"),
    config: str | None = typer.Option(None, "--config", "-c", help="YAML settings file"),
) -> None:
    """Show book metadata (ebook-meta, or the OPF of an EPUB)."""
    path = _resolve_file_or_exit(file)
    settings = _load_settings_or_exit(config)
    converter = CalibreConverter(settings.calibre)

    if not converter.meta_available and (cover or path.suffix.lower() != ".epub"):
        console.print("[red]✗ ebook-meta no encontrado (brew install calibre)[/red]")
        raise typer.Exit(code=1)

    try:
        if converter.meta_available:
            meta = converter.metadata(path)
        else:
            meta = read_package(path).metadata
        cover_path = converter.extract_cover(path, Path(cover)) if cover else None
    except ChapterizeError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    if as_json:
        data = {"source": path.name, **meta.to_dict()}
        if cover_path:
            data["cover_path"] = str(cover_path)
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    _print_metadata(meta)
    if cover_path:
        console.print(f"[green]✓ Portada guardada en {cover_path}[/green]")


@app.command()
def calibre(
    config: str | None = typer.Option(None, "--config", "-c", help="YAML settings file"),
) -> None:
    """Check whether calibre's ebook-convert is installed."""
    settings = _load_settings_or_exit(config)
    converter = CalibreConverter(settings.calibre)

    if not converter.available:
        console.print("[yellow]⚠ ebook-convert no encontrado (brew install calibre)[/yellow]")
        raise typer.Exit(code=1)

    try:
        version = converter.version()
    except ChapterizeError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ calibre {version}[/green]")
    console.print(f"  [dim]path:[/dim] {converter.executable}")
    if converter.meta_available:
        console.print(f"  [dim]ebook-meta:[/dim] {converter.meta_executable}")
    else:
        console.print("  [yellow]⚠ ebook-meta no encontrado[/yellow]")


if __name__ == "__main__":
    app()
