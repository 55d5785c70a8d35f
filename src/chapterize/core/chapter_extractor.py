"""Chapter extraction orchestrator.

Strategies (tried in order, first confident result wins):
1. original_ncx: the book's own NCX, filtered to chapter-like entries and
   sliced between fragment anchors -> needs >= min_original_chapters
2. converted_ncx: NCX generated by ebook-convert from h1/h2/h3 headings
   -> needs >= 1 chapter
3. text_split: plain text (ebook-convert, .txt source, or the EPUB's own
   documents joined by page breaks) segmented by text_splitter
   -> needs >= 1 chapter

Parse, not-found, conversion and insufficient-data errors move on to the next
strategy. The caller's Deadline is checked between stages.

get_book wraps the result with book metadata, read by ebook-meta or, for
EPUBs, from the package document itself.
"""

from __future__ import annotations

import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from chapterize.config.settings import ExtractionConfig, Settings, load_settings
from chapterize.core.chapter_filter import filter_chapter_entries
from chapterize.core.content_locator import locate_chapter_html
from chapterize.core.converter import CalibreConverter, is_supported_format
from chapterize.core.epub_archive import EpubArchive, read_package
from chapterize.core.html_text import html_to_text
from chapterize.core.models import (
    Book,
    Chapter,
    Deadline,
    ExtractionMethod,
    ExtractionResult,
    Metadata,
    TocEntry,
    count_words,
)
from chapterize.core.ncx_parser import read_toc
from chapterize.core.text_splitter import PAGE_BREAK, split_into_chapters
from chapterize.exceptions import (
    ConversionError,
    CoverNotFoundError,
    InsufficientDataError,
    InvalidEpubError,
    NotFoundError,
    ParseError,
)

logger = structlog.get_logger(__name__)

# Errors that mean "try the next strategy"
FALLBACK_ERRORS = (
    ParseError,
    NotFoundError,
    InsufficientDataError,
    InvalidEpubError,
    ConversionError,
)


@dataclass
class ExtractionContext:
    """Per-call state shared by the strategies."""

    source: Path
    settings: Settings
    converter: CalibreConverter | None
    deadline: Deadline
    work_dir: Path

    @property
    def config(self) -> ExtractionConfig:
        return self.settings.extraction

    @property
    def is_epub(self) -> bool:
        return self.source.suffix.lower() == ".epub"

    @property
    def can_convert(self) -> bool:
        return (
            self.converter is not None
            and self.converter.available
            and is_supported_format(self.source)
        )

    def conversion_timeout(self) -> float:
        limit = self.settings.calibre.timeout_seconds
        remaining = self.deadline.remaining()
        return limit if remaining is None else min(limit, remaining)


@dataclass(frozen=True)
class ExtractionStrategy:
    """One row of the strategy table."""

    method: ExtractionMethod
    applies: Callable[[ExtractionContext], bool]
    run: Callable[[ExtractionContext], tuple[list[Chapter], list[TocEntry]]]
    min_chapters: Callable[[ExtractionConfig], int] = field(default=lambda config: 1)


# =============================================================================
# NCX-based assembly
# =============================================================================


def assemble_chapters(
    archive: EpubArchive,
    entries: list[TocEntry],
    base_dir: str = "",
    config: ExtractionConfig | None = None,
    bounded: bool = True,
    min_words: int = 0,
) -> list[Chapter]:
    """Build chapters from TOC entries.

    Args:
        archive: EPUB entries
        entries: Entries to turn into chapters, in reading order
        base_dir: Directory the hrefs are relative to
        config: Extraction settings (keep_html)
        bounded: End each slice at the next entry's fragment anchor
        min_words: Drop chapters with fewer words (navigation stubs)

    Returns:
        Chapters with dense indices. Entries whose content cannot be found
        are skipped.
    """
    config = config or ExtractionConfig()
    chapters: list[Chapter] = []

    for i, entry in enumerate(entries):
        next_href = None
        if bounded and i + 1 < len(entries):
            next_href = entries[i + 1].href

        try:
            html = locate_chapter_html(archive, entry.href, next_href, base_dir)
        except NotFoundError as e:
            logger.debug("chapter_extractor.entry_skipped", title=entry.title, reason=str(e))
            continue

        text = html_to_text(html)
        if count_words(text) < min_words:
            logger.debug(
                "chapter_extractor.entry_too_short",
                title=entry.title,
                words=count_words(text),
            )
            continue

        chapters.append(
            Chapter(
                index=len(chapters),
                title=entry.title or f"Chapter {i + 1}",
                content=text,
                html_content=html if config.keep_html else None,
            )
        )

    return chapters


def chapters_from_ncx(
    archive: EpubArchive,
    config: ExtractionConfig | None = None,
) -> tuple[list[Chapter], list[TocEntry]]:
    """Extract chapters from an archive's original NCX.

    Raises:
        NcxNotFoundError / NcxParseError: No usable NCX
        InsufficientDataError: No chapter-like entry or no content extracted
    """
    config = config or ExtractionConfig()
    entries, base_dir = read_toc(archive)
    if not entries:
        raise InsufficientDataError("El NCX no tiene entradas")

    chapter_entries = filter_chapter_entries(entries)
    if not chapter_entries:
        raise InsufficientDataError("El NCX no tiene entradas de capítulo", found=0)

    chapters = assemble_chapters(
        archive,
        chapter_entries,
        base_dir,
        config,
        bounded=True,
        min_words=config.min_chapter_words,
    )
    if not chapters:
        raise InsufficientDataError("No se pudo extraer contenido de ningún capítulo")
    return chapters, entries


def chapters_from_generated_ncx(
    archive: EpubArchive,
    config: ExtractionConfig | None = None,
) -> tuple[list[Chapter], list[TocEntry]]:
    """Extract chapters from a converter-generated NCX: every entry, whole files."""
    config = config or ExtractionConfig()
    entries, base_dir = read_toc(archive)
    if not entries:
        raise InsufficientDataError("El NCX generado no tiene entradas")

    chapters = assemble_chapters(archive, entries, base_dir, config, bounded=False)
    if not chapters:
        raise InsufficientDataError("No se pudo extraer contenido de ningún capítulo")
    return chapters, entries


def archive_text(archive: EpubArchive) -> str:
    """Plain text of every content document, separated by page breaks."""
    texts = []
    for name in archive.documents():
        text = html_to_text(archive.read(name))
        if text:
            texts.append(text)
    return PAGE_BREAK.join(texts)


def extract_chapters_from_text(
    content: str,
    config: ExtractionConfig | None = None,
) -> list[Chapter]:
    """Segment plain text into titled chapters."""
    return split_into_chapters(content, config)


# =============================================================================
# Strategies
# =============================================================================


def _run_original_ncx(ctx: ExtractionContext) -> tuple[list[Chapter], list[TocEntry]]:
    archive = EpubArchive.open(ctx.source)
    ctx.deadline.check("original_ncx.chapters")
    return chapters_from_ncx(archive, ctx.config)


def _run_converted_ncx(ctx: ExtractionContext) -> tuple[list[Chapter], list[TocEntry]]:
    output = ctx.work_dir / "book.epub"
    ctx.converter.to_epub(ctx.source, output, timeout=ctx.conversion_timeout())
    ctx.deadline.check("converted_ncx.parse")
    archive = EpubArchive.open(output)
    return chapters_from_generated_ncx(archive, ctx.config)


def _read_source_text(ctx: ExtractionContext) -> str:
    if ctx.source.suffix.lower() == ".txt":
        return ctx.source.read_text(encoding="utf-8", errors="replace")

    if ctx.can_convert:
        output = ctx.work_dir / "book.txt"
        try:
            ctx.converter.to_text(ctx.source, output, timeout=ctx.conversion_timeout())
            return output.read_text(encoding="utf-8", errors="replace")
        except ConversionError as e:
            if not ctx.is_epub:
                raise
            logger.warning("chapter_extractor.text_conversion_failed", error=str(e))

    if ctx.is_epub:
        return archive_text(EpubArchive.open(ctx.source))

    raise ConversionError(
        f"No hay conversor disponible para {ctx.source.suffix or 'el archivo'}"
    )


def _run_text_split(ctx: ExtractionContext) -> tuple[list[Chapter], list[TocEntry]]:
    text = _read_source_text(ctx)
    ctx.deadline.check("text_split.segment")
    return split_into_chapters(text, ctx.config), []


STRATEGIES = (
    ExtractionStrategy(
        method=ExtractionMethod.ORIGINAL_NCX,
        applies=lambda ctx: ctx.is_epub,
        run=_run_original_ncx,
        min_chapters=lambda config: config.min_original_chapters,
    ),
    ExtractionStrategy(
        method=ExtractionMethod.CONVERTED_NCX,
        applies=lambda ctx: ctx.can_convert,
        run=_run_converted_ncx,
    ),
    ExtractionStrategy(
        method=ExtractionMethod.TEXT_SPLIT,
        applies=lambda ctx: True,
        run=_run_text_split,
    ),
)


def run_strategies(
    ctx: ExtractionContext,
    strategies: tuple[ExtractionStrategy, ...] = STRATEGIES,
) -> ExtractionResult:
    """Evaluate the strategy table left to right.

    Raises:
        InsufficientDataError: If no strategy produced enough chapters
        ExtractionTimeoutError: If the deadline expires between stages
    """
    attempts: list[tuple[str, str]] = []

    for strategy in strategies:
        name = strategy.method.value
        ctx.deadline.check(name)

        if not strategy.applies(ctx):
            logger.debug("chapter_extractor.strategy_skipped", strategy=name)
            continue

        try:
            chapters, toc = strategy.run(ctx)
            required = strategy.min_chapters(ctx.config)
            if len(chapters) < required:
                raise InsufficientDataError(
                    f"{name}: {len(chapters)} capítulos (mínimo {required})",
                    found=len(chapters),
                    required=required,
                )
        except FALLBACK_ERRORS as e:
            logger.info("chapter_extractor.strategy_failed", strategy=name, error=str(e))
            attempts.append((name, str(e)))
            continue

        logger.info(
            "chapter_extractor.done",
            source=ctx.source.name,
            strategy=name,
            chapters=len(chapters),
        )
        return ExtractionResult(
            chapters=chapters,
            method=strategy.method,
            source=str(ctx.source),
            toc=toc,
            attempts=attempts,
        )

    detail = "; ".join(f"{name}: {error}" for name, error in attempts)
    raise InsufficientDataError(f"Ningún método extrajo capítulos ({detail})")


def extract_chapters(
    path: Path,
    settings: Settings | None = None,
    converter: CalibreConverter | None = None,
    deadline: Deadline | None = None,
    use_converter: bool = True,
) -> ExtractionResult:
    """Extract chapters from an ebook.

    Args:
        path: Ebook file (EPUB, or anything ebook-convert reads)
        settings: Settings (defaults to load_settings())
        converter: ebook-convert wrapper (created from settings if None)
        deadline: Cancellation signal checked between stages
        use_converter: If False, never call ebook-convert

    Returns:
        ExtractionResult with chapters and the winning method

    Raises:
        FileNotFoundError: If `path` does not exist
        InsufficientDataError: If no strategy produced chapters
        ExtractionTimeoutError: If the deadline expired
    """
    if not path.exists():
        raise FileNotFoundError(f"Archivo no encontrado: {path}")

    settings = settings or load_settings()
    if not use_converter:
        converter = None
    elif converter is None:
        converter = CalibreConverter(settings.calibre)

    logger.info(
        "chapter_extractor.start",
        source=path.name,
        converter=bool(converter and converter.available),
    )

    with tempfile.TemporaryDirectory(prefix="chapterize-") as tmp_dir:
        ctx = ExtractionContext(
            source=path,
            settings=settings,
            converter=converter,
            deadline=deadline or Deadline(),
            work_dir=Path(tmp_dir),
        )
        return run_strategies(ctx)


def get_toc(
    path: Path,
    settings: Settings | None = None,
    converter: CalibreConverter | None = None,
    deadline: Deadline | None = None,
) -> list[TocEntry]:
    """Build a one-level table of contents from the extracted chapter titles."""
    result = extract_chapters(path, settings, converter, deadline)
    return [
        TocEntry(title=chapter.title, level=1, href="", order=chapter.index + 1)
        for chapter in result.chapters
    ]


# =============================================================================
# Book-level view
# =============================================================================


def read_metadata(path: Path, converter: CalibreConverter | None = None) -> Metadata:
    """Read book metadata: ebook-meta first, then the EPUB's own OPF.

    Never fails; without either source the title is the file stem.
    """
    metadata = None
    if converter is not None and converter.meta_available:
        try:
            metadata = converter.metadata(path)
        except (ConversionError, ParseError) as e:
            logger.warning("chapter_extractor.metadata_failed", source=path.name, error=str(e))

    if metadata is None and path.suffix.lower() == ".epub":
        try:
            metadata = read_package(path).metadata
        except (InvalidEpubError, ParseError) as e:
            logger.warning("chapter_extractor.opf_failed", source=path.name, error=str(e))

    metadata = metadata or Metadata()
    if not metadata.title:
        metadata.title = path.stem
    return metadata


def get_book(
    path: Path,
    settings: Settings | None = None,
    converter: CalibreConverter | None = None,
    deadline: Deadline | None = None,
    use_converter: bool = True,
    cover_output: Path | None = None,
) -> Book:
    """Build the combined view of an ebook: metadata plus extracted chapters.

    Args:
        path: Ebook file
        settings: Settings (defaults to load_settings())
        converter: calibre wrapper (created from settings if None)
        deadline: Cancellation signal checked between stages
        use_converter: If False, never call calibre
        cover_output: If set, extract the cover image to this path

    Raises:
        FileNotFoundError: If `path` does not exist
        InsufficientDataError: If no strategy produced chapters
        ExtractionTimeoutError: If the deadline expired
    """
    if not path.exists():
        raise FileNotFoundError(f"Archivo no encontrado: {path}")

    settings = settings or load_settings()
    if not use_converter:
        converter = None
    elif converter is None:
        converter = CalibreConverter(settings.calibre)

    metadata = read_metadata(path, converter)
    result = extract_chapters(path, settings, converter, deadline, use_converter)

    cover_path = None
    if cover_output is not None and converter is not None and converter.meta_available:
        try:
            cover_path = str(converter.extract_cover(path, cover_output))
        except (ConversionError, CoverNotFoundError) as e:
            logger.warning("chapter_extractor.cover_failed", source=path.name, error=str(e))

    return Book(
        file_path=str(path),
        format=path.suffix.lower().lstrip("."),
        metadata=metadata,
        chapters=result.chapters,
        toc=result.toc,
        method=result.method,
        cover_path=cover_path,
    )
