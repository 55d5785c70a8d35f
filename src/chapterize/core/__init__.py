"""Core chapter extraction modules.

- ncx_parser: NCX parsing and pre-order flattening
- content_locator: fragment-bounded markup slices
- html_text: markup to plain text projection
- chapter_filter: chapter-like TOC entry selection
- text_splitter: plain-text segmentation strategies
- title_detector: chapter title inference
- opf_parser: OPF metadata, manifest and spine
- converter: ebook-convert and ebook-meta wrapper
- chapter_extractor: strategy orchestrator
"""

from chapterize.core.chapter_extractor import (
    extract_chapters,
    extract_chapters_from_text,
    get_book,
    get_toc,
    read_metadata,
)
from chapterize.core.models import (
    Book,
    Chapter,
    ContentRef,
    Deadline,
    ExtractionMethod,
    ExtractionResult,
    Metadata,
    TocEntry,
)

__all__ = [
    "extract_chapters",
    "extract_chapters_from_text",
    "get_book",
    "get_toc",
    "read_metadata",
    "Book",
    "Chapter",
    "ContentRef",
    "Deadline",
    "ExtractionMethod",
    "ExtractionResult",
    "Metadata",
    "TocEntry",
]
