"""Pick chapter-like entries out of a flattened NCX.

Front and back matter (copyright pages, dedications, indexes, Project
Gutenberg boilerplate...) is dropped by substring match; what remains is kept
only if it carries a chapter signal.
"""

from __future__ import annotations

import re

import structlog

from chapterize.core.models import TocEntry

logger = structlog.get_logger(__name__)

# Lower-cased substrings that mark non-chapter entries
SKIP_PHRASES = (
    "transcriber",
    "note",
    "copyright",
    "dedication",
    "epigraph",
    "acknowledgment",
    "about the author",
    "about the book",
    "the full project gutenberg",
    "project gutenberg",
    "license",
    "the modern library",
    "footnotes",
    "endnotes",
    "index",
    "bibliography",
    "contents",
    "table of contents",
)

MIN_TITLE_LENGTH = 2
DESCRIPTIVE_TITLE_LENGTH = 20  # "HOW CANDIDE WAS BROUGHT UP IN A MAGNIFICENT CASTLE"

# "IV. The Storm", "3 Departure", "II Home"
NUMBERED_TITLE_PATTERN = re.compile(r"^\s*(I{1,3}|IV|V|VI{0,3}|IX|X{0,3}|[0-9]+)\s*\.?\s+\w")
CHAPTER_PREFIX_PATTERN = re.compile(r"^(chapter|part)\s+", re.IGNORECASE)


def is_skip_entry(title: str) -> bool:
    """Check if the title names front/back matter."""
    title_lower = title.lower()
    return any(phrase in title_lower for phrase in SKIP_PHRASES)


def is_chapter_entry(entry: TocEntry) -> bool:
    """Decide whether a TOC entry looks like a real chapter."""
    if is_skip_entry(entry.title):
        return False

    # Very short titles are usually navigation glyphs
    if len(entry.title) < MIN_TITLE_LENGTH:
        return False

    title_lower = entry.title.lower()
    if "chapter" in title_lower or "part" in title_lower:
        return True
    if NUMBERED_TITLE_PATTERN.match(entry.title):
        return True
    # Nested entries are usually the chapters inside a part/book
    if entry.level >= 2:
        return True
    if CHAPTER_PREFIX_PATTERN.match(entry.title):
        return True
    if len(entry.title) > DESCRIPTIVE_TITLE_LENGTH and " " in entry.title:
        return True

    return False


def filter_chapter_entries(entries: list[TocEntry]) -> list[TocEntry]:
    """Keep chapter-like entries, preserving their order."""
    chapters = [entry for entry in entries if is_chapter_entry(entry)]
    logger.debug(
        "chapter_filter.filtered",
        total=len(entries),
        kept=len(chapters),
        dropped=len(entries) - len(chapters),
    )
    return chapters
