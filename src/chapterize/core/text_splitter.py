"""Plain-text chapter segmentation.

Used when a book has no usable NCX. Strategies run in priority order and the
first one that succeeds wins:
1. page_break: split on form feed (calibre's --chapter-mark pagebreak)
2. star_separator: split on "* * *" lines (common in Project Gutenberg)
3. heading_pattern: split before "Chapter N" / "IV." / "12." style headings

If none succeeds, the whole text is a single chapter.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from chapterize.config.settings import ExtractionConfig
from chapterize.core.models import Chapter
from chapterize.core.title_detector import detect_chapter_title

logger = structlog.get_logger(__name__)

PAGE_BREAK = "\f"
STAR_SEPARATOR = re.compile(r"\n\s*\*\s*\*\s*\*\s*\n")

# Ordered from most to least specific
HEADING_PATTERNS = [
    # "Chapter 1" / "CHAPTER IV"
    (re.compile(r"^(Chapter|CHAPTER)\s+(\d+|[IVXLC]+)", re.MULTILINE), "chapter_word"),
    # "I. Title text"
    (re.compile(r"^([IVXLC]+)\.\s+[A-Z]", re.MULTILINE), "roman_dot"),
    # "1. Title text"
    (re.compile(r"^(\d+)\.\s+[A-Z]", re.MULTILINE), "number_dot"),
    # "IV." alone on its line
    (re.compile(r"^([IVXLC]+)\.\s*$", re.MULTILINE), "roman_line"),
    # "12." alone on its line
    (re.compile(r"^(\d+)\.\s*$", re.MULTILINE), "number_line"),
    # "Part 1" / "Part II"
    (re.compile(r"^Part\s+(\d+|[IVXLC]+)", re.MULTILINE), "part_word"),
]


@dataclass(frozen=True)
class SplitStrategy:
    """A named splitting function. Returns None when it does not apply."""

    name: str
    split: Callable[[str, ExtractionConfig], list[str] | None]


def split_by_page_break(content: str, config: ExtractionConfig) -> list[str] | None:
    parts = content.split(PAGE_BREAK)
    if len(parts) > 1:
        return parts
    return None


def split_by_star_separator(content: str, config: ExtractionConfig) -> list[str] | None:
    """Split on "* * *" lines, keeping only substantial parts."""
    parts = []
    for part in STAR_SEPARATOR.split(content):
        trimmed = part.strip()
        # Short parts are front matter, TOC pages and the like
        if len(trimmed) >= config.star_min_part_chars:
            parts.append(trimmed)

    if len(parts) >= config.star_min_parts:
        return parts
    return None


def split_by_heading_patterns(content: str, config: ExtractionConfig) -> list[str] | None:
    """Split before chapter headings, trying each pattern family in turn."""
    for pattern, pattern_type in HEADING_PATTERNS:
        starts = [match.start() for match in pattern.finditer(content)]
        if len(starts) < config.heading_min_matches:
            continue

        parts = []
        last_start = 0
        for i, start in enumerate(starts):
            # The span before the first heading is preamble (title page, TOC)
            if i > 0 and start > last_start:
                before = content[last_start:start].strip()
                if len(before) > config.heading_min_part_chars:
                    parts.append(before)
            last_start = start

        if last_start < len(content):
            remaining = content[last_start:].strip()
            if len(remaining) > config.heading_min_part_chars:
                parts.append(remaining)

        if len(parts) >= config.heading_min_parts:
            logger.debug(
                "text_splitter.heading_pattern_matched",
                pattern=pattern_type,
                matches=len(starts),
                parts=len(parts),
            )
            return parts

    return None


SPLIT_STRATEGIES = (
    SplitStrategy("page_break", split_by_page_break),
    SplitStrategy("star_separator", split_by_star_separator),
    SplitStrategy("heading_pattern", split_by_heading_patterns),
)


def split_into_parts(
    content: str,
    config: ExtractionConfig | None = None,
) -> tuple[list[str], str]:
    """Split text with the first strategy that succeeds.

    Returns:
        Tuple of (parts, strategy name). The name is "whole_text" when no
        strategy applied and the text is returned as one part.
    """
    config = config or ExtractionConfig()

    for strategy in SPLIT_STRATEGIES:
        parts = strategy.split(content, config)
        if parts is not None:
            logger.info("text_splitter.split", strategy=strategy.name, parts=len(parts))
            return parts, strategy.name

    logger.info("text_splitter.no_split", chars=len(content))
    return [content], "whole_text"


def split_into_chapters(
    content: str,
    config: ExtractionConfig | None = None,
) -> list[Chapter]:
    """Segment text into chapters with detected titles.

    Empty parts are dropped; indices are dense in part order.
    """
    config = config or ExtractionConfig()
    parts, _ = split_into_parts(content, config)

    chapters: list[Chapter] = []
    for part in parts:
        part = part.strip()
        if not part:
            continue

        index = len(chapters)
        title = detect_chapter_title(part, index + 1, config.title_scan_lines)
        chapters.append(Chapter(index=index, title=title, content=part))

    return chapters
