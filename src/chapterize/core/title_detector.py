"""Chapter title detection from the first lines of a chapter's text.

Used when a chapter comes from plain-text segmentation and has no TOC label.
Handles Project Gutenberg layouts ("IV" on one line, "THE LONG NIGHT" on the
next), "Chapter N" headings and numbered headings ("3. The Harbour").
"""

from __future__ import annotations

import re

DEFAULT_SCAN_LINES = 5
MAX_CHAPTER_LINE_LENGTH = 80  # "Chapter N ..." lines longer than this are prose
SUBTITLE_MIN_LENGTH = 6
SUBTITLE_MAX_LENGTH = 99
TITLE_MIN_LENGTH = 4
TITLE_MAX_LENGTH = 59
UPPERCASE_TITLE_MIN_LENGTH = 11  # shorter all-caps lines are kept as-is

ROMAN_LINE = re.compile(r"^[IVXLC]+$")
CHAPTER_LINE = re.compile(r"^(Chapter|CHAPTER)\s+(\d+|[IVXLC]+)")
ROMAN_DOT_TITLE = re.compile(r"^([IVXLC]+)\.\s+(.+)$")
ROMAN_NUMBER = re.compile(r"^[IVXLC]+\.?$")
ARABIC_NUMBER = re.compile(r"^\d+\.?$")


def title_case(text: str) -> str:
    """Title-case all-caps text; leave anything else unchanged."""
    if text == text.upper() and len(text) >= UPPERCASE_TITLE_MIN_LENGTH:
        words = text.lower().split()
        return " ".join(word[:1].upper() + word[1:] for word in words)
    return text


def format_chapter_title(title: str) -> str:
    """Normalize "IV" / "IV." / "12" / "12." to "Chapter IV" / "Chapter 12"."""
    title = title.strip()
    title = title.removesuffix(".")

    if ROMAN_LINE.match(title) or title.isdigit():
        return f"Chapter {title}"
    return title


def _first_lines(text: str, limit: int) -> list[str]:
    lines = []
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        lines.append(line)
        if len(lines) >= limit:
            break
    return lines


def detect_chapter_title(
    text: str,
    fallback_number: int,
    max_lines: int = DEFAULT_SCAN_LINES,
) -> str:
    """Infer a chapter title from the start of its text.

    Args:
        text: Chapter plain text
        fallback_number: Used for "Chapter {n}" when nothing better is found
        max_lines: How many non-empty lines to inspect

    Returns:
        A non-empty title
    """
    lines = _first_lines(text, max_lines)
    if not lines:
        return f"Chapter {fallback_number}"

    first = lines[0]

    # Gutenberg style: numeral alone, title on the next line
    if len(lines) >= 2 and ROMAN_LINE.match(first):
        subtitle = lines[1]
        if SUBTITLE_MIN_LENGTH <= len(subtitle) <= SUBTITLE_MAX_LENGTH:
            return f"Chapter {first}: {title_case(subtitle)}"
        return f"Chapter {first}"

    if CHAPTER_LINE.match(first) and len(first) < MAX_CHAPTER_LINE_LENGTH:
        return first

    match = ROMAN_DOT_TITLE.match(first)
    if match:
        return f"Chapter {match.group(1)}: {title_case(match.group(2))}"

    if ROMAN_NUMBER.match(first) or ARABIC_NUMBER.match(first):
        return format_chapter_title(first)

    if TITLE_MIN_LENGTH <= len(first) <= TITLE_MAX_LENGTH:
        return title_case(first)

    return f"Chapter {fallback_number}"
