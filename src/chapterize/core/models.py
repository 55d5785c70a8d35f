"""Data models for the chapter extraction pipeline.

- NavPoint / NavDocument: parsed NCX tree
- TocEntry: pre-order projection of a NavPoint
- ContentRef: (file_path, fragment) pair taken from an href
- Chapter: immutable extracted chapter
- Deadline: caller-supplied cancellation signal checked between stages
- Metadata / Book: OPF metadata and the combined book view
"""

from __future__ import annotations

import posixpath
import time
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import unquote

from chapterize.exceptions import ExtractionTimeoutError

# Characters that separate words for Chapter.word_count
WORD_SEPARATORS = frozenset(" \t\n\r")


class ExtractionMethod(str, Enum):
    """Strategy that produced a set of chapters."""

    ORIGINAL_NCX = "original_ncx"
    CONVERTED_NCX = "converted_ncx"
    TEXT_SPLIT = "text_split"


@dataclass
class NavPoint:
    """Single NCX navigation point with its nested children."""

    label: str
    src: str
    play_order: int = 0
    id: str = ""
    children: list[NavPoint] = field(default_factory=list)


@dataclass
class NavDocument:
    """Parsed NCX document."""

    title: str
    nav_points: list[NavPoint] = field(default_factory=list)


@dataclass(frozen=True)
class TocEntry:
    """Flattened table of contents entry.

    `order` is the NCX playOrder. It is informational only; list position is
    the reading order.
    """

    title: str
    level: int
    href: str
    order: int = 0


def normalize_path(path: str) -> str:
    """Normalize an archive-relative path for comparison."""
    path = unquote(path).replace("\\", "/").strip()
    if not path:
        return ""
    path = posixpath.normpath(path)
    if path == ".":
        return ""
    return path.lstrip("/")


def paths_match(a: str, b: str) -> bool:
    """Check whether two normalized paths name the same file.

    Equal paths match, and so does a path that ends with the other one at a
    directory boundary (e.g. "OEBPS/text/ch1.xhtml" and "text/ch1.xhtml").
    """
    if a == b:
        return True
    if not a or not b:
        return False
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    return longer.endswith("/" + shorter)


@dataclass(frozen=True)
class ContentRef:
    """Reference to a content file plus an optional fragment identifier."""

    file_path: str
    fragment: str = ""

    @classmethod
    def parse(cls, href: str) -> ContentRef:
        """Split an href on its first '#'."""
        file_part, _, fragment = href.partition("#")
        return cls(file_path=normalize_path(file_part), fragment=fragment.strip())

    def same_file(self, other: ContentRef) -> bool:
        """True when both references point into the same content file.

        An empty path refers to the current document, so it matches anything.
        """
        if not self.file_path or not other.file_path:
            return True
        return paths_match(self.file_path, other.file_path)


def count_words(text: str) -> int:
    """Count runs of non-whitespace characters."""
    count = 0
    in_word = False
    for char in text:
        if char in WORD_SEPARATORS:
            in_word = False
        elif not in_word:
            in_word = True
            count += 1
    return count


@dataclass(frozen=True)
class Chapter:
    """Extracted chapter. Counts are derived from `content`."""

    index: int
    title: str
    content: str
    html_content: str | None = None
    word_count: int = field(init=False)
    char_count: int = field(init=False)

    def __post_init__(self) -> None:
        if not self.title.strip():
            object.__setattr__(self, "title", f"Chapter {self.index + 1}")
        object.__setattr__(self, "word_count", count_words(self.content))
        object.__setattr__(self, "char_count", len(self.content))

    @property
    def is_empty(self) -> bool:
        return not self.content

    def summary(self, max_len: int = 200) -> str:
        """Return a preview of the content, cut at a word boundary if possible."""
        if len(self.content) <= max_len:
            return self.content

        text = self.content[:max_len]
        for i in range(len(text) - 1, max(max_len - 20, 0), -1):
            if text[i] == " ":
                return text[:i] + "..."
        return text + "..."

    def to_dict(self, include_content: bool = True) -> dict:
        data = {
            "index": self.index,
            "title": self.title,
            "word_count": self.word_count,
            "char_count": self.char_count,
        }
        if include_content:
            data["content"] = self.content
            if self.html_content is not None:
                data["html_content"] = self.html_content
        return data


@dataclass
class Deadline:
    """Cancellation signal based on a monotonic-clock expiry time.

    A Deadline with `expires_at=None` never expires.
    """

    expires_at: float | None = None

    @classmethod
    def after(cls, seconds: float | None) -> Deadline:
        if seconds is None:
            return cls()
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float | None:
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self, stage: str) -> None:
        """Raise ExtractionTimeoutError if the deadline has passed."""
        if self.expired:
            raise ExtractionTimeoutError(stage)


@dataclass
class Metadata:
    """Book metadata as read from an OPF package document."""

    title: str = ""
    authors: list[str] = field(default_factory=list)
    author_sort: str = ""
    publisher: str = ""
    publish_date: str = ""  # ISO date, empty when missing or unparseable
    language: str = ""
    isbn: str = ""
    identifiers: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    series: str = ""
    series_index: float = 0.0
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "authors": list(self.authors),
            "author_sort": self.author_sort,
            "publisher": self.publisher,
            "publish_date": self.publish_date,
            "language": self.language,
            "isbn": self.isbn,
            "identifiers": dict(self.identifiers),
            "tags": list(self.tags),
            "series": self.series,
            "series_index": self.series_index,
            "description": self.description,
        }


@dataclass
class Book:
    """An ebook file with its metadata and extracted chapters."""

    file_path: str
    format: str
    metadata: Metadata = field(default_factory=Metadata)
    chapters: list[Chapter] = field(default_factory=list)
    toc: list[TocEntry] = field(default_factory=list)
    method: ExtractionMethod | None = None
    cover_path: str | None = None

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def primary_author(self) -> str:
        """First listed author, or an empty string."""
        return self.metadata.authors[0] if self.metadata.authors else ""

    @property
    def has_chapters(self) -> bool:
        return bool(self.chapters)

    @property
    def chapter_count(self) -> int:
        return len(self.chapters)

    def to_dict(self, include_content: bool = False) -> dict:
        return {
            "file_path": self.file_path,
            "format": self.format,
            "metadata": self.metadata.to_dict(),
            "method": self.method.value if self.method else None,
            "cover_path": self.cover_path,
            "chapters": [c.to_dict(include_content) for c in self.chapters],
        }


@dataclass
class ExtractionResult:
    """Result of chapter extraction."""

    chapters: list[Chapter]
    method: ExtractionMethod
    source: str = ""
    toc: list[TocEntry] = field(default_factory=list)
    attempts: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total_words(self) -> int:
        return sum(c.word_count for c in self.chapters)
