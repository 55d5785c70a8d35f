"""Locate the markup that belongs to a TOC entry.

Given the href of an entry (and optionally the href of the following entry),
returns the slice of the content file between the two fragment anchors.
Consecutive entries in the same file get adjacent, non-overlapping slices;
entries in different files get whole-file slices.
"""

from __future__ import annotations

import posixpath
import re

import structlog

from chapterize.core.epub_archive import EpubArchive
from chapterize.core.models import ContentRef
from chapterize.exceptions import ContentNotFoundError

logger = structlog.get_logger(__name__)


def _anchor_pattern(fragment: str) -> re.Pattern[str]:
    """Match id="frag", id='frag', name="frag" or name='frag'."""
    return re.compile(
        r"(?<![\w:-])(?:id|name)\s*=\s*([\"'])" + re.escape(fragment) + r"\1"
    )


def find_anchor(markup: str, fragment: str, start: int = 0) -> int:
    """Offset of the tag carrying the given id/name, or -1.

    The returned offset is the '<' that opens the element, so slices start on
    a tag boundary.
    """
    match = _anchor_pattern(fragment).search(markup, start)
    if match is None:
        return -1
    tag_start = markup.rfind("<", 0, match.start())
    return tag_start if tag_start != -1 else match.start()


def extract_fragment(markup: str, start_fragment: str, end_fragment: str = "") -> str:
    """Cut `markup` between two fragment anchors.

    Falls back to the whole document when the start anchor is missing, and to
    end-of-document when the end anchor is missing or absent.
    """
    if not start_fragment:
        return markup

    start_idx = find_anchor(markup, start_fragment)
    if start_idx == -1:
        logger.debug("content_locator.fragment_missing", fragment=start_fragment)
        return markup

    end_idx = len(markup)
    if end_fragment:
        # Search strictly after the start anchor's opening '<'
        found = find_anchor(markup, end_fragment, start_idx + 1)
        if found > start_idx:
            end_idx = found

    return markup[start_idx:end_idx]


def resolve_href(href: str, base_dir: str = "") -> ContentRef:
    """Parse an href relative to the directory of the navigation document."""
    ref = ContentRef.parse(href)
    if base_dir and ref.file_path:
        ref = ContentRef.parse(posixpath.join(base_dir, href))
    return ref


def _find_file(archive: EpubArchive, ref: ContentRef, href: str) -> str:
    name = archive.find(ref.file_path)
    if name is None:
        # Hrefs are sometimes relative to the archive root instead of the NCX
        name = archive.find(ContentRef.parse(href).file_path)
    if name is None:
        raise ContentNotFoundError(ref.file_path or href)
    return name


def decode_markup(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def locate_chapter_html(
    archive: EpubArchive,
    href: str,
    next_href: str | None = None,
    base_dir: str = "",
) -> str:
    """Return the raw markup of the chapter that `href` points to.

    Args:
        archive: EPUB entries
        href: Entry reference ("text/ch1.xhtml#sec2")
        next_href: Reference of the following chapter, used as end bound
        base_dir: Directory the hrefs are relative to

    Returns:
        Markup slice (may be the whole file)

    Raises:
        ContentNotFoundError: If the referenced file is not in the archive
    """
    start = resolve_href(href, base_dir)
    name = _find_file(archive, start, href)
    markup = decode_markup(archive.read(name))

    end_fragment = ""
    if next_href:
        nxt = resolve_href(next_href, base_dir)
        if nxt.fragment and start.same_file(nxt):
            end_fragment = nxt.fragment

    return extract_fragment(markup, start.fragment, end_fragment)
