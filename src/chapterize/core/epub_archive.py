"""Read-only view over the files of an EPUB.

Wraps ebooklib so the rest of the pipeline only sees archive names and raw
bytes. ebooklib parses the NCX while loading, so a book with a broken NCX is
re-read straight from the zip using the OPF manifest and spine; the NCX error
then surfaces later, from read_toc. An EpubArchive can also be built from an
in-memory mapping, which is how converted books and tests feed the pipeline.
"""

from __future__ import annotations

import posixpath
import warnings
import zipfile
from collections.abc import Mapping
from pathlib import Path

import ebooklib
import structlog
from ebooklib import epub

from chapterize.core.models import normalize_path, paths_match
from chapterize.core.opf_parser import CONTAINER_PATH, OpfPackage, find_rootfile, parse_package
from chapterize.exceptions import InvalidEpubError, OpfParseError

logger = structlog.get_logger(__name__)

HTML_SUFFIXES = (".xhtml", ".html", ".htm")
OPF_SUFFIX = ".opf"


class EpubArchive:
    """Named byte entries of an EPUB, in manifest order."""

    def __init__(
        self,
        entries: Mapping[str, bytes],
        documents: list[str] | None = None,
        source: str = "",
    ):
        self._entries = {normalize_path(name): data for name, data in entries.items()}
        self.source = source
        if documents is None:
            documents = [n for n in self._entries if n.lower().endswith(HTML_SUFFIXES)]
        self._documents = [normalize_path(n) for n in documents]

    @classmethod
    def open(cls, path: Path) -> EpubArchive:
        """Read an EPUB file.

        Entry names are relative to the OPF directory, as ebooklib names them.

        Raises:
            InvalidEpubError: If the file is not a readable EPUB
        """
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                book = epub.read_epub(str(path))
        except Exception as e:
            logger.warning("epub_archive.ebooklib_failed", path=str(path), error=str(e))
            return cls.open_zip(path)

        entries: dict[str, bytes] = {}
        documents: list[str] = []
        for item in book.get_items():
            name = item.get_name()
            if not name:
                continue
            # Raw file bytes; EpubHtml.get_content() re-renders the document
            content = item.content
            if isinstance(content, str):
                content = content.encode("utf-8")
            entries[name] = content or b""
            if item.get_type() == ebooklib.ITEM_DOCUMENT and item.is_chapter():
                documents.append(name)

        logger.debug(
            "epub_archive.opened",
            path=str(path),
            entries=len(entries),
            documents=len(documents),
        )
        return cls(entries, documents=documents, source=path.name)

    @classmethod
    def open_zip(cls, path: Path) -> EpubArchive:
        """Read an EPUB directly from its zip entries, without ebooklib.

        Documents come from the OPF spine; without a usable OPF every HTML
        entry is a document.

        Raises:
            InvalidEpubError: If the file is not a zip archive
        """
        raw = _read_zip(path)
        opf_name = _find_opf(raw)
        base_dir = posixpath.dirname(opf_name) if opf_name else ""

        entries = {_relative_to(name, base_dir): data for name, data in raw.items()}

        documents = None
        if opf_name:
            try:
                package = parse_package(raw[opf_name])
                documents = [
                    _relative_to(normalize_path(posixpath.join(base_dir, item.href)), base_dir)
                    for item in package.documents()
                ]
            except OpfParseError as e:
                logger.warning("epub_archive.opf_unreadable", opf=opf_name, error=str(e))

        logger.info(
            "epub_archive.opened_zip",
            path=str(path),
            opf=opf_name,
            entries=len(entries),
            documents=len(documents) if documents is not None else None,
        )
        return cls(entries, documents=documents, source=path.name)

    def names(self) -> list[str]:
        return list(self._entries)

    def documents(self) -> list[str]:
        """HTML content documents in manifest order (navigation excluded)."""
        return list(self._documents)

    def read(self, name: str) -> bytes:
        return self._entries[normalize_path(name)]

    def find(self, path: str) -> str | None:
        """Find an entry by path: exact match first, then suffix match."""
        wanted = normalize_path(path)
        if not wanted:
            return None
        if wanted in self._entries:
            return wanted
        for name in self._entries:
            if paths_match(name, wanted):
                return name
        return None

    def find_by_suffix(self, suffix: str) -> str | None:
        """First entry whose name ends with `suffix` (case-insensitive)."""
        suffix = suffix.lower()
        for name in self._entries:
            if name.lower().endswith(suffix):
                return name
        return None

    def __contains__(self, name: str) -> bool:
        return normalize_path(name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def read_package(path: Path) -> OpfPackage:
    """Parse the OPF package document of an EPUB file.

    Raises:
        InvalidEpubError: If the file is not a zip archive or has no OPF
        OpfParseError: If the OPF is malformed
    """
    raw = _read_zip(path)
    opf_name = _find_opf(raw)
    if opf_name is None:
        raise InvalidEpubError(path, "sin documento OPF")
    return parse_package(raw[opf_name])


def _read_zip(path: Path) -> dict[str, bytes]:
    try:
        with zipfile.ZipFile(path) as zf:
            return {info.filename: zf.read(info) for info in zf.infolist() if not info.is_dir()}
    except (zipfile.BadZipFile, OSError) as e:
        raise InvalidEpubError(path, str(e))


def _find_opf(raw: Mapping[str, bytes]) -> str | None:
    """OPF path from container.xml, else the first .opf entry."""
    if CONTAINER_PATH in raw:
        try:
            rootfile = find_rootfile(raw[CONTAINER_PATH])
            if rootfile in raw:
                return rootfile
        except OpfParseError as e:
            logger.warning("epub_archive.container_unreadable", error=str(e))
    for name in raw:
        if name.lower().endswith(OPF_SUFFIX):
            return name
    return None


def _relative_to(name: str, base_dir: str) -> str:
    """Strip the OPF directory prefix; entries outside it keep their full path."""
    if base_dir and name.startswith(base_dir + "/"):
        return name[len(base_dir) + 1:]
    return name
