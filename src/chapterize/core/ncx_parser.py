"""NCX navigation document parsing.

Responsibilities:
- Locate the NCX file inside an EPUB archive
- Decode the navMap into a NavPoint tree
- Flatten the tree into TocEntry values in pre-order (reading order)

Elements are matched by local name, so both namespaced
(http://www.daisy.org/z3986/2005/ncx/) and bare NCX documents are accepted.
"""

from __future__ import annotations

import posixpath

import structlog
from lxml import etree

from chapterize.core.epub_archive import EpubArchive
from chapterize.core.models import NavDocument, NavPoint, TocEntry
from chapterize.exceptions import NcxNotFoundError, NcxParseError

logger = structlog.get_logger(__name__)

NCX_SUFFIX = ".ncx"


def _local_name(element: etree._Element) -> str | None:
    """Return the tag without namespace, or None for comments/PIs."""
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def _child(element: etree._Element, name: str) -> etree._Element | None:
    for child in element:
        if _local_name(child) == name:
            return child
    return None


def _children(element: etree._Element, name: str) -> list[etree._Element]:
    return [child for child in element if _local_name(child) == name]


def _text_of(element: etree._Element | None) -> str:
    """Text of the <text> child of a label-like element."""
    if element is None:
        return ""
    text_el = _child(element, "text")
    if text_el is None:
        return ""
    return "".join(text_el.itertext())


def parse_ncx(data: bytes | str) -> NavDocument:
    """Parse NCX content into a NavDocument.

    Args:
        data: Raw NCX document

    Returns:
        NavDocument with the navMap tree

    Raises:
        NcxParseError: If the document is not well-formed or not an NCX
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        raise NcxParseError(str(e))

    if root is None or _local_name(root) != "ncx":
        raise NcxParseError("el elemento raíz no es <ncx>")

    nav_map = _child(root, "navMap")
    if nav_map is None:
        raise NcxParseError("falta <navMap>")

    doc = NavDocument(
        title=_text_of(_child(root, "docTitle")).strip(),
        nav_points=[_parse_nav_point(np) for np in _children(nav_map, "navPoint")],
    )
    logger.debug("ncx_parser.parsed", title=doc.title, root_points=len(doc.nav_points))
    return doc


def _parse_nav_point(element: etree._Element) -> NavPoint:
    content = _child(element, "content")

    try:
        play_order = int(element.get("playOrder", "0"))
    except ValueError:
        play_order = 0

    return NavPoint(
        label=_text_of(_child(element, "navLabel")),
        src=(content.get("src", "") if content is not None else ""),
        play_order=play_order,
        id=element.get("id", ""),
        children=[_parse_nav_point(np) for np in _children(element, "navPoint")],
    )


def flatten_toc(doc: NavDocument) -> list[TocEntry]:
    """Flatten the navMap in pre-order.

    Root navPoints get level 1; each nesting adds one. Entries keep document
    order, never playOrder order.
    """
    entries: list[TocEntry] = []
    for nav_point in doc.nav_points:
        _flatten_nav_point(nav_point, 1, entries)
    return entries


def _flatten_nav_point(nav_point: NavPoint, level: int, out: list[TocEntry]) -> None:
    out.append(
        TocEntry(
            title=nav_point.label.strip(),
            level=level,
            href=nav_point.src,
            order=nav_point.play_order,
        )
    )
    for child in nav_point.children:
        _flatten_nav_point(child, level + 1, out)


def find_ncx(archive: EpubArchive) -> str:
    """Return the archive name of the NCX file.

    Raises:
        NcxNotFoundError: If no entry ends with .ncx
    """
    name = archive.find_by_suffix(NCX_SUFFIX)
    if name is None:
        raise NcxNotFoundError(archive.source)
    return name


def read_toc(archive: EpubArchive) -> tuple[list[TocEntry], str]:
    """Locate, parse and flatten the archive's NCX.

    Returns:
        Tuple of (flattened entries, directory of the NCX file). NCX hrefs are
        relative to that directory.

    Raises:
        NcxNotFoundError: If the archive has no NCX
        NcxParseError: If the NCX is malformed
    """
    ncx_name = find_ncx(archive)
    doc = parse_ncx(archive.read(ncx_name))
    entries = flatten_toc(doc)

    logger.info(
        "ncx_parser.toc_loaded",
        ncx=ncx_name,
        doc_title=doc.title,
        entries=len(entries),
    )
    return entries, posixpath.dirname(ncx_name)
