"""OPF package document parsing.

Two consumers:
- calibre's `ebook-meta --to-opf` output, turned into Metadata
- the package document inside an EPUB, whose manifest and spine give the
  archive's content documents when ebooklib cannot load the book

Like the NCX parser, elements and attributes are matched by local name so the
opf/dc/calibre namespaces do not matter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import structlog
from lxml import etree

from chapterize.core.models import Metadata
from chapterize.exceptions import OpfParseError

logger = structlog.get_logger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
HTML_MEDIA_TYPES = ("application/xhtml+xml", "text/html")
AUTHOR_ROLE = "aut"

# Tried in order; calibre writes the first form
DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%Y-%m",
    "%Y",
)


@dataclass
class OpfItem:
    """One manifest entry."""

    id: str
    href: str
    media_type: str = ""
    properties: str = ""

    @property
    def is_document(self) -> bool:
        return self.media_type in HTML_MEDIA_TYPES and "nav" not in self.properties.split()


@dataclass
class OpfPackage:
    """Parsed package document: metadata, manifest and spine."""

    metadata: Metadata
    manifest: list[OpfItem] = field(default_factory=list)
    spine: list[str] = field(default_factory=list)

    def documents(self) -> list[OpfItem]:
        """Content documents in reading order: spine first, then the rest of the manifest."""
        by_id = {item.id: item for item in self.manifest}
        ordered = [by_id[idref] for idref in self.spine if idref in by_id]
        seen = {item.id for item in ordered}
        ordered.extend(item for item in self.manifest if item.id not in seen)
        return [item for item in ordered if item.is_document]


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True)


def _local_name(element: etree._Element) -> str | None:
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def _attr(element: etree._Element, name: str) -> str:
    """Attribute value by local name (`opf:role` and `role` alike)."""
    for key, value in element.attrib.items():
        if etree.QName(key).localname == name:
            return value
    return ""


def _text(element: etree._Element) -> str:
    return "".join(element.itertext()).strip()


def _parse_root(data: bytes | str, expected: str) -> etree._Element:
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        root = etree.fromstring(data, parser=_parser())
    except etree.XMLSyntaxError as e:
        raise OpfParseError(str(e))
    if root is None or _local_name(root) != expected:
        raise OpfParseError(f"el elemento raíz no es <{expected}>")
    return root


def find_rootfile(container: bytes) -> str:
    """Path of the package document named by META-INF/container.xml.

    Raises:
        OpfParseError: If the container is malformed or names no rootfile
    """
    root = _parse_root(container, "container")
    for element in root.iter():
        if _local_name(element) == "rootfile":
            path = element.get("full-path", "")
            if path:
                return path
    raise OpfParseError("container.xml no declara ningún rootfile")


def parse_date(value: str) -> str:
    """Normalize an OPF date to YYYY-MM-DD, or "" when unparseable."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return ""


def _parse_metadata(element: etree._Element | None) -> Metadata:
    metadata = Metadata()
    if element is None:
        return metadata

    for child in element:
        name = _local_name(child)
        if name == "title" and not metadata.title:
            metadata.title = _text(child)
        elif name == "creator":
            role = _attr(child, "role")
            if role in ("", AUTHOR_ROLE):
                metadata.authors.append(_text(child))
                if not metadata.author_sort:
                    metadata.author_sort = _attr(child, "file-as")
        elif name == "publisher":
            metadata.publisher = _text(child)
        elif name == "date" and not metadata.publish_date:
            metadata.publish_date = parse_date(_text(child))
        elif name == "language" and not metadata.language:
            metadata.language = _text(child)
        elif name == "subject":
            metadata.tags.append(_text(child))
        elif name == "description":
            metadata.description = _text(child)
        elif name == "identifier":
            scheme = (_attr(child, "scheme") or child.get("id", "")).lower()
            value = _text(child)
            metadata.identifiers[scheme] = value
            if scheme == "isbn":
                metadata.isbn = value
        elif name == "meta":
            _apply_calibre_meta(metadata, child.get("name", ""), child.get("content", ""))

    return metadata


def _apply_calibre_meta(metadata: Metadata, name: str, content: str) -> None:
    if name == "calibre:series":
        metadata.series = content
    elif name == "calibre:series_index":
        try:
            metadata.series_index = float(content)
        except ValueError:
            logger.debug("opf_parser.bad_series_index", value=content)


def parse_package(data: bytes | str) -> OpfPackage:
    """Parse a package document.

    Raises:
        OpfParseError: If the document is not well-formed or not a <package>
    """
    root = _parse_root(data, "package")

    metadata_el = None
    manifest: list[OpfItem] = []
    spine: list[str] = []
    for child in root:
        name = _local_name(child)
        if name == "metadata":
            metadata_el = child
        elif name == "manifest":
            for item in child:
                if _local_name(item) == "item" and item.get("href"):
                    manifest.append(
                        OpfItem(
                            id=item.get("id", ""),
                            href=item.get("href", ""),
                            media_type=item.get("media-type", ""),
                            properties=item.get("properties", ""),
                        )
                    )
        elif name == "spine":
            spine = [ref.get("idref", "") for ref in child if _local_name(ref) == "itemref"]

    package = OpfPackage(metadata=_parse_metadata(metadata_el), manifest=manifest, spine=spine)
    logger.debug(
        "opf_parser.parsed",
        title=package.metadata.title,
        manifest=len(manifest),
        spine=len(spine),
    )
    return package


def parse_opf(data: bytes | str) -> Metadata:
    """Parse only the metadata of a package document."""
    return parse_package(data).metadata
