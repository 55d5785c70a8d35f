"""Fixtures for F3 tests - orchestration, settings, converter and CLI."""

import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import structlog

from chapterize.config.settings import Settings, clear_settings_cache
from chapterize.core.epub_archive import EpubArchive

NCX_NAMESPACE = "http://www.daisy.org/z3986/2005/ncx/"


def _words(seed: str, count: int = 60) -> str:
    return " ".join(f"{seed}{i}" for i in range(count))


def _nav_point(label: str, src: str, order: int) -> str:
    return (
        f'<navPoint id="np{order}" playOrder="{order}">'
        f"<navLabel><text>{label}</text></navLabel>"
        f'<content src="{src}"/></navPoint>'
    )


@pytest.fixture(autouse=True)
def fresh_settings_cache():
    """Each test starts without cached settings."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo the CLI's structlog configuration (it binds the runner's stderr)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def words():
    """Factory building N distinct words from a seed."""
    return _words


@pytest.fixture
def gapped_archive() -> EpubArchive:
    """In-memory EPUB: 5 chapters plus cover, copyright and index entries.

    Chapters 1-3 share one file and are separated by anchors; chapters 4 and 5
    have their own files. playOrder values have gaps.
    """
    nav_points = "".join(
        [
            _nav_point("Cover", "text/cover.xhtml", 1),
            _nav_point("Copyright", "text/copyright.xhtml", 2),
            _nav_point("Chapter 1", "text/part1.xhtml#ch1", 10),
            _nav_point("Chapter 2", "text/part1.xhtml#ch2", 20),
            _nav_point("Chapter 3", "text/part1.xhtml#ch3", 30),
            _nav_point("Chapter 4", "text/ch4.xhtml", 45),
            _nav_point("Chapter 5", "text/ch5.xhtml", 70),
            _nav_point("Index", "text/index.xhtml", 99),
        ]
    )
    ncx = (
        f'<?xml version="1.0" encoding="UTF-8"?>'
        f'<ncx xmlns="{NCX_NAMESPACE}" version="2005-1">'
        f"<docTitle><text>Gapped Book</text></docTitle>"
        f"<navMap>{nav_points}</navMap></ncx>"
    )
    part1 = (
        "<html><body>"
        f'<h2 id="ch1">Chapter 1</h2><p>{_words("one")}</p>'
        f'<h2 id="ch2">Chapter 2</h2><p>{_words("two")}</p>'
        f'<h2 id="ch3">Chapter 3</h2><p>{_words("three")}</p>'
        "</body></html>"
    )

    def page(title: str, body: str) -> bytes:
        return f"<html><body><h1>{title}</h1><p>{body}</p></body></html>".encode("utf-8")

    return EpubArchive(
        {
            "OEBPS/toc.ncx": ncx.encode("utf-8"),
            "OEBPS/text/cover.xhtml": page("Cover", "A picture."),
            "OEBPS/text/copyright.xhtml": page("Copyright", "All rights reserved."),
            "OEBPS/text/part1.xhtml": part1.encode("utf-8"),
            "OEBPS/text/ch4.xhtml": page("Chapter 4", _words("four")),
            "OEBPS/text/ch5.xhtml": page("Chapter 5", _words("five")),
            "OEBPS/text/index.xhtml": page("Index", "a, b, c"),
        },
        source="gapped.epub",
    )


@pytest.fixture
def sample_epub(tmp_path) -> Path:
    """EPUB written by ebooklib with four chapters and a copyright page."""
    from ebooklib import epub

    book = epub.EpubBook()
    book.set_identifier("chapterize-test-book")
    book.set_title("Test EPUB Book")
    book.set_language("en")
    book.add_author("Test Author")

    pages = [("copyright.xhtml", "Copyright", "All rights reserved.")]
    for n, seed in enumerate(("alpha", "beta", "gamma", "delta"), start=1):
        pages.append((f"ch{n}.xhtml", f"Chapter {n}: The {seed.title()}", _words(seed)))

    items = []
    for file_name, title, body in pages:
        item = epub.EpubHtml(title=title, file_name=file_name, lang="en")
        item.content = f"<html><body><h1>{title}</h1><p>{body}</p></body></html>"
        book.add_item(item)
        items.append(item)

    book.toc = [
        epub.Link(file_name, title, file_name.split(".")[0]) for file_name, title, _ in pages
    ]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", *items]

    epub_path = tmp_path / "sample.epub"
    epub.write_epub(str(epub_path), book)
    return epub_path


@pytest.fixture
def headed_txt(tmp_path) -> Path:
    """Plain-text book with three "Chapter N" headings."""
    text = "\n\n".join(f"Chapter {n}\n\n{_words(f'w{n}_', 40)}" for n in (1, 2, 3))
    path = tmp_path / "book.txt"
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def no_converter() -> MagicMock:
    """Converter double reporting ebook-convert as missing."""
    converter = MagicMock()
    converter.available = False
    return converter


CONTAINER_XML = (
    '<?xml version="1.0"?>'
    '<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">'
    '<rootfiles><rootfile full-path="OEBPS/content.opf" '
    'media-type="application/oebps-package+xml"/></rootfiles></container>'
)


def _package_opf(chapter_files: list[str]) -> str:
    manifest = "".join(
        f'<item id="c{n}" href="text/{name}" media-type="application/xhtml+xml"/>'
        for n, name in enumerate(chapter_files)
    )
    spine = "".join(f'<itemref idref="c{n}"/>' for n in range(len(chapter_files)))
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="uid">'
        '<metadata xmlns:dc="http://purl.org/dc/elements/1.1/">'
        "<dc:title>Zipped Book</dc:title>"
        '<dc:identifier id="uid">zipped-book</dc:identifier>'
        "</metadata>"
        f'<manifest><item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>'
        f"{manifest}</manifest>"
        f'<spine toc="ncx">{spine}</spine></package>'
    )


@pytest.fixture
def zipped_epub(tmp_path):
    """Factory writing a two-chapter EPUB with zipfile around a given NCX body.

    The NCX is stored as-is, so it can be malformed.
    """

    def build(ncx: str, name: str = "zipped.epub") -> Path:
        chapter_files = ["ch1.xhtml", "ch2.xhtml"]
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
            zf.writestr("META-INF/container.xml", CONTAINER_XML)
            zf.writestr("OEBPS/content.opf", _package_opf(chapter_files))
            zf.writestr("OEBPS/toc.ncx", ncx)
            for n, file_name in enumerate(chapter_files, start=1):
                zf.writestr(
                    f"OEBPS/text/{file_name}",
                    f"<html><body><h1>Chapter {n}</h1><p>{_words(f'z{n}_')}</p></body></html>",
                )
        return path

    return build
