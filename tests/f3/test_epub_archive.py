"""Tests for reading EPUB files from disk."""

import zipfile

import pytest

from chapterize.core.epub_archive import EpubArchive
from chapterize.core.ncx_parser import read_toc
from chapterize.exceptions import InvalidEpubError, NcxParseError

BROKEN_NCX = '<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/"><navMap><navPoint>'


class TestOpen:
    """Tests for EpubArchive.open."""

    def test_ebooklib_book(self, sample_epub):
        archive = EpubArchive.open(sample_epub)

        assert archive.source == "sample.epub"
        assert archive.find_by_suffix(".ncx") is not None
        assert "ch1.xhtml" in archive.documents()

    def test_broken_ncx_still_opens(self, zipped_epub):
        """The NCX error is left for read_toc to report."""
        archive = EpubArchive.open(zipped_epub(BROKEN_NCX))

        assert archive.documents() == ["text/ch1.xhtml", "text/ch2.xhtml"]
        with pytest.raises(NcxParseError):
            read_toc(archive)

    def test_not_a_zip(self, tmp_path):
        source = tmp_path / "broken.epub"
        source.write_bytes(b"this is not a zip file")

        with pytest.raises(InvalidEpubError):
            EpubArchive.open(source)


class TestOpenZip:
    """Tests for EpubArchive.open_zip."""

    def test_names_relative_to_opf(self, zipped_epub):
        archive = EpubArchive.open_zip(zipped_epub(BROKEN_NCX))

        assert "toc.ncx" in archive
        assert "text/ch1.xhtml" in archive
        assert "META-INF/container.xml" in archive
        assert archive.find("OEBPS/text/ch2.xhtml") == "text/ch2.xhtml"

    def test_spine_order(self, zipped_epub):
        archive = EpubArchive.open_zip(zipped_epub(BROKEN_NCX))

        assert archive.documents() == ["text/ch1.xhtml", "text/ch2.xhtml"]
        assert b"Chapter 2" in archive.read("text/ch2.xhtml")

    def test_without_opf_uses_html_entries(self, tmp_path):
        source = tmp_path / "bare.epub"
        with zipfile.ZipFile(source, "w") as zf:
            zf.writestr("a.xhtml", "<html><body><p>A</p></body></html>")
            zf.writestr("b.html", "<html><body><p>B</p></body></html>")
            zf.writestr("style.css", "p {}")

        archive = EpubArchive.open_zip(source)

        assert archive.documents() == ["a.xhtml", "b.html"]
        assert len(archive) == 3
