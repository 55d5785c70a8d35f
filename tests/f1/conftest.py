"""Fixtures for F1 tests - NCX parsing and content location."""

import pytest

NCX_NAMESPACE = "http://www.daisy.org/z3986/2005/ncx/"


@pytest.fixture
def nested_ncx() -> bytes:
    """Namespaced NCX with two parts, nested chapters and playOrder gaps."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="{NCX_NAMESPACE}" version="2005-1">
  <head>
    <meta name="dtb:uid" content="test-book"/>
  </head>
  <docTitle><text>The Test Book</text></docTitle>
  <navMap>
    <navPoint id="np1" playOrder="10">
      <navLabel><text>  Part One  </text></navLabel>
      <content src="text/part1.xhtml"/>
      <navPoint id="np2" playOrder="20">
        <navLabel><text>Chapter 1</text></navLabel>
        <content src="text/part1.xhtml#ch1"/>
        <navPoint id="np3" playOrder="30">
          <navLabel><text>Scene A</text></navLabel>
          <content src="text/part1.xhtml#scene-a"/>
        </navPoint>
      </navPoint>
      <navPoint id="np4" playOrder="5">
        <navLabel><text>Chapter 2</text></navLabel>
        <content src="text/part1.xhtml#ch2"/>
      </navPoint>
    </navPoint>
    <navPoint id="np5" playOrder="40">
      <navLabel><text>Part Two</text></navLabel>
      <content src="text/part2.xhtml"/>
    </navPoint>
  </navMap>
</ncx>
""".encode("utf-8")


@pytest.fixture
def anchored_html() -> str:
    """One content file holding three chapters separated by anchors."""
    return (
        "<html><head><title>Book</title></head><body>"
        '<h2 id="ch1">Chapter 1</h2><p>First chapter text.</p>'
        "<h2 id='ch2'>Chapter 2</h2><p>Second chapter text.</p>"
        '<a name="ch3"></a><h2>Chapter 3</h2><p>Third chapter text.</p>'
        "</body></html>"
    )


@pytest.fixture
def calibre_opf() -> bytes:
    """OPF in the shape calibre's `ebook-meta --to-opf` writes."""
    return b"""<?xml version='1.0' encoding='utf-8'?>
<package xmlns="http://www.idpf.org/2007/opf" unique-identifier="uuid_id" version="2.0">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:identifier opf:scheme="calibre" id="calibre_id">42</dc:identifier>
    <dc:identifier opf:scheme="uuid" id="uuid_id">0f1e2d3c-aaaa-bbbb-cccc-123456789abc</dc:identifier>
    <dc:identifier opf:scheme="ISBN">9780141439518</dc:identifier>
    <dc:title>Pride and Prejudice</dc:title>
    <dc:creator opf:file-as="Austen, Jane" opf:role="aut">Jane Austen</dc:creator>
    <dc:creator opf:role="ill">Hugh Thomson</dc:creator>
    <dc:creator>Anonymous Editor</dc:creator>
    <dc:contributor opf:role="bkp">calibre (8.16.2) [https://calibre-ebook.com]</dc:contributor>
    <dc:date>1813-01-28T00:00:00+00:00</dc:date>
    <dc:publisher>Penguin Classics</dc:publisher>
    <dc:description>A novel of manners.</dc:description>
    <dc:language>eng</dc:language>
    <dc:subject>Fiction</dc:subject>
    <dc:subject>Romance</dc:subject>
    <meta name="calibre:series" content="Austen Novels"/>
    <meta name="calibre:series_index" content="2.0"/>
    <meta name="calibre:timestamp" content="2024-05-01T10:00:00+00:00"/>
  </metadata>
  <guide/>
</package>
"""
