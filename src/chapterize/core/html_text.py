"""Markup to plain text projection.

A deterministic best-effort pass, not an HTML parser:
1. Drop <script> and <style> regions
2. Turn block-level tag boundaries into line breaks
3. Strip every remaining tag
4. Trim lines, drop empty ones, join paragraphs with a blank line
"""

from __future__ import annotations

NON_TEXT_TAGS = ("script", "style")
BLOCK_TAGS = ("p", "div", "br", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr")


def remove_tag(markup: str, tag: str) -> str:
    """Remove every <tag ...>...</tag> region.

    Stops at the first opening tag without a closing tag; that opener and
    everything after it are left untouched.
    """
    open_marker = f"<{tag}"
    close_marker = f"</{tag}>"
    while True:
        lowered = markup.lower()
        start = lowered.find(open_marker)
        if start == -1:
            break
        end = lowered.find(close_marker, start)
        if end == -1:
            break
        markup = markup[:start] + markup[end + len(close_marker):]
    return markup


def _mark_blocks(markup: str) -> str:
    for tag in BLOCK_TAGS:
        markup = markup.replace(f"<{tag}", f"\n<{tag}")
        markup = markup.replace(f"</{tag}>", "\n")
    return markup


def _strip_tags(markup: str) -> str:
    chars = []
    in_tag = False
    for char in markup:
        if char == "<":
            in_tag = True
        elif char == ">":
            in_tag = False
        elif not in_tag:
            chars.append(char)
    return "".join(chars)


def html_to_text(markup: bytes | str) -> str:
    """Convert an HTML/XHTML slice to paragraph-separated plain text.

    Args:
        markup: HTML content as bytes or string

    Returns:
        Plain text, one paragraph per non-empty line, separated by blank lines
    """
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8", errors="replace")

    for tag in NON_TEXT_TAGS:
        markup = remove_tag(markup, tag)

    text = _strip_tags(_mark_blocks(markup))

    lines = []
    for line in text.split("\n"):
        line = line.strip()
        if line:
            lines.append(line)

    return "\n\n".join(lines)
