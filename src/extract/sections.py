"""Locate named sections inside loosely structured insight markdown.

Insight documents use "## Section" headers, usually decorated with a trailing
emoji, and "### Subsection" headers below them. Some document versions nest
titled items as doubled headers ("### ### Title"), which are never treated as
section boundaries by the locator itself.
"""

import re
from collections.abc import Iterator

from .text_utils import escape_regex

# Anything after the header name that is not a word: emoji, colons, spaces
_TRAILER = r"[^\w\n]*$"

# Subsection spans stop at any header of level 1-3 ("### ### x" included)
_SUBSECTION_END = r"(?=^#{1,3}[ \t]|\Z)"


def _header_line(name: str, levels: str) -> str:
    return rf"^(?P<level>#{{{levels}}})[ \t]+{escape_regex(name)}{_TRAILER}\n?"


def _subsection_line(name: str) -> str:
    # Plain "### Name" or doubled "### ### Name"
    return rf"^#{{3,4}}[ \t]+(?:###[ \t]+)?{escape_regex(name)}{_TRAILER}\n?"


def block_end(content: str, start: int, level: int) -> int:
    """Return where a block opened by a header of `level` ends.

    A block ends at the next header of the same or a higher level (fewer #),
    or at the end of the document.

    Args:
        content: Full document text
        start: Offset just past the opening header line
        level: Number of '#' characters in the opening header

    Returns:
        Offset of the first character after the block
    """
    end_pattern = re.compile(rf"^#{{1,{level}}}[ \t]", re.MULTILINE)
    match = end_pattern.search(content, start)
    return match.start() if match else len(content)


def find_section(content: str, header: str, subsection: str | None = None) -> str:
    """Return the text under a section header, optionally under one of its subsections.

    Matching is case-insensitive. Only the first occurrence of the header is
    used; later repeats of the same header are ignored.

    Args:
        content: Full document text
        header: Section name, e.g. "Key Follow-Ups"
        subsection: Optional "###" (or "### ###") subsection name inside that section,
            e.g. "For You to Action"

    Returns:
        The text between the matched header line and the next header of equal
        or higher level, or "" if nothing matched.
    """
    if subsection is None:
        match = re.search(_header_line(header, "2,3"), content, re.IGNORECASE | re.MULTILINE)
        if not match:
            return ""
        end = block_end(content, match.end(), len(match.group("level")))
        return content[match.end() : end]

    # Header and subsection in one pass; the gap between them may not cross
    # into another "#" or "##" section.
    pattern = (
        _header_line(header, "2,3")
        + r"(?:(?!^#{1,2}[ \t]).)*?"
        + _subsection_line(subsection)
        + r"(?P<body>.*?)"
        + _SUBSECTION_END
    )
    match = re.search(pattern, content, re.IGNORECASE | re.MULTILINE | re.DOTALL)
    return match.group("body") if match else ""


def iter_header_blocks(content: str, header_pattern: str) -> Iterator[tuple[re.Match, str]]:
    """Yield every header matching `header_pattern` together with its block body.

    The pattern is matched per line (MULTILINE, case-insensitive) and must
    start with a "(?P<level>#+)" group so the block end can be computed.

    Args:
        content: Full document text
        header_pattern: Regex for the header line

    Yields:
        (header match, body text) pairs in document order
    """
    for match in re.finditer(header_pattern, content, re.IGNORECASE | re.MULTILINE):
        # A doubled header closes at the same level as a plain one
        level = min(len(match.group("level")), 3)
        body_start = match.end()
        if body_start < len(content) and content[body_start] == "\n":
            body_start += 1
        yield match, content[body_start : block_end(content, body_start, level)]
