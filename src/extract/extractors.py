"""Bullet, doubled-header and blockquote extractors.

All extractors operate on a span already isolated by the section locator
(or on the whole document for the few section-less shapes). They never raise
for missing content; no matches simply yield nothing.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from .models import DialogueLine
from .sections import find_section
from .text_utils import clean_item, collapse_whitespace, is_substantial, strip_bold

_BULLET = re.compile(r"^\s*[*-]\s+(.*)$")
_BOLD_LABEL_LINE = re.compile(r"^\*\*[^*]+\*\*:?$")

_DOUBLED_HEADER = re.compile(
    r"^###[ \t]+###[ \t]+(?P<title>[^\n]+)\n?(?P<body>.*?)(?=^#{1,3}[ \t]|\Z)",
    re.MULTILINE | re.DOTALL,
)
_TITLE_TRAILER = re.compile(r"[^\w]+$")

# "**Label:** text" (colon inside or outside the bold markers)
LABELLED_BULLET = re.compile(r"^\*\*(?P<label>[^*]+?):?\*\*:?\s*(?P<text>.*)$", re.DOTALL)

_ATTRIBUTION = re.compile(r"^>\s*(?:_.*[—–-]|[—–]\s)")
_ATTRIBUTION_BODY = re.compile(r"^[_*\s]*(?:[—–-]+\s*)?(?P<text>.*?)[_*\s]*$", re.DOTALL)
_BOLD_SPEAKER = re.compile(r"^\*\*(?P<speaker>[^*]+?):?\*\*:?\s*(?P<text>.*)$")
_PLAIN_SPEAKER = re.compile(r"^(?P<speaker>[A-Z][\w.' -]{0,40}?):\s+(?P<text>[\"“].*)$")

QUOTE_CHARS = "\"“”"


def iter_raw_bullets(span: str) -> Iterator[str]:
    """Yield the raw text of each bullet in a span.

    A bullet starts on a line beginning with '*' or '-' followed by
    whitespace. Non-blank lines that follow it (and are not another bullet,
    a header, a blockquote or a bold label line) continue the same item.
    """
    current: str | None = None
    for line in span.split("\n"):
        stripped = line.strip()
        bullet = _BULLET.match(line)
        if bullet:
            if current is not None:
                yield current
            current = bullet.group(1)
        elif (
            current is not None
            and stripped
            and not stripped.startswith(("#", ">"))
            and not _BOLD_LABEL_LINE.match(stripped)
        ):
            current += "\n" + stripped
        else:
            if current is not None:
                yield current
            current = None
    if current is not None:
        yield current


def iter_bullets(span: str) -> Iterator[str]:
    """Yield cleaned bullet items, dropping anything too short to be real."""
    for raw in iter_raw_bullets(span):
        item = clean_item(raw)
        if is_substantial(item):
            yield item


def iter_doubled_headers(
    span: str, first_line_only: bool = False, exclude: tuple[str, ...] = ()
) -> Iterator[str]:
    """Yield "Title: description" items from '### ### Title' blocks.

    Args:
        span: Text to scan
        first_line_only: Use only the first non-blank description line
        exclude: Titles (case-insensitive) that are subsection headers, not items

    Yields:
        Cleaned items; the bare title when there is no description
    """
    skipped = {name.lower() for name in exclude}
    for match in _DOUBLED_HEADER.finditer(span):
        title = clean_item(match.group("title"))
        if _TITLE_TRAILER.sub("", title).lower() in skipped:
            continue
        body = match.group("body")
        if first_line_only:
            lines = [line for line in body.split("\n") if line.strip()]
            body = lines[0] if lines else ""
        description = clean_item(body)
        item = f"{title}: {description}" if description else title
        if is_substantial(item):
            yield item


def extract_section_items(
    content: str, header: str, subsection: str | None = None, exclude: tuple[str, ...] = ()
) -> list[str]:
    """Extract bullet items from a section, falling back to doubled headers.

    Some document versions nest a section's items one level deeper as
    '### ### Title' blocks instead of bullets. When the bullet pass finds
    nothing, those blocks are read from the header's whole section.

    Args:
        content: Full document text
        header: Section header name
        subsection: Optional subsection name inside the section
        exclude: Further subsection names the fallback must not read as items

    Returns:
        Items in document order, possibly empty
    """
    items = list(iter_bullets(find_section(content, header, subsection)))
    if items:
        return items
    if subsection:
        exclude = (*exclude, subsection)
    return list(iter_doubled_headers(find_section(content, header), exclude=exclude))


@dataclass
class BlockquoteGroup:
    """Dialogue lines closed by an attribution line."""

    lines: list[DialogueLine] = field(default_factory=list)
    quoted: list[bool] = field(default_factory=list)
    attribution: str = ""

    @property
    def speaker(self) -> str:
        """The attributed speaker, i.e. the attribution up to the first comma."""
        return re.split(r"[,(;]", self.attribution, maxsplit=1)[0].strip()


def clean_attribution(line: str) -> str:
    """Turn '> _— Alice, on the drive_' into 'Alice, on the drive'."""
    body = line.strip()[1:]
    match = _ATTRIBUTION_BODY.match(body)
    return collapse_whitespace(match.group("text")) if match else collapse_whitespace(body)


def parse_dialogue_line(line: str) -> tuple[DialogueLine | None, bool]:
    """Parse one '>' line into a dialogue line.

    Returns:
        (line or None when empty, whether the text was a quoted string)
    """
    text = line.strip().lstrip(">").strip()
    speaker = None
    for pattern in (_BOLD_SPEAKER, _PLAIN_SPEAKER):
        match = pattern.match(text)
        if match:
            speaker = collapse_whitespace(strip_bold(match.group("speaker")))
            text = match.group("text")
            break

    quoted = bool(text) and text[0] in QUOTE_CHARS
    text = clean_item(text.strip().strip(QUOTE_CHARS).strip())
    if not text:
        return None, quoted
    return DialogueLine(text=text, speaker=speaker), quoted


def iter_blockquote_groups(span: str) -> Iterator[BlockquoteGroup]:
    """Group blockquote lines into exchanges closed by attribution lines.

    '>' lines accumulate as dialogue. A line like '> _— Alice_' (any of
    em-dash, en-dash or hyphen) or '> — Alice' closes the current group.
    Groups without any dialogue when an attribution arrives are dropped, as
    is a trailing group that never gets an attribution.
    """
    current = BlockquoteGroup()
    for raw_line in span.split("\n"):
        line = raw_line.strip()
        if not line.startswith(">"):
            continue
        if _ATTRIBUTION.match(line):
            if current.lines:
                current.attribution = clean_attribution(line)
                yield current
            current = BlockquoteGroup()
            continue
        dialogue, quoted = parse_dialogue_line(line)
        if dialogue is not None:
            current.lines.append(dialogue)
            current.quoted.append(quoted)
