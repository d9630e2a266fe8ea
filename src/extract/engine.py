"""Structured extraction from one insight document.

Each record field is resolved from a plan: an ordered tuple of attempts, where
each attempt is a tuple of sources whose outputs are concatenated. The first
attempt that produces anything wins. Plans are plain data so every field can
be exercised on its own with resolve_field().
"""

import re
from collections.abc import Callable
from functools import partial

from common.constants import MAX_THEME_DESCRIPTION
from common.logger import get_logger

from .extractors import (
    LABELLED_BULLET,
    extract_section_items,
    iter_blockquote_groups,
    iter_bullets,
    iter_doubled_headers,
    iter_raw_bullets,
)
from .models import KnowledgeNugget, MemorableExchange, Quote, StructuredRecord, Theme, validate_record
from .sections import find_section, iter_header_blocks
from .text_utils import clean_item, is_substantial, strip_quote_lines

logger = get_logger(__name__)

Source = Callable[[str], list]
Attempt = tuple[Source, ...]

_STANDOUT_QUOTE = re.compile(
    r">\s*\*\*Quote that stands out:?\*\*:?\s*[\"“]([^\"”]+)[\"”]\s*[—–-]\s*([^.\n]+)",
    re.IGNORECASE,
)
_STANDOUT_LINE = re.compile(r"^>\s*\*\*Quote that stands out.*$", re.IGNORECASE | re.MULTILINE)

_THEME_HEADER = r"^(?P<level>#{2,4})[ \t]+(?:###[ \t]+)?(?P<title>[^\n]*Recurring Theme[^\n]*)$"
_THEME_EXCLUDED_TITLE = "quote that stands out"

_HIGHLIGHTS_START = re.compile(
    r"^(?:#{2,3}[ \t]+Top Highlights|\*\*Top Highlights\*\*)[^\n]*\n?",
    re.IGNORECASE | re.MULTILINE,
)
_HIGHLIGHTS_END = re.compile(r"^(?:#{1,3}[ \t]|\*\*[^*\n]+\*\*:?[ \t]*$)", re.MULTILINE)

_NUGGET_SOURCE = re.compile(r"\s*_Source:\s*(?P<source>[^_]+?)\s*_?\s*$", re.IGNORECASE)

FOLLOW_UPS_HEADER = "Key Follow-Ups"
FOLLOW_UPS_SUBSECTIONS = ("For You to Action", "Household To-Dos")


def section(header: str, subsection: str | None = None, siblings: tuple[str, ...] = ()) -> Source:
    """Source reading bullets (or doubled headers) from a named section."""
    return partial(extract_section_items, header=header, subsection=subsection, exclude=siblings)


def follow_up_headers(content: str) -> list[str]:
    """Doubled headers nested directly under Key Follow-Ups.

    Only the first description line of each is kept. Doubled headers naming
    one of the section's own subsections are read by the field plan instead.
    """
    if FOLLOW_UPS_HEADER not in content:
        return []
    span = find_section(content, FOLLOW_UPS_HEADER)
    return list(iter_doubled_headers(span, first_line_only=True, exclude=FOLLOW_UPS_SUBSECTIONS))


def standout_quotes(content: str) -> list[Quote]:
    quotes = []
    for match in _STANDOUT_QUOTE.finditer(content):
        text = clean_item(match.group(1))
        speaker = clean_item(match.group(2)).strip("_* ")
        if text:
            quotes.append(Quote(text=text, speaker=speaker))
    return quotes


def blockquote_quotes(content: str) -> list[Quote]:
    """Quoted dialogue lines from attributed blockquote groups.

    A line's own speaker prefix wins over the group's attribution.
    """
    quotes = []
    for group in iter_blockquote_groups(_STANDOUT_LINE.sub("", content)):
        for line, quoted in zip(group.lines, group.quoted):
            if quoted:
                quotes.append(Quote(text=line.text, speaker=line.speaker or group.speaker))
    return quotes


def recurring_themes(content: str) -> list[Theme]:
    """Themes from every block whose header mentions "Recurring Theme".

    A block with '- **Title:** description' bullets yields one theme per
    bullet. Otherwise the header suffix (or the header itself) becomes the
    title and the paragraph below it the description.
    """
    themes = []
    for header, body in iter_header_blocks(content, _THEME_HEADER):
        labelled = []
        has_labels = False
        for raw in iter_raw_bullets(body):
            match = LABELLED_BULLET.match(raw.strip())
            if not match:
                continue
            has_labels = True
            if not is_substantial(clean_item(raw)):
                continue
            title = clean_item(match.group("label"))
            if _THEME_EXCLUDED_TITLE in title.lower():
                continue
            description = clean_item(match.group("text"))
            if title and description:
                labelled.append(Theme(title=title, description=description))

        if has_labels:
            themes.extend(labelled)
            continue

        header_text = clean_item(header.group("title"))
        _, _, suffix = header_text.partition(":")
        title = suffix.strip() or header_text
        description = clean_item(strip_quote_lines(body))
        if len(description) > MAX_THEME_DESCRIPTION:
            description = description[:MAX_THEME_DESCRIPTION] + "..."
        if title and description:
            themes.append(Theme(title=title, description=description))
    return themes


def top_highlights(content: str) -> list[str]:
    start = _HIGHLIGHTS_START.search(content)
    if not start:
        return []
    end = _HIGHLIGHTS_END.search(content, start.end())
    return list(iter_bullets(content[start.end() : end.start() if end else len(content)]))


def knowledge_nuggets(content: str) -> list[KnowledgeNugget]:
    """Nuggets shaped '* **Category:** fact _Source: where_'.

    Category and source are both optional.
    """
    nuggets = []
    for raw in iter_raw_bullets(find_section(content, "Knowledge Nuggets")):
        if not is_substantial(clean_item(raw)):
            continue
        text = raw.strip()
        category = None
        labelled = LABELLED_BULLET.match(text)
        if labelled:
            category = clean_item(labelled.group("label")) or None
            text = labelled.group("text")

        source = None
        source_match = _NUGGET_SOURCE.search(text)
        if source_match:
            source = clean_item(source_match.group("source")) or None
            text = text[: source_match.start()]

        fact = clean_item(text)
        if fact:
            nuggets.append(KnowledgeNugget(fact=fact, category=category, source=source))
    return nuggets


def memorable_exchanges(content: str) -> list[MemorableExchange]:
    return [
        MemorableExchange(dialogue=list(group.lines), context=group.attribution or None)
        for group in iter_blockquote_groups(find_section(content, "Memorable Exchanges"))
    ]


FIELD_PLANS: dict[str, tuple[Attempt, ...]] = {
    "action_items": (
        tuple(section(FOLLOW_UPS_HEADER, name, FOLLOW_UPS_SUBSECTIONS) for name in FOLLOW_UPS_SUBSECTIONS),
        (section("Commitment Tracker", "Promises from You"),),
    ),
    "decisions": (
        (section("Decision Log", "Decisions Made"),),
        (section("Strategic Decisions Made"),),
    ),
    "ideas": (
        (section("Idea Sandbox", "Seeds of an Idea"),),
        (section("Ideas to Explore"),),
    ),
    "questions": ((section("Open Questions to Resolve"), section("Unresolved Questions")),),
    "quotes": ((standout_quotes, blockquote_quotes),),
    "themes": ((recurring_themes,),),
    "highlights": ((top_highlights,),),
    "knowledge_nuggets": ((knowledge_nuggets,),),
    "memorable_exchanges": ((memorable_exchanges,),),
}

# Items produced before a field's plan runs, independent of which attempt wins
FIELD_PREFIXES: dict[str, Source] = {
    "action_items": follow_up_headers,
}


def _unique(items: list, key: Callable = lambda item: item) -> list:
    seen = set()
    result = []
    for item in items:
        marker = key(item)
        if marker in seen:
            continue
        seen.add(marker)
        result.append(item)
    return result


# Exact-duplicate suppression, keyed per field
FIELD_DEDUPE: dict[str, Callable] = {
    "quotes": lambda quote: quote.text,
}


def resolve_field(content: str, plan: tuple[Attempt, ...]) -> list:
    """Run a field's attempts in order and return the first non-empty result."""
    for attempt in plan:
        items = [item for source in attempt for item in source(content)]
        if items:
            return items
    return []


def extract_field(state: dict, content: str, field: str) -> dict:
    """Return a copy of `state` with `field` resolved from `content`."""
    prefix = FIELD_PREFIXES.get(field)
    prefixed = prefix(content) if prefix else []
    planned = resolve_field(content, FIELD_PLANS[field])
    # A planned item already produced by the prefix is not repeated
    items = prefixed + [item for item in planned if item not in prefixed]
    if field in FIELD_DEDUPE:
        items = _unique(items, FIELD_DEDUPE[field])
    return {**state, field: items}


def extract(content: str, date: str) -> StructuredRecord:
    """Extract every structured field from one insight document.

    Deterministic: the same (content, date) always produces an equal record.
    Missing sections produce empty lists, never errors.

    Args:
        content: Raw markdown of the document
        date: ISO date the document covers

    Returns:
        Validated StructuredRecord

    Raises:
        RecordSchemaError: If an extractor produced a malformed field
    """
    content = content.replace("\r\n", "\n")
    state: dict = {}
    for field in FIELD_PLANS:
        state = extract_field(state, content, field)

    record = validate_record(state)
    logger.debug(
        f"Extracted {sum(len(items) for items in state.values())} items from {date} document"
    )
    return record
