"""Text primitives shared by the section locator and the extractors."""

import re

from common.constants import MIN_ITEM_LENGTH

_WHITESPACE = re.compile(r"\s+")
_BOLD = re.compile(r"\*\*(.*?)\*\*")
_QUOTE_TAIL = re.compile(r">\s*\*\*Quote.*?\*\*.*$", re.MULTILINE | re.DOTALL)


def collapse_whitespace(value: str) -> str:
    """Replace every whitespace run with a single space and trim the ends."""
    return _WHITESPACE.sub(" ", value).strip()


def strip_bold(value: str) -> str:
    """Remove **bold** markers, keeping the inner text.

    Unterminated or nested markers are left as they are.
    """
    return _BOLD.sub(r"\1", value)


def escape_regex(value: str) -> str:
    """Escape a header name for interpolation into a pattern."""
    return re.escape(value)


def strip_quote_lines(value: str) -> str:
    """Drop a trailing '> **Quote ...**' block from free text."""
    return _QUOTE_TAIL.sub("", value).strip()


def clean_item(value: str) -> str:
    """Strip bold markers and collapse whitespace."""
    return collapse_whitespace(strip_bold(value))


def is_substantial(value: str) -> bool:
    """Check that a cleaned item is long enough to be real content."""
    return len(value) > MIN_ITEM_LENGTH
