"""Normalize Limitless life-log segments."""

from typing import Any
from zoneinfo import ZoneInfo

from common.constants import DEFAULT_SEGMENT_TYPE, REFERENCE_TIMEZONE, SEGMENT_KEYWORDS
from load.models import LifeLogEntry

from .base import Normalizer

# Summary fallback length when a segment has no summary of its own
CONTENT_SUMMARY_LENGTH = 500


def determine_segment_type(title: str | None, summary: str | None) -> str:
    """Infer a coarse category from keywords in the title and summary.

    Categories are checked in priority order; the first keyword hit wins.

    Example:
        >>> determine_segment_type("Zoom with design team", "")
        'meeting'
    """
    combined = f"{title or ''} {summary or ''}".lower()
    for segment_type, keywords in SEGMENT_KEYWORDS.items():
        if any(keyword in combined for keyword in keywords):
            return segment_type
    return DEFAULT_SEGMENT_TYPE


class LifeLogNormalizer(Normalizer):
    """Turn a raw life-log dictionary into a LifeLogEntry.

    The calendar date comes from startTime converted into the fixed
    reference timezone, whatever the owning user's own preference is. When
    startTime is missing the entry's own date (or the fallback) is used.
    Entries without an id are dropped.
    """

    def __init__(self, reference_timezone: str = REFERENCE_TIMEZONE):
        self.reference_zone = ZoneInfo(reference_timezone)

    def normalize(self, raw: dict[str, Any], fallback_date: str | None = None) -> LifeLogEntry | None:
        limitless_id = raw.get("id")
        if not limitless_id:
            return None

        start = self._parse_instant(raw.get("startTime"))
        end = self._parse_instant(raw.get("endTime"))

        if start is not None:
            date = start.astimezone(self.reference_zone).date().isoformat()
        else:
            date = raw.get("date") or fallback_date
        if not date:
            return None

        title = raw.get("title") or ""
        summary = self._summary(raw)
        return LifeLogEntry(
            limitless_id=str(limitless_id),
            date=date,
            title=title,
            summary=summary,
            markdown_content=raw.get("markdown") if isinstance(raw.get("markdown"), str) else "",
            start_time=start.isoformat() if start else None,
            end_time=end.isoformat() if end else None,
            segment_type=raw.get("segmentType") or determine_segment_type(title, summary),
        )

    def _summary(self, raw: dict[str, Any]) -> str:
        summary = raw.get("summary")
        if isinstance(summary, str) and summary.strip():
            return summary.strip()

        contents = raw.get("contents")
        if isinstance(contents, list) and contents:
            first = contents[0]
            # Content nodes are usually {"type": ..., "content": "..."}
            text = first.get("content") if isinstance(first, dict) else first
            return str(text or "")[:CONTENT_SUMMARY_LENGTH]
        return ""
