"""Plain records passed between the sync layer and the store."""

from dataclasses import dataclass

from common.constants import REFERENCE_TIMEZONE


@dataclass(frozen=True)
class UserConfig:
    """Per-user integration settings."""

    user_id: int
    timezone: str = REFERENCE_TIMEZONE
    limitless_api_key: str | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.limitless_api_key)


@dataclass(frozen=True)
class LifeLogEntry:
    """A normalized life-log segment.

    Attributes:
        limitless_id: Remote identifier, the upsert key
        date: Calendar date (YYYY-MM-DD) of start_time in the reference timezone
        start_time: ISO-8601 start instant in UTC
        end_time: ISO-8601 end instant in UTC
        segment_type: One of meeting, conversation, work, break, general
    """

    limitless_id: str
    date: str
    title: str | None = None
    summary: str | None = None
    markdown_content: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    segment_type: str = "general"

    # Fields compared by change detection, in storage column names
    COMPARED_FIELDS = (
        "title",
        "summary",
        "markdown_content",
        "segment_type",
        "start_time",
        "end_time",
        "date",
    )

    def differs_from(self, row: dict) -> bool:
        """Whether any compared field differs from a stored lifelogs row."""
        return any(getattr(self, name) != row.get(name) for name in self.COMPARED_FIELDS)
