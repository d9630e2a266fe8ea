"""Normalize Limitless chats into daily insight documents."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from common.constants import DAILY_INSIGHTS_LABEL

from .base import Normalizer


@dataclass(frozen=True)
class InsightDocument:
    """One daily insight ready for the (user, date) upsert."""

    date: str
    content: str
    created_at: datetime
    remote_id: str | None = None


def is_daily_insight(chat: dict[str, Any]) -> bool:
    """Whether a chat's summary label marks it as a daily insight."""
    return chat.get("summary") == DAILY_INSIGHTS_LABEL


class InsightNormalizer(Normalizer):
    """Turn a "Daily insights" chat into an InsightDocument.

    The source writes each document at dawn about the previous day, so the
    document date is the UTC date of createdAt minus one day. The content is
    the text of the first assistant message.
    """

    def normalize(self, raw: dict[str, Any]) -> InsightDocument | None:
        if not is_daily_insight(raw):
            return None

        created = self._parse_instant(raw.get("createdAt"))
        if created is None:
            return None

        content = self._assistant_text(raw)
        if not content:
            return None

        return InsightDocument(
            date=(created.date() - timedelta(days=1)).isoformat(),
            content=content,
            created_at=created,
            remote_id=raw.get("id"),
        )

    def _assistant_text(self, chat: dict[str, Any]) -> str:
        for message in chat.get("messages") or []:
            if self._safe_get(message, "user", "role") == "assistant":
                return message.get("text") or ""
        return ""
