"""Per-user sync bookkeeping (the sync_metadata row).

The row is created lazily on the first attempt and written at the start and
end of every attempt. Its status is advisory: marking a user in_progress does
not stop a second concurrent sync, callers serialize syncs per user.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from common.logger import get_logger
from load.db import DatabaseAdapter, Row
from load.store import utc_timestamp

logger = get_logger(__name__)

INSIGHTS = "insights"
LIFELOGS = "lifelogs"
SYNC_KINDS = (INSIGHTS, LIFELOGS)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _parse(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    # datetime('now') defaults are naive UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


@dataclass(frozen=True)
class SyncCursor:
    """Snapshot of one user's sync_metadata row."""

    user_id: int
    status: str
    last_sync_at: datetime | None = None
    last_insights_sync_at: datetime | None = None
    last_lifelogs_sync_at: datetime | None = None
    insights_fetched: int = 0
    insights_added: int = 0
    insights_updated: int = 0
    lifelogs_fetched: int = 0
    lifelogs_added: int = 0
    lifelogs_updated: int = 0
    error_message: str | None = None

    @classmethod
    def from_row(cls, row: Row) -> "SyncCursor":
        return cls(
            user_id=row["user_id"],
            status=row["last_sync_status"],
            last_sync_at=_parse(row["last_sync_at"]),
            last_insights_sync_at=_parse(row["last_insights_sync_at"]),
            last_lifelogs_sync_at=_parse(row["last_lifelogs_sync_at"]),
            insights_fetched=row["insights_fetched"],
            insights_added=row["insights_added"],
            insights_updated=row["insights_updated"],
            lifelogs_fetched=row["lifelogs_fetched"],
            lifelogs_added=row["lifelogs_added"],
            lifelogs_updated=row["lifelogs_updated"],
            error_message=row["error_message"],
        )

    def last_success(self, kind: str) -> datetime | None:
        return self.last_insights_sync_at if kind == INSIGHTS else self.last_lifelogs_sync_at


class SyncBookkeeping:
    """Reads and writes sync_metadata rows.

    Args:
        adapter: Connected database adapter
        clock: Returns the current UTC instant
    """

    def __init__(self, adapter: DatabaseAdapter, clock: Callable[[], datetime] = utc_now):
        self.adapter = adapter
        self.clock = clock

    def get_cursor(self, user_id: int) -> SyncCursor | None:
        row = self.adapter.fetchone("SELECT * FROM sync_metadata WHERE user_id = ?", (user_id,))
        return SyncCursor.from_row(row) if row else None

    def _ensure_row(self, user_id: int) -> None:
        self.adapter.execute(
            "INSERT OR IGNORE INTO sync_metadata (user_id, last_sync_status) VALUES (?, 'idle')",
            (user_id,),
        )

    def _write(self, user_id: int, values: dict) -> None:
        self._ensure_row(user_id)
        assignments = ", ".join(f"{column} = ?" for column in values)
        self.adapter.execute(
            f"UPDATE sync_metadata SET {assignments} WHERE user_id = ?",
            (*values.values(), user_id),
        )
        self.adapter.commit()

    def mark_in_progress(self, user_id: int, kind: str) -> None:
        """Record the start of an attempt and reset that kind's counters."""
        _check_kind(kind)
        self._write(
            user_id,
            {
                "last_sync_status": "in_progress",
                "last_sync_at": utc_timestamp(self.clock()),
                "error_message": None,
                f"{kind}_fetched": 0,
                f"{kind}_added": 0,
                f"{kind}_updated": 0,
            },
        )

    def mark_success(self, user_id: int, kind: str, fetched: int, added: int, updated: int) -> None:
        """Record a successful attempt; its time becomes the next incremental start."""
        _check_kind(kind)
        now = utc_timestamp(self.clock())
        self._write(
            user_id,
            {
                "last_sync_status": "success",
                "last_sync_at": now,
                f"last_{kind}_sync_at": now,
                "error_message": None,
                f"{kind}_fetched": fetched,
                f"{kind}_added": added,
                f"{kind}_updated": updated,
            },
        )
        logger.debug(f"User {user_id} {kind} sync recorded: {fetched} fetched, {added} added, {updated} updated")

    def mark_error(self, user_id: int, kind: str, message: str) -> None:
        """Record a failed attempt. The last-success timestamp is left alone."""
        _check_kind(kind)
        self._write(
            user_id,
            {
                "last_sync_status": "error",
                "last_sync_at": utc_timestamp(self.clock()),
                "error_message": message,
            },
        )


def _check_kind(kind: str) -> None:
    if kind not in SYNC_KINDS:
        raise ValueError(f"Unknown sync kind: {kind}")
