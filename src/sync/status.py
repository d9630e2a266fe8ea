"""Daily sync-eligibility status for one user."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from common.constants import REFERENCE_TIMEZONE, SYNC_WINDOW_HOUR

from .bookkeeping import SyncCursor


@dataclass(frozen=True)
class SyncStatus:
    should_sync: bool
    reason: str
    in_progress: bool = False
    last_sync: dict[str, Any] | None = None


def format_clock(moment: datetime) -> str:
    """Format like '7:00 AM PDT'."""
    return moment.strftime("%I:%M %p %Z").lstrip("0")


def sync_window_start(now: datetime, timezone: str | None = None) -> datetime:
    """07:00 today in the given timezone (default: the reference zone)."""
    local = now.astimezone(ZoneInfo(timezone or REFERENCE_TIMEZONE))
    return local.replace(hour=SYNC_WINDOW_HOUR, minute=0, second=0, microsecond=0)


def get_sync_status(
    cursor: SyncCursor | None, timezone: str | None = None, now: datetime | None = None
) -> SyncStatus:
    """Decide whether a sync should run now.

    The source finishes writing the previous day's document around 07:00, so
    one successful sync after that time is enough for the day.

    Args:
        cursor: The user's bookkeeping snapshot, None if never synced
        timezone: User's timezone preference (default: the reference zone)
        now: Current aware instant (default: now)

    Returns:
        SyncStatus with a human-readable reason and last-sync details
    """
    zone = ZoneInfo(timezone or REFERENCE_TIMEZONE)
    now = (now or datetime.now(zone)).astimezone(zone)
    window = sync_window_start(now, timezone)
    waiting = f"Waiting until {format_clock(window)}"

    if cursor is None or cursor.last_sync_at is None:
        eligible = now >= window
        return SyncStatus(
            should_sync=eligible, reason="First sync pending for today" if eligible else waiting
        )

    details = last_sync_details(cursor, zone)
    in_progress = cursor.status == "in_progress"

    if in_progress:
        return SyncStatus(False, "Sync already in progress", True, details)
    if now < window:
        return SyncStatus(False, waiting, False, details)
    if cursor.last_sync_at < window or cursor.status != "success":
        reason = "No sync performed yet today" if cursor.status == "success" else "Last sync reported an error"
        return SyncStatus(True, reason, False, details)

    last_local = cursor.last_sync_at.astimezone(zone)
    return SyncStatus(False, f"Already synced today at {format_clock(last_local)}", False, details)


def last_sync_details(cursor: SyncCursor, zone: ZoneInfo) -> dict[str, Any]:
    """Timestamps (UTC, local and reference zone), status, counters and error."""
    return {
        "timestamp": cursor.last_sync_at.isoformat(),
        "timestamp_local": cursor.last_sync_at.astimezone(zone).isoformat(),
        "timestamp_pacific": cursor.last_sync_at.astimezone(ZoneInfo(REFERENCE_TIMEZONE)).strftime(
            "%Y-%m-%d %I:%M %p %Z"
        ),
        "status": cursor.status,
        "insights_fetched": cursor.insights_fetched,
        "insights_added": cursor.insights_added,
        "insights_updated": cursor.insights_updated,
        "lifelogs_fetched": cursor.lifelogs_fetched,
        "lifelogs_added": cursor.lifelogs_added,
        "lifelogs_updated": cursor.lifelogs_updated,
        "error_message": cursor.error_message,
    }
