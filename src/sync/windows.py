"""Fetch windows for incremental and forced syncs."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from common.constants import (
    INSIGHTS_FIRST_SYNC_DAYS,
    INSIGHTS_SYNC_BUFFER_HOURS,
    LIFELOGS_FIRST_SYNC_DAYS,
    LIFELOGS_SYNC_BUFFER_HOURS,
    REFERENCE_TIMEZONE,
)

# Page limit for an incremental life-log range query
LIFELOG_RANGE_LIMIT = 1000


@dataclass(frozen=True)
class FetchWindow:
    """Instants bounding an insight fetch. end=None means open-ended."""

    start: datetime
    end: datetime | None = None

    def contains(self, moment: datetime) -> bool:
        return moment >= self.start and (self.end is None or moment <= self.end)


@dataclass(frozen=True)
class LifeLogQuery:
    """One call to the life-log endpoint: a single date or a time range."""

    date: str | None = None
    start: str | None = None
    end: str | None = None
    limit: int = 100


def insight_window(
    now: datetime,
    last_success: datetime | None,
    force: bool = False,
    lookback_days: int = 30,
) -> FetchWindow:
    """Compute the window of chats to fetch for an insights sync.

    Args:
        now: Current UTC instant
        last_success: When the last insights sync succeeded, if ever
        force: Refetch the full lookback instead of syncing incrementally
        lookback_days: Days covered by a forced sync

    Returns:
        Forced: [now - lookback_days, now + 1 day], the extra day absorbing
        documents stamped across a timezone boundary. Incremental: from the
        last success minus a one-hour buffer. First sync: the last two days.
    """
    if force:
        return FetchWindow(start=now - timedelta(days=lookback_days), end=now + timedelta(days=1))
    if last_success is not None:
        return FetchWindow(start=last_success - timedelta(hours=INSIGHTS_SYNC_BUFFER_HOURS))
    return FetchWindow(start=now - timedelta(days=INSIGHTS_FIRST_SYNC_DAYS))


def local_now(now: datetime, timezone: str | None) -> datetime:
    return now.astimezone(ZoneInfo(timezone or REFERENCE_TIMEZONE))


def lifelog_queries(
    now: datetime,
    timezone: str | None,
    last_success: datetime | None,
    force: bool = False,
    days_back: int = 30,
    target_date: str | None = None,
) -> list[LifeLogQuery]:
    """Plan the life-log endpoint calls for one sync.

    A target date always wins. A forced sync asks for tomorrow plus the last
    `days_back` dates in the user's timezone. An incremental sync asks for the
    range since the last success minus a two-hour buffer. The very first sync
    asks for the last three dates.
    """
    if target_date:
        return [LifeLogQuery(date=target_date)]

    today = local_now(now, timezone).date()
    if force:
        dates = [today + timedelta(days=1)] + [today - timedelta(days=i) for i in range(days_back)]
        return [LifeLogQuery(date=day.isoformat()) for day in dates]

    if last_success is not None:
        start = last_success - timedelta(hours=LIFELOGS_SYNC_BUFFER_HOURS)
        return [
            LifeLogQuery(start=start.isoformat(), end=now.isoformat(), limit=LIFELOG_RANGE_LIMIT)
        ]

    return [
        LifeLogQuery(date=(today - timedelta(days=i)).isoformat())
        for i in range(LIFELOGS_FIRST_SYNC_DAYS)
    ]
