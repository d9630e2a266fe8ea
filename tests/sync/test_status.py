"""Tests for daily sync eligibility."""

from datetime import datetime
from zoneinfo import ZoneInfo

from sync.bookkeeping import SyncCursor
from sync.status import format_clock, get_sync_status, sync_window_start

LA = ZoneInfo("America/Los_Angeles")


def _at(hour, minute=0, day=25, zone=LA):
    return datetime(2025, 9, day, hour, minute, tzinfo=zone)


def _cursor(status="success", last_sync_at=None):
    return SyncCursor(user_id=1, status=status, last_sync_at=last_sync_at, insights_added=2)


class TestGetSyncStatus:
    """Tests for get_sync_status."""

    def test_before_window_without_history(self):
        status = get_sync_status(None, now=_at(6))
        assert status.should_sync is False
        assert "7:00" in status.reason
        assert status.reason == "Waiting until 7:00 AM PDT"
        assert status.last_sync is None

    def test_after_window_without_history(self):
        status = get_sync_status(None, now=_at(8))
        assert status.should_sync is True
        assert status.reason == "First sync pending for today"

    def test_last_sync_yesterday(self):
        status = get_sync_status(_cursor(last_sync_at=_at(20, day=24)), now=_at(8))
        assert status.should_sync is True
        assert status.reason == "No sync performed yet today"

    def test_already_synced_today(self):
        status = get_sync_status(_cursor(last_sync_at=_at(7, 30)), now=_at(9))
        assert status.should_sync is False
        assert status.reason == "Already synced today at 7:30 AM PDT"
        assert status.last_sync["insights_added"] == 2

    def test_sync_before_window_does_not_count(self):
        status = get_sync_status(_cursor(last_sync_at=_at(6, 45)), now=_at(9))
        assert status.should_sync is True

    def test_waiting_even_with_history(self):
        status = get_sync_status(_cursor(last_sync_at=_at(20, day=24)), now=_at(5))
        assert status.should_sync is False
        assert status.reason.startswith("Waiting until")

    def test_in_progress(self):
        status = get_sync_status(_cursor(status="in_progress", last_sync_at=_at(8)), now=_at(8, 5))
        assert status.should_sync is False
        assert status.in_progress is True
        assert status.reason == "Sync already in progress"

    def test_error_today_allows_retry(self):
        status = get_sync_status(_cursor(status="error", last_sync_at=_at(7, 30)), now=_at(9))
        assert status.should_sync is True
        assert status.reason == "Last sync reported an error"

    def test_user_timezone(self):
        berlin = ZoneInfo("Europe/Berlin")
        status = get_sync_status(None, timezone="Europe/Berlin", now=_at(6, zone=berlin))
        assert status.should_sync is False
        assert status.reason == "Waiting until 7:00 AM CEST"

    def test_now_in_another_zone_is_converted(self):
        # 14:00 UTC is 07:00 in Los Angeles
        status = get_sync_status(None, now=datetime(2025, 9, 25, 14, 0, tzinfo=ZoneInfo("UTC")))
        assert status.should_sync is True

    def test_details_include_reference_zone_time(self):
        status = get_sync_status(_cursor(last_sync_at=_at(7, 30)), timezone="Europe/Berlin", now=_at(9))
        assert status.last_sync["timestamp_pacific"] == "2025-09-25 07:30 AM PDT"
        assert status.last_sync["timestamp_local"].startswith("2025-09-25T16:30:00")
        assert status.last_sync["status"] == "success"


class TestHelpers:
    """Tests for clock formatting and the window start."""

    def test_format_clock_strips_leading_zero(self):
        assert format_clock(_at(7)) == "7:00 AM PDT"
        assert format_clock(_at(19, 5)) == "7:05 PM PDT"
        assert format_clock(_at(11)) == "11:00 AM PDT"

    def test_window_start(self):
        assert sync_window_start(_at(15, 42)) == _at(7)
