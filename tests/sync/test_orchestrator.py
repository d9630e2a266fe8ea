"""Tests for the sync orchestrator, against an in-memory insight source."""

from datetime import UTC, datetime

import pytest

from sync.clients.base import APIError, InsightSource
from sync.orchestrator import MISSING_API_KEY, EveryNthSync, SyncOrchestrator

NOW = datetime(2025, 9, 25, 12, 0, tzinfo=UTC)

DOCUMENT = "## Key Follow-Ups\n### For You to Action\n- **Call dentist** about appointment\n"


def _chat(content=DOCUMENT, created_at="2025-09-25T07:00:00Z", summary="Daily insights", chat_id="chat-1"):
    return {
        "id": chat_id,
        "summary": summary,
        "createdAt": created_at,
        "messages": [
            {"text": "Generate my daily insights", "user": {"role": "user"}},
            {"text": content, "user": {"role": "assistant"}},
        ],
    }


def _lifelog(log_id, markdown="# Notes", title="Coffee with Sam"):
    return {
        "id": log_id,
        "date": "2025-09-24",
        "title": title,
        "markdown": markdown,
        "startTime": "2025-09-24T16:00:00Z",
        "endTime": "2025-09-24T16:30:00Z",
    }


class FakeSource(InsightSource):
    """In-memory InsightSource recording every call."""

    def __init__(self):
        self.chats = []
        self.lifelogs = []
        self.error = None
        self.chat_calls = []
        self.lifelog_calls = []

    def fetch_chats(self, start=None, limit=200):
        self.chat_calls.append(start)
        if self.error:
            raise self.error
        return list(self.chats)

    def fetch_lifelogs(self, date=None, start=None, end=None, timezone=None, limit=100):
        self.lifelog_calls.append({"date": date, "start": start, "end": end, "timezone": timezone})
        if self.error:
            raise self.error
        if date:
            return [dict(raw) for raw in self.lifelogs if raw.get("date") == date]
        return [dict(raw) for raw in self.lifelogs]


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def discoveries():
    return []


@pytest.fixture
def orchestrator(store, source, discoveries):
    return SyncOrchestrator(
        store,
        client_factory=lambda api_key: source,
        discovery_policy=EveryNthSync(every=2),
        discovery=lambda store, user_id, seen_at: discoveries.append((user_id, seen_at)),
        clock=lambda: NOW,
    )


class TestSyncInsights:
    """Tests for the insights sync."""

    @pytest.mark.asyncio
    async def test_first_sync_adds_insight(self, orchestrator, source, store, user_id):
        source.chats = [_chat()]

        result = await orchestrator.sync_insights(user_id)

        assert result.success
        assert result.message == "Sync completed"
        assert (result.fetched, result.added, result.updated) == (1, 1, 0)
        insight = store.get_insight(user_id, "2025-09-24")
        assert insight["content"] == DOCUMENT
        assert store.get_structured_record(insight["id"]).action_items == ["Call dentist about appointment"]

    @pytest.mark.asyncio
    async def test_first_sync_fetches_last_two_days(self, orchestrator, source, user_id):
        await orchestrator.sync_insights(user_id)
        assert source.chat_calls == ["2025-09-23T12:00:00+00:00"]

    @pytest.mark.asyncio
    async def test_unchanged_insight_is_not_rewritten(self, orchestrator, source, user_id):
        source.chats = [_chat()]
        await orchestrator.sync_insights(user_id)

        result = await orchestrator.sync_insights(user_id, force=True)

        assert (result.fetched, result.added, result.updated) == (1, 0, 0)

    @pytest.mark.asyncio
    async def test_changed_content_updates_and_reextracts(self, orchestrator, source, store, user_id):
        source.chats = [_chat()]
        await orchestrator.sync_insights(user_id)

        revised = "## Decision Log\n### Decisions Made\n- Keep the old laptop another year\n"
        source.chats = [_chat(content=revised)]
        result = await orchestrator.sync_insights(user_id, force=True)

        assert (result.added, result.updated) == (0, 1)
        insight = store.get_insight(user_id, "2025-09-24")
        record = store.get_structured_record(insight["id"])
        assert record.action_items == []
        assert record.decisions == ["Keep the old laptop another year"]

    @pytest.mark.asyncio
    async def test_incremental_sync_skips_chats_before_window(self, orchestrator, source, store, user_id):
        source.chats = [_chat()]
        await orchestrator.sync_insights(user_id)

        # Window now starts an hour before the last success (11:00 UTC)
        result = await orchestrator.sync_insights(user_id)

        assert result.fetched == 0
        assert source.chat_calls[-1] == "2025-09-25T11:00:00+00:00"

    @pytest.mark.asyncio
    async def test_other_chats_are_ignored(self, orchestrator, source, store, user_id):
        source.chats = [
            _chat(summary="Trip planning", chat_id="chat-2"),
            _chat(created_at="2025-09-10T07:00:00Z", chat_id="chat-3"),
            _chat(),
        ]

        result = await orchestrator.sync_insights(user_id)

        assert (result.fetched, result.added) == (1, 1)
        assert len(store.list_insights(user_id=user_id)) == 1

    @pytest.mark.asyncio
    async def test_success_updates_bookkeeping(self, orchestrator, source, user_id):
        source.chats = [_chat()]
        await orchestrator.sync_insights(user_id)

        cursor = orchestrator.bookkeeping.get_cursor(user_id)
        assert cursor.status == "success"
        assert cursor.last_insights_sync_at == NOW
        assert (cursor.insights_fetched, cursor.insights_added) == (1, 1)

    @pytest.mark.asyncio
    async def test_source_error_is_reported_and_recorded(self, orchestrator, source, user_id):
        source.error = APIError("Limitless API timeout for /chats")

        result = await orchestrator.sync_insights(user_id)

        assert not result.success
        assert result.message == "Limitless API timeout for /chats"
        cursor = orchestrator.bookkeeping.get_cursor(user_id)
        assert cursor.status == "error"
        assert cursor.error_message == "Limitless API timeout for /chats"
        assert cursor.last_insights_sync_at is None

    @pytest.mark.asyncio
    async def test_missing_credential(self, orchestrator, source, store):
        user_id = store.create_user("bob")

        result = await orchestrator.sync_insights(user_id)

        assert not result.success
        assert result.credential_missing
        assert result.message == MISSING_API_KEY
        assert source.chat_calls == []
        assert orchestrator.bookkeeping.get_cursor(user_id) is None

    @pytest.mark.asyncio
    async def test_discovery_runs_every_second_sync(self, orchestrator, discoveries, user_id):
        for _ in range(5):
            await orchestrator.sync_insights(user_id)

        assert discoveries == [(user_id, "2025-09-25"), (user_id, "2025-09-25")]

    @pytest.mark.asyncio
    async def test_failed_syncs_do_not_count_towards_discovery(self, orchestrator, source, discoveries, user_id):
        source.error = APIError("down")
        await orchestrator.sync_insights(user_id)
        source.error = None
        await orchestrator.sync_insights(user_id)

        assert discoveries == []

    @pytest.mark.asyncio
    async def test_discovery_failure_marks_sync_failed(self, store, source, user_id):
        def broken_discovery(store, user_id, seen_at):
            raise RuntimeError("discovery broke")

        orchestrator = SyncOrchestrator(
            store,
            client_factory=lambda api_key: source,
            discovery_policy=EveryNthSync(every=1),
            discovery=broken_discovery,
            clock=lambda: NOW,
        )

        result = await orchestrator.sync_insights(user_id)

        assert not result.success
        assert orchestrator.bookkeeping.get_cursor(user_id).status == "error"


class TestSyncLifeLogs:
    """Tests for the life-log sync."""

    @pytest.mark.asyncio
    async def test_first_sync_queries_three_dates(self, orchestrator, source, store, user_id):
        source.lifelogs = [_lifelog("log-1"), _lifelog("log-2")]

        result = await orchestrator.sync_lifelogs(user_id)

        assert result.success
        assert (result.synced, result.updated, result.skipped, result.total_processed) == (2, 0, 0, 2)
        assert [call["date"] for call in source.lifelog_calls] == ["2025-09-25", "2025-09-24", "2025-09-23"]
        assert all(call["timezone"] == "America/Los_Angeles" for call in source.lifelog_calls)
        assert result.message == "Life logs synced: 2 added, 0 updated, 0 skipped"
        assert len(store.list_lifelogs(user_id, "2025-09-24")) == 2

    @pytest.mark.asyncio
    async def test_second_pass_changes_nothing(self, orchestrator, source, user_id):
        source.lifelogs = [_lifelog("log-1"), _lifelog("log-2")]
        await orchestrator.sync_lifelogs(user_id)

        result = await orchestrator.sync_lifelogs(user_id)

        assert (result.synced, result.updated, result.skipped) == (0, 0, 2)
        assert source.lifelog_calls[-1]["start"] == "2025-09-25T10:00:00+00:00"

    @pytest.mark.asyncio
    async def test_changed_markdown_updates_only_that_entry(self, orchestrator, source, store, user_id):
        source.lifelogs = [_lifelog("log-1"), _lifelog("log-2")]
        await orchestrator.sync_lifelogs(user_id)
        untouched = store.get_lifelog("log-2")

        source.lifelogs = [_lifelog("log-1", markdown="# Notes\n\nMore detail"), _lifelog("log-2")]
        result = await orchestrator.sync_lifelogs(user_id)

        assert (result.synced, result.updated, result.skipped) == (0, 1, 1)
        assert store.get_lifelog("log-1")["markdown_content"] == "# Notes\n\nMore detail"
        assert store.get_lifelog("log-2") == untouched

    @pytest.mark.asyncio
    async def test_force_rewrites_unchanged_entries(self, orchestrator, source, user_id):
        source.lifelogs = [_lifelog("log-1")]
        await orchestrator.sync_lifelogs(user_id)

        result = await orchestrator.sync_lifelogs(user_id, force=True, days_back=2)

        assert (result.synced, result.updated) == (0, 1)
        assert [call["date"] for call in source.lifelog_calls[-3:]] == [
            "2025-09-26",
            "2025-09-25",
            "2025-09-24",
        ]

    @pytest.mark.asyncio
    async def test_sync_single_date(self, orchestrator, source, user_id):
        source.lifelogs = [_lifelog("log-1")]

        result = await orchestrator.sync_lifelogs_for_date(user_id, "2025-09-24")

        assert result.synced == 1
        assert [call["date"] for call in source.lifelog_calls] == ["2025-09-24"]

    @pytest.mark.asyncio
    async def test_entries_without_id_are_skipped(self, orchestrator, source, store, user_id):
        nameless = _lifelog("unused")
        del nameless["id"]
        source.lifelogs = [nameless, _lifelog("log-1")]

        result = await orchestrator.sync_lifelogs(user_id)

        assert (result.synced, result.total_processed) == (1, 2)
        assert len(store.list_lifelogs(user_id)) == 1

    @pytest.mark.asyncio
    async def test_segment_type_inferred(self, orchestrator, source, store, user_id):
        source.lifelogs = [_lifelog("log-1", title="Zoom with design team")]
        await orchestrator.sync_lifelogs(user_id)
        assert store.get_lifelog("log-1")["segment_type"] == "meeting"

    @pytest.mark.asyncio
    async def test_error_is_reported_and_recorded(self, orchestrator, source, user_id):
        source.error = APIError("Limitless API error: 500")

        result = await orchestrator.sync_lifelogs(user_id)

        assert not result.success
        assert result.message == "Failed to sync life logs: Limitless API error: 500"
        cursor = orchestrator.bookkeeping.get_cursor(user_id)
        assert cursor.status == "error"
        assert cursor.last_lifelogs_sync_at is None

    @pytest.mark.asyncio
    async def test_missing_credential(self, orchestrator, source, store):
        user_id = store.create_user("bob")
        store.upsert_user_config(user_id, limitless_api_key="")

        result = await orchestrator.sync_lifelogs(user_id)

        assert result.credential_missing
        assert source.lifelog_calls == []


class TestEveryNthSync:
    """Tests for the discovery policy."""

    def test_counts_per_user(self):
        policy = EveryNthSync(every=2)
        assert [policy.should_run(1) for _ in range(4)] == [False, True, False, True]
        assert policy.should_run(2) is False

    def test_rejects_zero(self):
        with pytest.raises(ValueError):
            EveryNthSync(every=0)
