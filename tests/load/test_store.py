"""Tests for the DataStore repository."""

import json

import pytest

from extract.engine import extract
from extract.models import DialogueLine, KnowledgeNugget, MemorableExchange, Quote, StructuredRecord, Theme
from load.db import IntegrityError
from load.models import LifeLogEntry, UserConfig


@pytest.fixture
def record():
    return StructuredRecord(
        action_items=["Call dentist about appointment", "Renew the passport soon"],
        decisions=["Going with the cheaper car insurance plan"],
        quotes=[Quote(text="Are we there yet?", speaker="Alice")],
        themes=[Theme(title="Procrastination", description="You keep delaying budget review.")],
        knowledge_nuggets=[KnowledgeNugget(fact="Honey never spoils", category="Food")],
        memorable_exchanges=[
            MemorableExchange(
                dialogue=[
                    DialogueLine(text="Are we there yet?", speaker="Alice"),
                    DialogueLine(text="Almost."),
                ],
                context="Road trip banter",
            )
        ],
    )


def _entry(**overrides) -> LifeLogEntry:
    values = {
        "limitless_id": "log-1",
        "date": "2025-09-24",
        "title": "Morning standup",
        "summary": "Team sync",
        "markdown_content": "# Standup",
        "start_time": "2025-09-24T16:00:00+00:00",
        "end_time": "2025-09-24T16:15:00+00:00",
        "segment_type": "meeting",
    }
    values.update(overrides)
    return LifeLogEntry(**values)


class TestUsers:
    """Tests for users and their configuration."""

    def test_create_and_lookup(self, store):
        user_id = store.create_user("bob")
        assert store.get_user_id("bob") == user_id
        assert store.get_user_id("nobody") is None

    def test_config_defaults(self, store):
        user_id = store.create_user("bob")
        config = store.upsert_user_config(user_id)
        assert config == UserConfig(user_id=user_id, timezone="America/Los_Angeles")
        assert not config.has_credentials

    def test_upsert_keeps_unspecified_values(self, store, user_id):
        store.upsert_user_config(user_id, timezone="Europe/Berlin")
        config = store.get_user_config(user_id)
        assert config.timezone == "Europe/Berlin"
        assert config.limitless_api_key == "test-key"

    def test_missing_config(self, store):
        assert store.get_user_config(12345) is None

    def test_users_with_credentials(self, store, user_id):
        other = store.create_user("bob")
        store.upsert_user_config(other)
        empty = store.create_user("carol")
        store.upsert_user_config(empty, limitless_api_key="")

        assert store.get_users_with_credentials() == [user_id]


class TestInsights:
    """Tests for insight rows."""

    def test_create_and_get(self, store, user_id):
        insight_id = store.create_insight(user_id, "2025-09-24", "# Day")
        row = store.get_insight(user_id, "2025-09-24")
        assert row["id"] == insight_id
        assert row["content"] == "# Day"
        assert store.get_insight_by_id(insight_id)["date"] == "2025-09-24"

    def test_one_insight_per_user_and_date(self, store, user_id):
        store.create_insight(user_id, "2025-09-24", "first")
        with pytest.raises(IntegrityError):
            store.create_insight(user_id, "2025-09-24", "second")

    def test_update_content(self, store, user_id):
        insight_id = store.create_insight(user_id, "2025-09-24", "old")
        store.update_insight_content(insight_id, "new")
        assert store.get_insight_by_id(insight_id)["content"] == "new"

    def test_list_filters_and_order(self, store, user_id):
        for day in ("2025-09-20", "2025-09-22", "2025-09-24"):
            store.create_insight(user_id, day, f"# {day}")
        other = store.create_user("bob")
        store.create_insight(other, "2025-09-22", "# bob")

        dates = [row["date"] for row in store.list_insights(user_id=user_id)]
        assert dates == ["2025-09-24", "2025-09-22", "2025-09-20"]

        ranged = store.list_insights(user_id=user_id, start_date="2025-09-21", end_date="2025-09-24")
        assert [row["date"] for row in ranged] == ["2025-09-24", "2025-09-22"]

        assert len(store.list_insights(limit=2)) == 2
        assert len(store.list_insights()) == 4


class TestStructuredRecords:
    """Tests for derived rows."""

    def test_round_trip(self, store, user_id, record):
        insight_id = store.create_insight(user_id, "2025-09-24", "# Day")
        inserted = store.replace_structured_records(insight_id, user_id, "2025-09-24", record)

        assert inserted == 7
        assert store.get_structured_record(insight_id) == record

    def test_dialogue_stored_as_json(self, store, user_id, record):
        insight_id = store.create_insight(user_id, "2025-09-24", "# Day")
        store.replace_structured_records(insight_id, user_id, "2025-09-24", record)

        row = store.adapter.fetchone("SELECT dialogue FROM memorable_exchanges WHERE insight_id = ?", (insight_id,))
        assert json.loads(row["dialogue"]) == [
            {"text": "Are we there yet?", "speaker": "Alice"},
            {"text": "Almost.", "speaker": None},
        ]

    def test_replace_removes_stale_rows(self, store, user_id, record):
        insight_id = store.create_insight(user_id, "2025-09-24", "# Day")
        store.replace_structured_records(insight_id, user_id, "2025-09-24", record)

        smaller = StructuredRecord(ideas=["A podcast about local history"])
        store.replace_structured_records(insight_id, user_id, "2025-09-24", smaller)

        assert store.get_structured_record(insight_id) == smaller
        assert store.adapter.fetchscalar("SELECT COUNT(*) FROM action_items") == 0

    def test_reextraction_is_idempotent(self, store, user_id):
        content = "## Decision Log\n### Decisions Made\n- Keep the old laptop another year\n"
        insight_id = store.create_insight(user_id, "2025-09-24", content)
        for _ in range(2):
            store.replace_structured_records(insight_id, user_id, "2025-09-24", extract(content, "2025-09-24"))

        assert store.adapter.fetchscalar("SELECT COUNT(*) FROM decisions") == 1

    def test_failed_replace_rolls_back(self, store, user_id, record):
        insight_id = store.create_insight(user_id, "2025-09-24", "# Day")
        store.replace_structured_records(insight_id, user_id, "2025-09-24", record)

        with pytest.raises(IntegrityError):
            # Unknown user id violates the foreign key after the deletes ran
            store.replace_structured_records(insight_id, 999, "2025-09-24", record)

        assert store.get_structured_record(insight_id) == record

    def test_deleting_insight_cascades(self, store, user_id, record):
        insight_id = store.create_insight(user_id, "2025-09-24", "# Day")
        store.replace_structured_records(insight_id, user_id, "2025-09-24", record)

        store.adapter.execute("DELETE FROM insights WHERE id = ?", (insight_id,))
        store.adapter.commit()

        assert store.adapter.fetchscalar("SELECT COUNT(*) FROM quotes") == 0


class TestLifeLogs:
    """Tests for life-log rows."""

    def test_create_and_get(self, store, user_id):
        store.create_lifelog(user_id, _entry())
        row = store.get_lifelog("log-1")
        assert row["title"] == "Morning standup"
        assert row["segment_type"] == "meeting"
        assert not _entry().differs_from(row)

    def test_duplicate_remote_id_rejected(self, store, user_id):
        store.create_lifelog(user_id, _entry())
        with pytest.raises(IntegrityError):
            store.create_lifelog(user_id, _entry(title="Other"))

    def test_update(self, store, user_id):
        store.create_lifelog(user_id, _entry())
        changed = _entry(markdown_content="# Standup\n\nNotes")
        assert changed.differs_from(store.get_lifelog("log-1"))

        store.update_lifelog(changed)

        assert store.get_lifelog("log-1")["markdown_content"] == "# Standup\n\nNotes"

    def test_list_by_date(self, store, user_id):
        store.create_lifelog(user_id, _entry())
        store.create_lifelog(
            user_id,
            _entry(limitless_id="log-2", date="2025-09-25", start_time="2025-09-25T16:00:00+00:00"),
        )

        assert [row["limitless_id"] for row in store.list_lifelogs(user_id)] == ["log-1", "log-2"]
        assert [row["limitless_id"] for row in store.list_lifelogs(user_id, "2025-09-25")] == ["log-2"]


class TestSectionDiscoveries:
    """Tests for discovered sections."""

    def test_record_and_refresh(self, store):
        store.record_discovery("Gratitude Notes", occurrences=1, sample="[]", seen_at="2025-09-23")
        store.record_discovery("Gratitude Notes", occurrences=4, sample='["x"]', seen_at="2025-09-25")

        (row,) = store.list_discoveries()
        assert row["occurrence_count"] == 4
        assert row["first_seen"] == "2025-09-23"
        assert row["last_seen"] == "2025-09-25"

    def test_status_survives_rerecord(self, store):
        store.record_discovery("Energy Check", occurrences=1, sample="[]", seen_at="2025-09-23")
        (row,) = store.list_discoveries()

        assert store.set_discovery_status(row["id"], "dismissed")
        store.record_discovery("Energy Check", occurrences=2, sample="[]", seen_at="2025-09-24")

        assert store.list_discoveries("pending") == []
        assert store.list_discoveries("dismissed")[0]["occurrence_count"] == 2

    def test_unknown_id(self, store):
        assert store.set_discovery_status(42, "approved") is False

    def test_invalid_status(self, store):
        with pytest.raises(ValueError):
            store.set_discovery_status(1, "archived")
