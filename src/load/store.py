"""Data access for users, insights, derived records, life logs and discoveries.

Every write method commits on its own, so a sync that fails halfway keeps
the items it already stored.
"""

import json
from datetime import UTC, datetime

from common.constants import REFERENCE_TIMEZONE
from common.logger import get_logger
from extract.models import DialogueLine, KnowledgeNugget, MemorableExchange, Quote, StructuredRecord, Theme
from load.db import DatabaseAdapter, Row

from .models import LifeLogEntry, UserConfig

logger = get_logger(__name__)

# Tables holding one plain string per row, keyed by record field name
_TEXT_TABLES = {
    "action_items": "action_items",
    "decisions": "decisions",
    "ideas": "ideas",
    "questions": "questions",
    "highlights": "highlights",
}

DERIVED_TABLES = (
    "action_items",
    "decisions",
    "ideas",
    "questions",
    "highlights",
    "quotes",
    "themes",
    "knowledge_nuggets",
    "memorable_exchanges",
)

DISCOVERY_STATUSES = ("pending", "approved", "dismissed")


def utc_timestamp(moment: datetime | None = None) -> str:
    """Format an instant as an ISO-8601 UTC string (now when omitted)."""
    moment = moment or datetime.now(UTC)
    return moment.astimezone(UTC).isoformat()


class DataStore:
    """Repository over a connected DatabaseAdapter."""

    def __init__(self, adapter: DatabaseAdapter):
        self.adapter = adapter

    # Users and configuration

    def create_user(self, name: str) -> int:
        cursor = self.adapter.execute("INSERT INTO users (name) VALUES (?)", (name,))
        self.adapter.commit()
        return cursor.lastrowid

    def get_user_id(self, name: str) -> int | None:
        return self.adapter.fetchscalar("SELECT id FROM users WHERE name = ?", (name,))

    def upsert_user_config(
        self,
        user_id: int,
        limitless_api_key: str | None = None,
        timezone: str | None = None,
    ) -> UserConfig:
        """Create or update a user's config. None leaves a stored value as is."""
        existing = self.get_user_config(user_id)
        if existing is None:
            self.adapter.execute(
                "INSERT INTO user_configs (user_id, timezone, limitless_api_key) VALUES (?, ?, ?)",
                (user_id, timezone or REFERENCE_TIMEZONE, limitless_api_key),
            )
        else:
            self.adapter.execute(
                """
                UPDATE user_configs
                SET timezone = ?, limitless_api_key = ?, updated_at = datetime('now')
                WHERE user_id = ?
                """,
                (
                    timezone or existing.timezone,
                    limitless_api_key if limitless_api_key is not None else existing.limitless_api_key,
                    user_id,
                ),
            )
        self.adapter.commit()
        return self.get_user_config(user_id)

    def get_user_config(self, user_id: int) -> UserConfig | None:
        row = self.adapter.fetchone(
            "SELECT user_id, timezone, limitless_api_key FROM user_configs WHERE user_id = ?",
            (user_id,),
        )
        return UserConfig(**row) if row else None

    def get_users_with_credentials(self) -> list[int]:
        rows = self.adapter.fetchall(
            """
            SELECT user_id FROM user_configs
            WHERE limitless_api_key IS NOT NULL AND limitless_api_key != ''
            ORDER BY user_id
            """
        )
        return [row["user_id"] for row in rows]

    # Insights

    def get_insight(self, user_id: int, date: str) -> Row | None:
        return self.adapter.fetchone(
            "SELECT * FROM insights WHERE user_id = ? AND date = ?", (user_id, date)
        )

    def get_insight_by_id(self, insight_id: int) -> Row | None:
        return self.adapter.fetchone("SELECT * FROM insights WHERE id = ?", (insight_id,))

    def list_insights(
        self,
        user_id: int | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """List insights, newest date first, optionally filtered.

        Args:
            user_id: Only this user's insights
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            limit: Maximum number of rows
        """
        clauses = []
        params: list = []
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if start_date is not None:
            clauses.append("date >= ?")
            params.append(start_date)
        if end_date is not None:
            clauses.append("date <= ?")
            params.append(end_date)

        query = "SELECT * FROM insights"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY date DESC, user_id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        return self.adapter.fetchall(query, tuple(params))

    def create_insight(self, user_id: int, date: str, content: str) -> int:
        """Insert an insight.

        Raises:
            IntegrityError: If the user already has an insight for `date`
        """
        cursor = self.adapter.execute(
            "INSERT INTO insights (user_id, date, content) VALUES (?, ?, ?)",
            (user_id, date, content),
        )
        self.adapter.commit()
        return cursor.lastrowid

    def update_insight_content(self, insight_id: int, content: str) -> None:
        self.adapter.execute(
            "UPDATE insights SET content = ?, updated_at = datetime('now') WHERE id = ?",
            (content, insight_id),
        )
        self.adapter.commit()

    # Derived records

    def replace_structured_records(
        self, insight_id: int, user_id: int, date: str, record: StructuredRecord
    ) -> int:
        """Delete an insight's derived rows and insert `record` in their place.

        Returns:
            Number of rows inserted
        """
        try:
            for table in DERIVED_TABLES:
                self.adapter.execute(f"DELETE FROM {table} WHERE insight_id = ?", (insight_id,))

            inserted = 0
            base = (user_id, insight_id, date)
            for field, table in _TEXT_TABLES.items():
                for position, item in enumerate(getattr(record, field)):
                    self.adapter.execute(
                        f"INSERT INTO {table} (user_id, insight_id, date, position, content)"
                        " VALUES (?, ?, ?, ?, ?)",
                        (*base, position, item),
                    )
                    inserted += 1

            for position, quote in enumerate(record.quotes):
                self.adapter.execute(
                    "INSERT INTO quotes (user_id, insight_id, date, position, text, speaker)"
                    " VALUES (?, ?, ?, ?, ?, ?)",
                    (*base, position, quote.text, quote.speaker),
                )
                inserted += 1

            for position, theme in enumerate(record.themes):
                self.adapter.execute(
                    "INSERT INTO themes (user_id, insight_id, date, position, title, description)"
                    " VALUES (?, ?, ?, ?, ?, ?)",
                    (*base, position, theme.title, theme.description),
                )
                inserted += 1

            for position, nugget in enumerate(record.knowledge_nuggets):
                self.adapter.execute(
                    "INSERT INTO knowledge_nuggets"
                    " (user_id, insight_id, date, position, fact, category, source)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (*base, position, nugget.fact, nugget.category, nugget.source),
                )
                inserted += 1

            for position, exchange in enumerate(record.memorable_exchanges):
                dialogue = json.dumps([line.model_dump() for line in exchange.dialogue])
                self.adapter.execute(
                    "INSERT INTO memorable_exchanges"
                    " (user_id, insight_id, date, position, dialogue, context)"
                    " VALUES (?, ?, ?, ?, ?, ?)",
                    (*base, position, dialogue, exchange.context),
                )
                inserted += 1

            self.adapter.commit()
        except Exception:
            self.adapter.rollback()
            raise

        return inserted

    def get_structured_record(self, insight_id: int) -> StructuredRecord:
        """Rebuild the stored derived rows of one insight as a StructuredRecord."""

        def rows(table: str) -> list[Row]:
            return self.adapter.fetchall(
                f"SELECT * FROM {table} WHERE insight_id = ? ORDER BY position", (insight_id,)
            )

        fields: dict = {
            field: [row["content"] for row in rows(table)] for field, table in _TEXT_TABLES.items()
        }
        fields["quotes"] = [Quote(text=row["text"], speaker=row["speaker"]) for row in rows("quotes")]
        fields["themes"] = [
            Theme(title=row["title"], description=row["description"]) for row in rows("themes")
        ]
        fields["knowledge_nuggets"] = [
            KnowledgeNugget(fact=row["fact"], category=row["category"], source=row["source"])
            for row in rows("knowledge_nuggets")
        ]
        fields["memorable_exchanges"] = [
            MemorableExchange(
                dialogue=[DialogueLine(**line) for line in json.loads(row["dialogue"])],
                context=row["context"],
            )
            for row in rows("memorable_exchanges")
        ]
        return StructuredRecord(**fields)

    # Life logs

    def get_lifelog(self, limitless_id: str) -> Row | None:
        return self.adapter.fetchone(
            "SELECT * FROM lifelogs WHERE limitless_id = ?", (limitless_id,)
        )

    def list_lifelogs(self, user_id: int, date: str | None = None) -> list[Row]:
        if date is None:
            return self.adapter.fetchall(
                "SELECT * FROM lifelogs WHERE user_id = ? ORDER BY start_time", (user_id,)
            )
        return self.adapter.fetchall(
            "SELECT * FROM lifelogs WHERE user_id = ? AND date = ? ORDER BY start_time",
            (user_id, date),
        )

    def create_lifelog(self, user_id: int, entry: LifeLogEntry) -> int:
        """Insert a life-log entry.

        Raises:
            IntegrityError: If the remote id is already stored
        """
        cursor = self.adapter.execute(
            """
            INSERT INTO lifelogs (
                user_id, limitless_id, date, title, summary, markdown_content,
                start_time, end_time, segment_type
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                entry.limitless_id,
                entry.date,
                entry.title,
                entry.summary,
                entry.markdown_content,
                entry.start_time,
                entry.end_time,
                entry.segment_type,
            ),
        )
        self.adapter.commit()
        return cursor.lastrowid

    def update_lifelog(self, entry: LifeLogEntry) -> None:
        self.adapter.execute(
            """
            UPDATE lifelogs SET
                date = ?, title = ?, summary = ?, markdown_content = ?,
                start_time = ?, end_time = ?, segment_type = ?,
                updated_at = datetime('now'), last_synced_at = datetime('now')
            WHERE limitless_id = ?
            """,
            (
                entry.date,
                entry.title,
                entry.summary,
                entry.markdown_content,
                entry.start_time,
                entry.end_time,
                entry.segment_type,
                entry.limitless_id,
            ),
        )
        self.adapter.commit()

    # Section discoveries

    def record_discovery(self, header: str, occurrences: int, sample: str, seen_at: str) -> None:
        """Insert a discovered section or refresh its count, sample and last_seen.

        Approved and dismissed discoveries keep their status.
        """
        existing = self.adapter.fetchone(
            "SELECT id FROM section_discoveries WHERE section_header = ?", (header,)
        )
        if existing is None:
            self.adapter.execute(
                """
                INSERT INTO section_discoveries
                    (section_header, first_seen, last_seen, occurrence_count, sample_content)
                VALUES (?, ?, ?, ?, ?)
                """,
                (header, seen_at, seen_at, occurrences, sample),
            )
        else:
            self.adapter.execute(
                """
                UPDATE section_discoveries
                SET last_seen = ?, occurrence_count = ?, sample_content = ?,
                    updated_at = datetime('now')
                WHERE id = ?
                """,
                (seen_at, occurrences, sample, existing["id"]),
            )
        self.adapter.commit()

    def list_discoveries(self, status: str = "pending") -> list[Row]:
        return self.adapter.fetchall(
            """
            SELECT * FROM section_discoveries
            WHERE status = ?
            ORDER BY occurrence_count DESC, section_header
            """,
            (status,),
        )

    def set_discovery_status(self, discovery_id: int, status: str) -> bool:
        """Approve or dismiss a discovery.

        Returns:
            False if no discovery has that id
        """
        if status not in DISCOVERY_STATUSES:
            raise ValueError(f"Unknown discovery status: {status}")
        cursor = self.adapter.execute(
            "UPDATE section_discoveries SET status = ?, updated_at = datetime('now') WHERE id = ?",
            (status, discovery_id),
        )
        self.adapter.commit()
        updated = cursor.rowcount > 0
        if updated:
            logger.info(f"Discovery {discovery_id} marked [bold]{status}[/bold]")
        return updated
