"""Incremental synchronization of insights and life logs for one user.

Both syncs follow the same shape: resolve the user's credential, mark the
bookkeeping row in progress, compute a fetch window, fetch, normalize, upsert
item by item, then mark success or error. Each upsert commits on its own, so
a failure halfway keeps everything stored before it.

The orchestrator does no locking. Callers (the scheduler and manual
triggers) must not run two syncs for the same user at once.
"""

import asyncio
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

from common.env import env
from common.logger import get_logger
from extract.discovery import check_for_new_sections
from load.reprocess import refresh_structured_data
from load.store import DataStore

from .bookkeeping import INSIGHTS, LIFELOGS, SyncBookkeeping, utc_now
from .clients.base import InsightSource
from .clients.limitless import LimitlessClient
from .normalizers.insight_normalizer import InsightDocument, InsightNormalizer
from .normalizers.lifelog_normalizer import LifeLogNormalizer
from .windows import insight_window, lifelog_queries, local_now

logger = get_logger(__name__)

MISSING_API_KEY = "Missing API key"


@dataclass(frozen=True)
class InsightSyncResult:
    success: bool
    message: str
    fetched: int = 0
    added: int = 0
    updated: int = 0
    credential_missing: bool = False


@dataclass(frozen=True)
class LifeLogSyncResult:
    success: bool
    message: str
    synced: int = 0
    updated: int = 0
    skipped: int = 0
    total_processed: int = 0
    credential_missing: bool = False


class EveryNthSync:
    """Discovery policy: run on every Nth successful insights sync per user."""

    def __init__(self, every: int | None = None):
        self.every = every if every is not None else env.discovery_every_n_syncs()
        if self.every < 1:
            raise ValueError("every must be at least 1")
        self.counts: Counter = Counter()

    def should_run(self, user_id: int) -> bool:
        self.counts[user_id] += 1
        return self.counts[user_id] % self.every == 0


class SyncOrchestrator:
    """Run insights and life-log syncs against a remote InsightSource.

    Args:
        store: Data store over a connected adapter
        client_factory: Builds an InsightSource from a user's API key
        bookkeeping: Sync bookkeeping (default: over the store's adapter)
        discovery_policy: Decides when to run section discovery after a sync
        discovery: Section discovery step, called with (store, user_id, seen_at)
        clock: Returns the current UTC instant
    """

    def __init__(
        self,
        store: DataStore,
        client_factory: Callable[[str], InsightSource] = LimitlessClient,
        bookkeeping: SyncBookkeeping | None = None,
        discovery_policy: EveryNthSync | None = None,
        discovery: Callable[[DataStore, int, str], object] = check_for_new_sections,
        clock: Callable = utc_now,
    ):
        self.store = store
        self.client_factory = client_factory
        self.clock = clock
        self.bookkeeping = bookkeeping or SyncBookkeeping(store.adapter, clock=clock)
        self.discovery_policy = discovery_policy or EveryNthSync()
        self.discovery = discovery
        self.insight_normalizer = InsightNormalizer()
        self.lifelog_normalizer = LifeLogNormalizer()

    async def sync_insights(
        self, user_id: int, force: bool = False, lookback_days: int | None = None
    ) -> InsightSyncResult:
        """Pull "Daily insights" chats and upsert them by (user, date).

        Args:
            user_id: User to sync
            force: Refetch the full lookback instead of syncing incrementally
            lookback_days: Days covered by a forced sync (default: INSIGHT_LOOKBACK_DAYS)

        Returns:
            InsightSyncResult; failures are reported in it, never raised
        """
        config = self.store.get_user_config(user_id)
        if config is None or not config.has_credentials:
            logger.info(f"User {user_id} has no Limitless API key, skipping insights sync")
            return InsightSyncResult(success=False, message=MISSING_API_KEY, credential_missing=True)

        self.bookkeeping.mark_in_progress(user_id, INSIGHTS)
        fetched = added = updated = 0

        try:
            cursor = self.bookkeeping.get_cursor(user_id)
            window = insight_window(
                self.clock(),
                cursor.last_success(INSIGHTS) if cursor else None,
                force=force,
                lookback_days=lookback_days or env.insight_lookback_days(),
            )
            source = self.client_factory(config.limitless_api_key)
            chats = await asyncio.to_thread(source.fetch_chats, start=window.start.isoformat())

            for chat in chats:
                document = self.insight_normalizer.normalize(chat)
                if document is None or not window.contains(document.created_at):
                    continue
                fetched += 1
                outcome = self._upsert_insight(user_id, document)
                if outcome == "added":
                    added += 1
                elif outcome == "updated":
                    updated += 1

            self.bookkeeping.mark_success(user_id, INSIGHTS, fetched, added, updated)

            if self.discovery_policy.should_run(user_id):
                self.discovery(self.store, user_id, self.clock().date().isoformat())
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Insights sync failed for user {user_id}: {message}")
            self.bookkeeping.mark_error(user_id, INSIGHTS, message)
            return InsightSyncResult(
                success=False, message=message, fetched=fetched, added=added, updated=updated
            )

        logger.info(
            f"User {user_id} insights: [bold]{fetched}[/bold] fetched, "
            f"[green]{added}[/green] added, [yellow]{updated}[/yellow] updated"
        )
        return InsightSyncResult(
            success=True, message="Sync completed", fetched=fetched, added=added, updated=updated
        )

    def _upsert_insight(self, user_id: int, document: InsightDocument) -> str:
        """Insert, update or skip one insight, refreshing derived rows on change.

        Returns:
            "added", "updated" or "unchanged"
        """
        existing = self.store.get_insight(user_id, document.date)
        if existing is None:
            insight_id = self.store.create_insight(user_id, document.date, document.content)
            refresh_structured_data(self.store, self.store.get_insight_by_id(insight_id))
            return "added"

        if existing["content"] != document.content:
            self.store.update_insight_content(existing["id"], document.content)
            refresh_structured_data(self.store, self.store.get_insight_by_id(existing["id"]))
            return "updated"

        return "unchanged"

    async def sync_lifelogs(
        self,
        user_id: int,
        days_back: int = 30,
        target_date: str | None = None,
        force: bool = False,
    ) -> LifeLogSyncResult:
        """Pull life-log segments and upsert them by remote id.

        Args:
            user_id: User to sync
            days_back: Dates covered by a forced sync
            target_date: Sync only this date (YYYY-MM-DD)
            force: Refetch by date and rewrite entries even when unchanged

        Returns:
            LifeLogSyncResult; failures are reported in it, never raised
        """
        config = self.store.get_user_config(user_id)
        if config is None or not config.has_credentials:
            logger.info(f"User {user_id} has no Limitless API key, skipping life-log sync")
            return LifeLogSyncResult(success=False, message=MISSING_API_KEY, credential_missing=True)

        self.bookkeeping.mark_in_progress(user_id, LIFELOGS)
        synced = updated = skipped = total_processed = 0

        try:
            now = self.clock()
            cursor = self.bookkeeping.get_cursor(user_id)
            queries = lifelog_queries(
                now,
                config.timezone,
                cursor.last_success(LIFELOGS) if cursor else None,
                force=force,
                days_back=days_back,
                target_date=target_date,
            )
            source = self.client_factory(config.limitless_api_key)

            entries = []
            for query in queries:
                entries.extend(
                    await asyncio.to_thread(
                        source.fetch_lifelogs,
                        date=query.date,
                        start=query.start,
                        end=query.end,
                        timezone=config.timezone,
                        limit=query.limit,
                    )
                )
            total_processed = len(entries)

            fallback_date = local_now(now, None).date().isoformat()
            for raw in entries:
                entry = self.lifelog_normalizer.normalize(raw, fallback_date=fallback_date)
                if entry is None:
                    continue

                existing = self.store.get_lifelog(entry.limitless_id)
                if existing is None:
                    self.store.create_lifelog(user_id, entry)
                    synced += 1
                elif force or entry.differs_from(existing):
                    self.store.update_lifelog(entry)
                    updated += 1
                else:
                    skipped += 1

            self.bookkeeping.mark_success(user_id, LIFELOGS, total_processed, synced, updated)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Life-log sync failed for user {user_id}: {message}")
            self.bookkeeping.mark_error(user_id, LIFELOGS, message)
            return LifeLogSyncResult(
                success=False,
                message=f"Failed to sync life logs: {message}",
                synced=synced,
                updated=updated,
                skipped=skipped,
                total_processed=total_processed,
            )

        message = f"Life logs synced: {synced} added, {updated} updated, {skipped} skipped"
        logger.info(f"User {user_id}: {message}")
        return LifeLogSyncResult(
            success=True,
            message=message,
            synced=synced,
            updated=updated,
            skipped=skipped,
            total_processed=total_processed,
        )

    async def sync_lifelogs_for_date(self, user_id: int, date: str) -> LifeLogSyncResult:
        """Force a resync of a single date."""
        return await self.sync_lifelogs(user_id, target_date=date, force=True)
