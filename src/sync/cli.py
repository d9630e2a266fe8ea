"""CLI for syncing, status, reprocessing and the scheduler."""

import argparse
import asyncio
import json
import sys

from common.env import env
from common.logger import error, get_logger, setup_logging, success
from load.db import DatabaseAdapter, get_adapter
from load.reprocess import reprocess_all, reprocess_by_date, reprocess_by_date_range
from load.store import DataStore

from .bookkeeping import SyncBookkeeping
from .orchestrator import SyncOrchestrator
from .scheduler import ScheduledSync
from .status import get_sync_status

logger = get_logger(__name__)


def _open_store() -> DataStore:
    adapter: DatabaseAdapter = get_adapter()
    adapter.connect()
    return DataStore(adapter)


def _resolve_user(store: DataStore, name: str) -> int | None:
    user_id = store.get_user_id(name)
    if user_id is None:
        error(f"Unknown user: {name}. Create it with 'memento-sync add-user'.")
    return user_id


def cmd_init_db(args):
    """Create the database schema (safe to rerun)."""
    adapter: DatabaseAdapter = get_adapter()
    existed = adapter.exists()
    with adapter:
        adapter.create_schema()
        tables = [name for name in adapter.get_tables() if name != "sqlite_sequence"]

    state = "updated" if existed else "created"
    success(f"Database {state} at {env.database_path()} ({len(tables)} tables)")
    logger.debug(f"Tables: {', '.join(tables)}")
    return 0


def cmd_add_user(args):
    """Create a user if needed and store their Limitless API key and timezone."""
    store = _open_store()
    try:
        user_id = store.get_user_id(args.name) or store.create_user(args.name)
        config = store.upsert_user_config(user_id, limitless_api_key=args.api_key, timezone=args.timezone)
        credential = "with" if config.has_credentials else "without"
        success(f"User {args.name} (id {user_id}) configured {credential} an API key, timezone {config.timezone}")
        return 0
    finally:
        store.adapter.close()


def cmd_run(args):
    """Sync insights for one user."""
    store = _open_store()
    try:
        user_id = _resolve_user(store, args.user)
        if user_id is None:
            return 1
        result = asyncio.run(
            SyncOrchestrator(store).sync_insights(user_id, force=args.force, lookback_days=args.lookback_days)
        )
        if not result.success:
            error(result.message)
            return 1
        success(f"{result.message}: {result.fetched} fetched, {result.added} added, {result.updated} updated")
        return 0
    finally:
        store.adapter.close()


def cmd_lifelogs(args):
    """Sync life logs for one user."""
    store = _open_store()
    try:
        user_id = _resolve_user(store, args.user)
        if user_id is None:
            return 1
        orchestrator = SyncOrchestrator(store)
        if args.date:
            result = asyncio.run(orchestrator.sync_lifelogs_for_date(user_id, args.date))
        else:
            result = asyncio.run(
                orchestrator.sync_lifelogs(user_id, days_back=args.days_back, force=args.force)
            )
        if not result.success:
            error(result.message)
            return 1
        success(result.message)
        return 0
    finally:
        store.adapter.close()


def cmd_status(args):
    """Print whether a sync should run now for one user, as JSON."""
    store = _open_store()
    try:
        user_id = _resolve_user(store, args.user)
        if user_id is None:
            return 1
        config = store.get_user_config(user_id)
        cursor = SyncBookkeeping(store.adapter).get_cursor(user_id)
        status = get_sync_status(cursor, timezone=config.timezone if config else None)
        print(
            json.dumps(
                {
                    "should_sync": status.should_sync,
                    "reason": status.reason,
                    "in_progress": status.in_progress,
                    "last_sync": status.last_sync,
                },
                indent=2,
            )
        )
        return 0
    finally:
        store.adapter.close()


def cmd_reprocess(args):
    """Re-extract stored insights: all, one date, or a date range."""
    store = _open_store()
    try:
        user_id = None
        if args.user:
            user_id = _resolve_user(store, args.user)
            if user_id is None:
                return 1

        if args.date:
            result = reprocess_by_date(store, args.date, user_id=user_id)
        elif args.start or args.end:
            if not (args.start and args.end):
                error("--start and --end must be given together")
                return 1
            result = reprocess_by_date_range(store, args.start, args.end, user_id=user_id)
        else:
            result = reprocess_all(store, user_id=user_id)

        if result.success:
            success(result.message)
            return 0
        error(result.message)
        return 1
    finally:
        store.adapter.close()


def cmd_discoveries(args):
    """List, approve or dismiss discovered sections."""
    store = _open_store()
    try:
        if args.action == "list":
            for row in store.list_discoveries(args.status):
                print(f"[{row['id']}] {row['section_header']} ({row['occurrence_count']}x, last {row['last_seen']})")
            return 0

        if args.id is None:
            error(f"'{args.action}' needs a discovery id")
            return 1
        status = "approved" if args.action == "approve" else "dismissed"
        if not store.set_discovery_status(args.id, status):
            error(f"No discovery with id {args.id}")
            return 1
        success(f"Discovery {args.id} {status}")
        return 0
    finally:
        store.adapter.close()


async def _schedule(store: DataStore, interval_minutes: int | None, once: bool) -> None:
    scheduled = ScheduledSync(store, SyncOrchestrator(store))
    if once:
        await scheduled.run()
        return

    task = scheduled.as_recurring_task(interval_minutes)
    logger.info(f"Syncing every {task.interval / 60:g} minutes, Ctrl-C to stop")
    try:
        await task.start()
    finally:
        await task.stop()


def cmd_schedule(args):
    """Run the recurring sync for every user with an API key."""
    store = _open_store()
    try:
        asyncio.run(_schedule(store, args.interval, args.once))
        return 0
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")
        return 0
    finally:
        store.adapter.close()


def main():
    """Main entry point for the sync CLI."""
    setup_logging()
    parser = argparse.ArgumentParser(
        description="Sync daily insights and life logs from Limitless",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    init_parser.set_defaults(func=cmd_init_db)

    user_parser = subparsers.add_parser("add-user", help="Create or update a user")
    user_parser.add_argument("name", help="User name")
    user_parser.add_argument("--api-key", default=None, help="Limitless API key")
    user_parser.add_argument("--timezone", default=None, help="IANA timezone, e.g. Europe/Berlin")
    user_parser.set_defaults(func=cmd_add_user)

    run_parser = subparsers.add_parser("run", help="Sync insights for a user")
    run_parser.add_argument("user", help="User name")
    run_parser.add_argument("--force", action="store_true", help="Refetch the full lookback window")
    run_parser.add_argument(
        "--lookback-days",
        type=int,
        default=None,
        help="Days refetched by --force (default: INSIGHT_LOOKBACK_DAYS)",
    )
    run_parser.set_defaults(func=cmd_run)

    lifelog_parser = subparsers.add_parser("lifelogs", help="Sync life logs for a user")
    lifelog_parser.add_argument("user", help="User name")
    lifelog_parser.add_argument("--date", default=None, help="Resync a single date (YYYY-MM-DD)")
    lifelog_parser.add_argument("--days-back", type=int, default=30, help="Dates covered by --force")
    lifelog_parser.add_argument("--force", action="store_true", help="Refetch and rewrite by date")
    lifelog_parser.set_defaults(func=cmd_lifelogs)

    status_parser = subparsers.add_parser("status", help="Should a sync run now?")
    status_parser.add_argument("user", help="User name")
    status_parser.set_defaults(func=cmd_status)

    reprocess_parser = subparsers.add_parser("reprocess", help="Re-extract stored insights")
    reprocess_parser.add_argument("--user", default=None, help="Only this user's insights")
    reprocess_parser.add_argument("--date", default=None, help="Only this date")
    reprocess_parser.add_argument("--start", default=None, help="Range start (inclusive)")
    reprocess_parser.add_argument("--end", default=None, help="Range end (inclusive)")
    reprocess_parser.set_defaults(func=cmd_reprocess)

    discoveries_parser = subparsers.add_parser("discoveries", help="Manage discovered sections")
    discoveries_parser.add_argument("action", choices=["list", "approve", "dismiss"])
    discoveries_parser.add_argument("id", type=int, nargs="?", default=None, help="Discovery id")
    discoveries_parser.add_argument(
        "--status",
        default="pending",
        choices=["pending", "approved", "dismissed"],
        help="Which discoveries to list (default: pending)",
    )
    discoveries_parser.set_defaults(func=cmd_discoveries)

    schedule_parser = subparsers.add_parser("schedule", help="Run the recurring sync")
    schedule_parser.add_argument(
        "--interval", type=int, default=None, help="Minutes between runs (default: SYNC_INTERVAL_MINUTES)"
    )
    schedule_parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    schedule_parser.set_defaults(func=cmd_schedule)

    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
