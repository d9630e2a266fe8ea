"""Re-derive structured records from stored insights.

Extraction is deterministic, so reprocessing simply deletes an insight's
derived rows and inserts a fresh extraction. One failing insight is logged
and counted; it never stops the batch.
"""

from dataclasses import dataclass

from common.logger import get_logger
from extract.engine import extract
from load.db import Row

from .store import DataStore

logger = get_logger(__name__)


@dataclass
class ReprocessResult:
    processed: int = 0
    failed: int = 0
    total: int = 0

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def message(self) -> str:
        return f"Reprocessed {self.processed} of {self.total} insights ({self.failed} failed)"


def refresh_structured_data(store: DataStore, insight: Row) -> int:
    """Extract one stored insight and replace its derived rows.

    Returns:
        Number of derived rows written
    """
    record = extract(insight["content"], insight["date"])
    return store.replace_structured_records(insight["id"], insight["user_id"], insight["date"], record)


def _reprocess(store: DataStore, insights: list[Row]) -> ReprocessResult:
    result = ReprocessResult(total=len(insights))
    for insight in insights:
        try:
            refresh_structured_data(store, insight)
            result.processed += 1
        except Exception as e:
            result.failed += 1
            logger.error(f"Failed to reprocess insight {insight['id']} ({insight['date']}): {e}")
    logger.info(result.message)
    return result


def reprocess_all(store: DataStore, user_id: int | None = None) -> ReprocessResult:
    """Reprocess every stored insight, optionally for one user only."""
    return _reprocess(store, store.list_insights(user_id=user_id))


def reprocess_by_date(store: DataStore, date: str, user_id: int | None = None) -> ReprocessResult:
    return _reprocess(store, store.list_insights(user_id=user_id, start_date=date, end_date=date))


def reprocess_by_date_range(
    store: DataStore, start_date: str, end_date: str, user_id: int | None = None
) -> ReprocessResult:
    """Reprocess insights dated within [start_date, end_date]."""
    if start_date > end_date:
        raise ValueError(f"start_date {start_date} is after end_date {end_date}")
    return _reprocess(
        store, store.list_insights(user_id=user_id, start_date=start_date, end_date=end_date)
    )


def save_manual_insight(store: DataStore, user_id: int, date: str, content: str) -> int:
    """Store a hand-written insight and derive its records.

    Returns:
        The new insight id

    Raises:
        IntegrityError: If the user already has an insight for `date`
    """
    insight_id = store.create_insight(user_id, date, content)
    refresh_structured_data(store, store.get_insight_by_id(insight_id))
    return insight_id


def edit_insight(store: DataStore, insight_id: int, content: str) -> bool:
    """Replace an insight's content and re-derive its records.

    Returns:
        False if the insight does not exist
    """
    if store.get_insight_by_id(insight_id) is None:
        return False
    store.update_insight_content(insight_id, content)
    refresh_structured_data(store, store.get_insight_by_id(insight_id))
    return True
