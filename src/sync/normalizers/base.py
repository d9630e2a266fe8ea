"""Abstract base class for remote record normalizers."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any


class Normalizer(ABC):
    """Base class for Limitless response normalizers.

    Normalizers turn one raw API dictionary into the record the store
    persists, or None when the item must be skipped.
    """

    @abstractmethod
    def normalize(self, raw: dict[str, Any]) -> Any | None:
        """Convert one raw API item.

        Args:
            raw: Raw API dictionary

        Returns:
            Normalized record, or None if the item is unusable
        """
        pass

    def _safe_get(self, data: dict[str, Any], *keys: str, default: Any = None) -> Any:
        """Safely navigate nested dictionary keys.

        Example:
            >>> self._safe_get({'a': {'b': {'c': 1}}}, 'a', 'b', 'c')
            1
            >>> self._safe_get({'a': {}}, 'a', 'b', 'c', default='missing')
            'missing'
        """
        current = data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    def _parse_instant(self, value: Any) -> datetime | None:
        """Parse an ISO-8601 timestamp into an aware UTC datetime.

        Naive timestamps are taken to be UTC. Anything unparseable is None.

        Example:
            >>> self._parse_instant('2025-09-25T07:00:00Z')
            datetime.datetime(2025, 9, 25, 7, 0, tzinfo=datetime.timezone.utc)
        """
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
