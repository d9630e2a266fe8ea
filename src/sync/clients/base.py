"""Abstract base class for the remote insight source."""

from abc import ABC, abstractmethod
from typing import Any


class InsightSource(ABC):
    """Remote source of daily-insight chats and life-log segments.

    The orchestrator only depends on this interface, so tests can hand it an
    in-memory fake instead of the HTTP client.
    """

    @abstractmethod
    def fetch_chats(self, start: str | None = None, limit: int = 200) -> list[dict[str, Any]]:
        """Fetch chats created at or after `start`, newest first.

        Args:
            start: ISO-8601 UTC lower bound, or None for the source default
            limit: Page size

        Returns:
            Raw chat dictionaries across all pages

        Raises:
            APIError: If the request fails
            AuthenticationError: If the API key is rejected
            RateLimitError: If the rate limit is exceeded
        """
        pass

    @abstractmethod
    def fetch_lifelogs(
        self,
        date: str | None = None,
        start: str | None = None,
        end: str | None = None,
        timezone: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Fetch life-log segments for one date or a time range.

        Args:
            date: Calendar date (YYYY-MM-DD); takes precedence over start/end
            start: ISO-8601 range start
            end: ISO-8601 range end
            timezone: IANA zone the source should interpret `date` in
            limit: Maximum number of entries across all pages

        Returns:
            Raw life-log dictionaries

        Raises:
            APIError: If the request fails
        """
        pass


class SyncError(Exception):
    """Base exception for sync errors."""

    pass


class APIError(SyncError):
    """API request failed."""

    pass


class AuthenticationError(APIError):
    """The API key was missing or rejected."""

    pass


class RateLimitError(APIError):
    """Rate limit exceeded."""

    pass
