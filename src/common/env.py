"""Environment configuration interface for memento.

This module provides a clean interface for accessing environment variables,
centralizing all environment variable access in one place.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def database_path() -> Path:
        """Get the SQLite database file path.

        Returns:
            Path to SQLite database file, defaults to ./data/memento.db
        """
        return Path(os.getenv("DATABASE_PATH", "./data/memento.db"))

    @staticmethod
    def limitless_base_url() -> str:
        """Get the Limitless API base URL.

        Returns:
            Base URL, defaults to https://api.limitless.ai/v1
        """
        return os.getenv("LIMITLESS_BASE_URL", "https://api.limitless.ai/v1")

    @staticmethod
    def limitless_requests_per_minute() -> int:
        """Get the client-side rate limit for the Limitless API.

        Returns:
            Requests per minute, defaults to 60
        """
        return int(os.getenv("LIMITLESS_REQUESTS_PER_MINUTE", "60"))

    @staticmethod
    def limitless_timeout() -> float:
        """Get the HTTP timeout for Limitless API calls.

        Returns:
            Timeout in seconds, defaults to 30
        """
        return float(os.getenv("LIMITLESS_TIMEOUT", "30"))

    @staticmethod
    def sync_interval_minutes() -> int:
        """Get how often the scheduler triggers a sync for every user.

        Returns:
            Interval in minutes, defaults to 10
        """
        return int(os.getenv("SYNC_INTERVAL_MINUTES", "10"))

    @staticmethod
    def insight_lookback_days() -> int:
        """Get the lookback used by a forced insights sync.

        Returns:
            Number of days, defaults to 30
        """
        return int(os.getenv("INSIGHT_LOOKBACK_DAYS", "30"))

    @staticmethod
    def scheduled_lifelog_days_back() -> int:
        """Get the life-log lookback used by the scheduler.

        Returns:
            Number of days, defaults to 2
        """
        return int(os.getenv("SCHEDULED_LIFELOG_DAYS_BACK", "2"))

    @staticmethod
    def discovery_every_n_syncs() -> int:
        """Get how many successful insight syncs pass between discovery checks.

        Returns:
            Sync count, defaults to 10
        """
        return int(os.getenv("DISCOVERY_EVERY_N_SYNCS", "10"))


# Singleton instance for convenient access
env = Environment()
