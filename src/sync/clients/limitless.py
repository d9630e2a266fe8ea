"""Limitless API client for daily-insight chats and life logs."""

from typing import Any

import requests

from common.env import env
from common.logger import get_logger

from .base import APIError, AuthenticationError, InsightSource, RateLimitError
from .rate_limiter import RateLimiter

logger = get_logger(__name__)


class LimitlessClient(InsightSource):
    """Client for the Limitless REST API.

    Both endpoints are cursor paginated: every response carries
    meta.<collection>.nextCursor, which is passed back as `cursor` until it
    is empty.

    API Documentation: https://www.limitless.ai/developers
    """

    # Largest page the lifelogs endpoint accepts
    LIFELOG_PAGE_SIZE = 10

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        requests_per_minute: int | None = None,
        timeout: float | None = None,
    ):
        """Initialize Limitless client.

        Args:
            api_key: Per-user Limitless API key
            base_url: API root (default: LIMITLESS_BASE_URL)
            requests_per_minute: Rate limit (default: LIMITLESS_REQUESTS_PER_MINUTE)
            timeout: Per-request timeout in seconds (default: LIMITLESS_TIMEOUT)
        """
        if not api_key:
            raise AuthenticationError("A Limitless API key is required")
        self.base_url = (base_url or env.limitless_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else env.limitless_timeout()
        self.rate_limiter = RateLimiter(
            requests_per_period=requests_per_minute or env.limitless_requests_per_minute(),
            period_seconds=60,
        )
        self.session = requests.Session()
        self.session.headers.update({"X-API-Key": api_key, "Accept": "application/json"})

    def fetch_chats(self, start: str | None = None, limit: int = 200) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"limit": limit, "direction": "desc"}
        if start:
            params["start"] = start
        chats = self._paginate("chats", params)
        logger.debug(f"Fetched {len(chats)} chats since {start or 'the beginning'}")
        return chats

    def fetch_lifelogs(
        self,
        date: str | None = None,
        start: str | None = None,
        end: str | None = None,
        timezone: str | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "limit": min(limit, self.LIFELOG_PAGE_SIZE),
            "includeMarkdown": "true",
        }
        if date:
            params["date"] = date
        elif start:
            params["start"] = start
            if end:
                params["end"] = end
        if timezone:
            params["timezone"] = timezone

        lifelogs = self._paginate("lifelogs", params, max_items=limit)
        logger.debug(f"Fetched {len(lifelogs)} life logs for {date or f'{start} - {end}'}")
        return lifelogs

    def _paginate(
        self, collection: str, params: dict[str, Any], max_items: int | None = None
    ) -> list[dict[str, Any]]:
        """Follow nextCursor until the collection is exhausted or max_items is reached."""
        items: list[dict[str, Any]] = []
        cursor = None
        while True:
            page_params = dict(params)
            if cursor:
                page_params["cursor"] = cursor
            data = self._get(f"/{collection}", page_params)

            items.extend(data.get("data", {}).get(collection) or [])
            if max_items is not None and len(items) >= max_items:
                return items[:max_items]

            cursor = data.get("meta", {}).get(collection, {}).get("nextCursor")
            if not cursor:
                return items

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        """Perform one rate-limited GET and decode the JSON body.

        Raises:
            AuthenticationError: On HTTP 401/403
            RateLimitError: On HTTP 429
            APIError: On any other failure
        """
        self.rate_limiter.wait_if_needed()
        url = f"{self.base_url}{path}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise APIError(f"Limitless API timeout for {path}") from e
        except requests.exceptions.RequestException as e:
            raise APIError(f"Limitless API error: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(f"Limitless API rejected the API key ({response.status_code})")
        if response.status_code == 429:
            raise RateLimitError("Limitless rate limit exceeded")

        try:
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            raise APIError(f"Limitless API error: {e}") from e
        except ValueError as e:
            raise APIError(f"Limitless API returned invalid JSON for {path}") from e
