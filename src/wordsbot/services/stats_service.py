"""Service for keeping the user's statistics current."""
import itertools
import logging
from typing import Optional

from wordsbot.errors import ApiError
from wordsbot.models.api_models import Stats
from wordsbot.monitoring import stats_refreshes
from wordsbot.services.api_client import ApiClient

logger = logging.getLogger(__name__)


class StatsService:
    """Holds the latest stats and refetches them when data changes.

    Refreshes may overlap. Each one is numbered when issued and its response is
    applied only if it is newer than the one already applied, so a slow early
    response cannot overwrite a later one.
    """

    def __init__(self, api: ApiClient, username: str):
        """Initialize the service for a user."""
        self.api = api
        self.username = username
        self.stats: Optional[Stats] = None
        self.last_error: Optional[ApiError] = None
        self._sequence = itertools.count(1)
        self._applied = 0

    async def refresh(self) -> Optional[Stats]:
        """Fetch stats; failures are logged and keep the current value."""
        sequence = next(self._sequence)
        try:
            stats = await self.api.get_user_stats(self.username)
        except ApiError as e:
            logger.warning(f"Failed to refresh stats for {self.username}: {e}")
            self.last_error = e
            stats_refreshes.labels(result="failed").inc()
            return self.stats

        if sequence < self._applied:
            logger.debug(f"Discarding stale stats #{sequence} for {self.username} (applied #{self._applied})")
            stats_refreshes.labels(result="discarded").inc()
            return self.stats

        self._applied = sequence
        self.stats = stats
        self.last_error = None
        stats_refreshes.labels(result="applied").inc()
        return self.stats
