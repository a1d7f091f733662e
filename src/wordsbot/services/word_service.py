"""Service for looking up words and managing the study list."""
import logging
from typing import Awaitable, Callable, List, Optional

from wordsbot.config import settings
from wordsbot.errors import ValidationError
from wordsbot.models.api_models import ReviewHistoryEntry, UserWord, WordDetail
from wordsbot.monitoring import words_added
from wordsbot.services.api_client import ApiClient

logger = logging.getLogger(__name__)

OnAdded = Callable[[str], Awaitable[None]]


def normalize_word(word: str) -> str:
    """Lowercase and trim a word, rejecting empty input."""
    word = (word or "").strip().lower()
    if not word:
        raise ValidationError("please enter a word")
    return word


class WordService:
    """Service for word lookups and the user's study list.

    Lookups are not cached; each call goes to the server.
    """

    def __init__(self, api: ApiClient, on_added: Optional[OnAdded] = None):
        """Initialize the service with an API client and an optional add callback."""
        self.api = api
        self.on_added = on_added

    async def lookup(self, word: str) -> WordDetail:
        """Fetch the dictionary entry for a word."""
        return await self.api.get_word(normalize_word(word))

    async def add_to_study_list(self, username: str, word: str) -> str:
        """Add a word to the study list and notify listeners once it is stored."""
        word = normalize_word(word)
        await self.api.add_word(username, word)
        words_added.inc()
        logger.info(f"Added {word} to the study list of {username}")
        if self.on_added is not None:
            await self.on_added(word)
        return word

    async def list_words(self, username: str, status: Optional[str] = None) -> List[UserWord]:
        """Get the user's study words, optionally filtered by status."""
        if status and status not in settings.review.word_statuses:
            raise ValidationError(f"unknown status {status!r}")
        return await self.api.get_user_words(username, status)

    async def review_history(self, username: str, word: str) -> List[ReviewHistoryEntry]:
        """Get the past reviews of a word."""
        return await self.api.get_review_history(username, normalize_word(word))
