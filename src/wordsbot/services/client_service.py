"""Service wiring the per-chat client together."""
import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from wordsbot.errors import ValidationError
from wordsbot.models.base import SessionLocal
from wordsbot.services.api_client import ApiClient
from wordsbot.services.review_service import ReviewSession
from wordsbot.services.session_service import LoginResult, SessionService, SessionState
from wordsbot.services.stats_service import StatsService
from wordsbot.services.storage_service import StorageService
from wordsbot.services.word_service import WordService

logger = logging.getLogger(__name__)


class ClientService:
    """Everything one chat needs: session, stats, word lookups and reviews.

    The session gates the rest. Stats are refreshed on session entry, after a
    word is added and after a review pass completes.
    """

    def __init__(self, api: ApiClient, namespace: str, session_factory: sessionmaker = SessionLocal):
        self.api = api
        self.store = StorageService(namespace, session_factory)
        self.session = SessionService(api, self.store)
        self.words = WordService(api, on_added=self._on_data_changed)
        self.stats: Optional[StatsService] = None
        self.review: Optional[ReviewSession] = None

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    @property
    def username(self) -> Optional[str]:
        return self.session.username

    async def start(self) -> SessionState:
        """Validate the cached session and, if it holds, enter it."""
        state = await self.session.validate()
        if self.session.is_authenticated:
            await self._enter()
        else:
            self._leave()
        return state

    async def login(self, username: str) -> LoginResult:
        result = await self.session.login(username)
        await self._enter()
        return result

    async def logout(self) -> None:
        await self.session.logout()
        self._leave()

    def new_review(self) -> ReviewSession:
        """Start a fresh review pass; any previous pass is dropped."""
        if not self.session.is_authenticated:
            raise ValidationError("please log in first")
        self.review = ReviewSession(
            self.api,
            self.words,
            self.store,
            self.session.username,
            on_complete=self._on_data_changed,
        )
        return self.review

    async def _enter(self) -> None:
        self.stats = StatsService(self.api, self.session.username)
        self.review = None
        await self.stats.refresh()

    def _leave(self) -> None:
        self.stats = None
        self.review = None

    async def _on_data_changed(self, *_args) -> None:
        if self.stats is not None:
            await self.stats.refresh()
