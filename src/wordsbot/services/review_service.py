"""Service driving one review pass over the due queue."""
import logging
from typing import Awaitable, Callable, Optional, Tuple

from wordsbot.errors import ApiError, InvalidTransitionError
from wordsbot.models.api_models import DueItem, ReviewGrade, WordDetail
from wordsbot.models.review_models import ReviewState, can_transition
from wordsbot.monitoring import review_passes_completed, reviews_submitted
from wordsbot.services.api_client import ApiClient
from wordsbot.services.storage_service import StorageService
from wordsbot.services.word_service import WordService

logger = logging.getLogger(__name__)

OnComplete = Callable[[], Awaitable[None]]


class ReviewSession:
    """State machine for a single pass over the due words.

    LOADING -> EMPTY, or PRESENTING(i) -> REVEALING(i) -> SUBMITTING(i) ->
    PRESENTING(i + 1) / COMPLETED. A failed submit goes back to REVEALING(i)
    without moving the cursor, so no card is skipped unless its grade was
    recorded. EMPTY and COMPLETED are final; a new pass needs a new session.
    """

    def __init__(
        self,
        api: ApiClient,
        words: WordService,
        store: StorageService,
        username: str,
        on_complete: Optional[OnComplete] = None,
    ):
        """Initialize the session for a user. Nothing is fetched until load()."""
        self.api = api
        self.words = words
        self.store = store
        self.username = username
        self.on_complete = on_complete

        self.state = ReviewState.LOADING
        self.queue: Tuple[DueItem, ...] = ()
        self.cursor = 0
        self.total = 0
        self.reviewed = 0
        self.detail: Optional[WordDetail] = None
        self.pending_grade: Optional[ReviewGrade] = None
        self.last_error: Optional[Exception] = None
        self._load_started = False

    @property
    def current_item(self) -> Optional[DueItem]:
        """The card being shown, if any."""
        if self.state in (ReviewState.PRESENTING, ReviewState.REVEALING, ReviewState.SUBMITTING):
            return self.queue[self.cursor]
        return None

    def _transition(self, target: ReviewState) -> None:
        if not can_transition(self.state, target):
            raise InvalidTransitionError(
                f"cannot go from {self.state.value} to {target.value} (card {self.cursor})"
            )
        logger.debug(f"Review for {self.username}: {self.state.value} -> {target.value} at card {self.cursor}")
        self.state = target

    async def _fetch_detail(self, index: int) -> Optional[WordDetail]:
        word = self.queue[index].word
        try:
            return await self.words.lookup(word)
        except ApiError as e:
            # The card can still be graded without its definition
            logger.warning(f"Failed to load word details for {word}: {e}")
            return None

    async def load(self) -> ReviewState:
        """Fetch the due queue and present the first card.

        Always ends in EMPTY or PRESENTING, even when a call fails.
        """
        if self._load_started:
            raise InvalidTransitionError(f"review already loaded (state {self.state.value})")
        self._load_started = True

        try:
            items = await self.api.get_due_words(self.username)
        except Exception as e:
            logger.error(f"Failed to load due words for {self.username}: {e}")
            self.last_error = e
            self._transition(ReviewState.EMPTY)
            raise

        self.queue = tuple(items)
        self.total = len(self.queue)
        logger.info(f"Loaded {self.total} due words for {self.username}")
        self._transition(ReviewState.PRESENTING if self.queue else ReviewState.EMPTY)

        self.store.cache_due_words(list(self.queue))
        if self.queue:
            self.detail = await self._fetch_detail(0)
        return self.state

    def reveal(self) -> Optional[WordDetail]:
        """Show the definition of the current card."""
        self._transition(ReviewState.REVEALING)
        return self.detail

    async def submit(self, grade: int) -> ReviewState:
        """Send the grade for the current card and advance if it was recorded."""
        grade = ReviewGrade.parse(grade)
        self._transition(ReviewState.SUBMITTING)
        item = self.queue[self.cursor]
        self.pending_grade = grade

        try:
            await self.api.submit_review(self.username, item.word, grade)
        except Exception as e:
            logger.error(f"Failed to submit review of {item.word} for {self.username}: {e}")
            self.last_error = e
            self.pending_grade = None
            self._transition(ReviewState.REVEALING)
            raise

        self.pending_grade = None
        self.last_error = None
        self.reviewed += 1
        reviews_submitted.labels(grade=str(int(grade))).inc()

        next_index = self.cursor + 1
        if next_index < len(self.queue):
            # Advance before the lookup so a failed lookup cannot strand the grade
            self.detail = None
            self.cursor = next_index
            self._transition(ReviewState.PRESENTING)
            self.detail = await self._fetch_detail(next_index)
            return self.state

        self.detail = None
        self._transition(ReviewState.COMPLETED)
        self.queue = ()
        self.cursor = 0
        review_passes_completed.inc()
        logger.info(f"Review pass of {self.reviewed} words completed for {self.username}")
        if self.on_complete is not None:
            await self.on_complete()
        return self.state
