"""Tests for the review session state machine."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from wordsbot.errors import CommunicationError, InvalidTransitionError, ServerError, ValidationError
from wordsbot.models.api_models import DueItem
from wordsbot.models.review_models import ReviewState
from wordsbot.services.api_client import ApiClient
from wordsbot.services.review_service import ReviewSession
from wordsbot.services.storage_service import StorageService
from wordsbot.services.word_service import WordService
from wordsbot.tests.fake_server import FakeWordsServer


def make_review(api: ApiClient, store: StorageService, on_complete=None) -> ReviewSession:
    return ReviewSession(api, WordService(api), store, "mia_01", on_complete=on_complete)


@pytest.fixture
def review(api: ApiClient, store: StorageService, server: FakeWordsServer) -> ReviewSession:
    """Create a review for a user with two due words."""
    server.add_user("mia_01")
    server.set_due("mia_01", ["dog", "cat"])
    return make_review(api, store)


@pytest.mark.asyncio
async def test_full_pass(review: ReviewSession, server: FakeWordsServer, store: StorageService) -> None:
    """Test reviewing every due word in order."""
    assert await review.load() is ReviewState.PRESENTING
    assert review.total == 2
    assert review.current_item == DueItem("dog")
    assert review.detail.word == "dog"
    assert store.get_cached_due_words().words == (DueItem("dog"), DueItem("cat"))

    assert review.reveal().word == "dog"
    assert review.state is ReviewState.REVEALING
    assert await review.submit(4) is ReviewState.PRESENTING
    assert review.current_item == DueItem("cat")
    assert review.detail.word == "cat"

    review.reveal()
    assert await review.submit(2) is ReviewState.COMPLETED
    assert server.reviews == [("mia_01", "dog", 4), ("mia_01", "cat", 2)]
    assert review.reviewed == 2
    assert review.queue == ()
    assert review.cursor == 0
    assert review.current_item is None


@pytest.mark.asyncio
async def test_cursor_never_moves_back(api: ApiClient, store: StorageService, server: FakeWordsServer) -> None:
    """Test that each recorded grade moves the cursor forward by one."""
    words = [f"word{i}" for i in range(5)]
    server.add_user("mia_01")
    server.set_due("mia_01", words)
    review = make_review(api, store)
    await review.load()

    seen = []
    while review.state is ReviewState.PRESENTING:
        seen.append(review.cursor)
        review.reveal()
        await review.submit(3)

    assert seen == [0, 1, 2, 3, 4]
    assert [w for _, w, _ in server.reviews] == words


@pytest.mark.asyncio
async def test_empty_queue(api: ApiClient, store: StorageService, server: FakeWordsServer) -> None:
    """Test that nothing due ends the pass immediately."""
    server.add_user("mia_01")
    on_complete = AsyncMock()
    review = make_review(api, store, on_complete)

    assert await review.load() is ReviewState.EMPTY
    assert review.state.is_terminal
    assert review.current_item is None
    assert store.get_cached_due_words().words == ()
    on_complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_load_failure(review: ReviewSession, server: FakeWordsServer, store: StorageService) -> None:
    """Test that a failed due fetch ends in EMPTY with the error kept."""
    server.fail("GET", "/api/users/mia_01/review", status=500, body={"error": "db down"})

    with pytest.raises(ServerError):
        await review.load()
    assert review.state is ReviewState.EMPTY
    assert review.last_error.message == "db down"
    assert store.get_cached_due_words() is None


@pytest.mark.asyncio
async def test_load_twice(review: ReviewSession) -> None:
    """Test that a session loads only once."""
    await review.load()
    with pytest.raises(InvalidTransitionError):
        await review.load()


@pytest.mark.asyncio
async def test_missing_detail_still_gradable(review: ReviewSession, server: FakeWordsServer) -> None:
    """Test that a failed word lookup leaves the card gradable."""
    server.fail("GET", "/api/words/dog", status=500)
    await review.load()

    assert review.state is ReviewState.PRESENTING
    assert review.detail is None
    assert review.reveal() is None
    await review.submit(3)
    assert server.reviews == [("mia_01", "dog", 3)]


@pytest.mark.asyncio
async def test_malformed_next_detail_advances(review: ReviewSession, server: FakeWordsServer) -> None:
    """Test that a recorded grade moves on even when the next word's entry is malformed."""
    await review.load()
    review.reveal()
    server.fail("GET", "/api/words/cat", status=200, body={"foo": 1})

    assert await review.submit(5) is ReviewState.PRESENTING
    assert review.cursor == 1
    assert review.current_item == DueItem("cat")
    assert review.detail is None
    assert review.reviewed == 1

    assert review.reveal() is None
    assert await review.submit(3) is ReviewState.COMPLETED
    assert server.reviews == [("mia_01", "dog", 5), ("mia_01", "cat", 3)]


@pytest.mark.asyncio
async def test_unexpected_lookup_error_leaves_next_card(review: ReviewSession, server: FakeWordsServer,
                                                        monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that a grade stays recorded and the cursor advanced when the next lookup blows up."""
    await review.load()
    review.reveal()
    monkeypatch.setattr(review.words, "lookup", AsyncMock(side_effect=RuntimeError("boom")))

    with pytest.raises(RuntimeError):
        await review.submit(4)
    assert review.state is ReviewState.PRESENTING
    assert review.cursor == 1
    assert review.detail is None
    assert server.reviews == [("mia_01", "dog", 4)]

    review.reveal()
    assert await review.submit(2) is ReviewState.COMPLETED


@pytest.mark.asyncio
async def test_malformed_due_queue(review: ReviewSession, server: FakeWordsServer, store: StorageService) -> None:
    """Test that a malformed due queue ends in EMPTY with the error kept."""
    server.fail("GET", "/api/users/mia_01/review", status=200, body={"words": [{"foo": 1}]})

    with pytest.raises(CommunicationError):
        await review.load()
    assert review.state is ReviewState.EMPTY
    assert isinstance(review.last_error, CommunicationError)
    assert review.current_item is None
    assert store.get_cached_due_words() is None


@pytest.mark.asyncio
async def test_malformed_first_detail(review: ReviewSession, server: FakeWordsServer) -> None:
    """Test that a malformed entry for the first word still presents the card."""
    server.fail("GET", "/api/words/dog", status=200, body="null")
    assert await review.load() is ReviewState.PRESENTING
    assert review.detail is None
    assert review.current_item == DueItem("dog")


@pytest.mark.asyncio
async def test_submit_failure_then_retry(review: ReviewSession, server: FakeWordsServer) -> None:
    """Test that a failed submit keeps the card and a retry succeeds."""
    await review.load()
    review.reveal()
    server.fail("POST", "/api/users/mia_01/review/dog", status=500, body={"error": "try later"})

    with pytest.raises(ServerError):
        await review.submit(3)
    assert review.state is ReviewState.REVEALING
    assert review.cursor == 0
    assert review.current_item == DueItem("dog")
    assert review.last_error.message == "try later"
    assert review.reviewed == 0

    assert await review.submit(3) is ReviewState.PRESENTING
    assert review.current_item == DueItem("cat")
    assert review.last_error is None
    assert server.reviews == [("mia_01", "dog", 3)]


@pytest.mark.asyncio
@pytest.mark.parametrize("grade", [-1, 6, True, "3"])
async def test_invalid_grade(review: ReviewSession, server: FakeWordsServer, grade) -> None:
    """Test that invalid grades change nothing and send nothing."""
    await review.load()
    review.reveal()

    with pytest.raises(ValidationError):
        await review.submit(grade)
    assert review.state is ReviewState.REVEALING
    assert server.reviews == []


@pytest.mark.asyncio
async def test_illegal_actions(review: ReviewSession) -> None:
    """Test actions the current state does not allow."""
    with pytest.raises(InvalidTransitionError):
        review.reveal()

    await review.load()
    with pytest.raises(InvalidTransitionError):
        await review.submit(3)

    review.reveal()
    with pytest.raises(InvalidTransitionError):
        review.reveal()


@pytest.mark.asyncio
async def test_no_second_submit_while_in_flight(review: ReviewSession, server: FakeWordsServer) -> None:
    """Test that a grade cannot be sent while another is still in flight."""
    await review.load()
    review.reveal()

    release = asyncio.Event()
    original = review.api.submit_review

    async def slow_submit(*args):
        await release.wait()
        return await original(*args)

    review.api.submit_review = slow_submit
    first = asyncio.create_task(review.submit(5))
    await asyncio.sleep(0)
    assert review.state is ReviewState.SUBMITTING
    assert review.pending_grade == 5

    with pytest.raises(InvalidTransitionError):
        await review.submit(1)

    release.set()
    assert await first is ReviewState.PRESENTING
    assert server.reviews == [("mia_01", "dog", 5)]


@pytest.mark.asyncio
async def test_completion_callback(api: ApiClient, store: StorageService, server: FakeWordsServer) -> None:
    """Test that finishing a pass notifies once."""
    server.add_user("mia_01")
    server.set_due("mia_01", ["dog"])
    on_complete = AsyncMock()
    review = make_review(api, store, on_complete)

    await review.load()
    review.reveal()
    await review.submit(5)

    on_complete.assert_awaited_once_with()
    with pytest.raises(InvalidTransitionError):
        review.reveal()


if __name__ == "__main__":
    pytest.main([__file__])
