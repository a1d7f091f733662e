"""Words REST API client."""
import logging
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from wordsbot.errors import (
    GENERIC_ERROR_MESSAGE,
    ApiError,
    CommunicationError,
    NotFoundError,
    ServerError,
)
from wordsbot.models.api_models import (
    DueItem,
    Identity,
    ReviewGrade,
    ReviewHistoryEntry,
    Stats,
    UserWord,
    WordDetail,
)
from wordsbot.monitoring import api_errors, api_request_duration, api_requests

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    """Escape a value for use as a single path segment."""
    return quote(str(value), safe="")


def _items(data: Any, key: str) -> List[Dict[str, Any]]:
    """Return the list under key of a JSON object; a null or missing list is empty."""
    if not isinstance(data, dict):
        raise TypeError(f"expected a JSON object, got {type(data).__name__}")
    items = data.get(key) or []
    if not isinstance(items, list):
        raise TypeError(f"expected a list under {key!r}, got {type(items).__name__}")
    return items


class ApiClient:
    """HTTP client for the Words REST API.

    Every failure is normalized to an ``ApiError`` subclass, logged with the
    endpoint name, and re-raised.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(
        self,
        endpoint: str,
        method: str,
        path: str,
        parse: Optional[Callable[[Any], Any]] = None,
        **kwargs: Any,
    ) -> Any:
        """Send a request and return the decoded body, converted by parse if given."""
        api_requests.labels(endpoint=endpoint).inc()
        started = time.monotonic()
        try:
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                # Covers timeouts, refused connections and protocol errors
                raise CommunicationError(e) from e
            finally:
                api_request_duration.labels(endpoint=endpoint).observe(time.monotonic() - started)
            data = self._decode(response)
            if parse is None:
                return data
            try:
                return parse(data)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                # Valid JSON that is not the expected shape
                raise CommunicationError(e) from e
        except ApiError as e:
            logger.error(f"API Error [{endpoint}]: {e.message}")
            api_errors.labels(endpoint=endpoint, error_type=type(e).__name__).inc()
            raise

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise CommunicationError(e) from e

        message = GENERIC_ERROR_MESSAGE
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
            message = data["error"]

        if response.status_code == 404:
            raise NotFoundError(message, response.status_code)
        raise ServerError(message, response.status_code)

    # --- User endpoints ---

    async def create_user(self, username: str) -> Identity:
        """Create a user account."""
        return await self._request(
            "create_user", "POST", "/users", Identity.from_dict, json={"username": username}
        )

    async def get_user(self, username: str) -> Identity:
        """Get an existing user account."""
        return await self._request("get_user", "GET", f"/users/{_segment(username)}", Identity.from_dict)

    async def get_user_stats(self, username: str) -> Stats:
        """Get aggregate learning statistics."""
        return await self._request(
            "get_user_stats", "GET", f"/users/{_segment(username)}/stats", Stats.from_dict
        )

    async def end_session(self) -> None:
        """Ask the server to end the current session."""
        await self._request("end_session", "POST", "/auth/logout")

    # --- Word endpoints ---

    async def get_word(self, word: str) -> WordDetail:
        """Look up the dictionary entry for a word."""
        return await self._request("get_word", "GET", f"/words/{_segment(word)}", WordDetail.from_dict)

    async def add_word(self, username: str, word: str) -> Any:
        """Add a word to the user's study list."""
        return await self._request(
            "add_word", "POST", f"/users/{_segment(username)}/words/{_segment(word)}"
        )

    async def get_user_words(self, username: str, status: Optional[str] = None) -> List[UserWord]:
        """List the user's study words, optionally filtered by status."""
        params = {"status": status} if status else None
        return await self._request(
            "get_user_words",
            "GET",
            f"/users/{_segment(username)}/words",
            lambda data: [UserWord.from_dict(item) for item in _items(data, "words")],
            params=params,
        )

    # --- Review endpoints ---

    async def get_due_words(self, username: str) -> List[DueItem]:
        """Get the words due for review, in the order they should be reviewed."""
        return await self._request(
            "get_due_words",
            "GET",
            f"/users/{_segment(username)}/review",
            lambda data: [DueItem.from_dict(item) for item in _items(data, "words")],
        )

    async def submit_review(self, username: str, word: str, quality: int) -> Any:
        """Record a 0-5 recall grade for a word."""
        grade = ReviewGrade.parse(quality)
        return await self._request(
            "submit_review",
            "POST",
            f"/users/{_segment(username)}/review/{_segment(word)}",
            json={"quality": int(grade)},
        )

    async def get_review_history(self, username: str, word: str) -> List[ReviewHistoryEntry]:
        """Get past reviews of a word."""
        return await self._request(
            "get_review_history",
            "GET",
            f"/users/{_segment(username)}/review/{_segment(word)}/history",
            lambda data: [ReviewHistoryEntry.from_dict(item) for item in _items(data, "history")],
        )
