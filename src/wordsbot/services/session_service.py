"""Session service for resolving and tracking the current user."""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from wordsbot.config import settings
from wordsbot.errors import ApiError, ValidationError
from wordsbot.models.api_models import Identity
from wordsbot.monitoring import active_sessions, logins
from wordsbot.services.api_client import ApiClient
from wordsbot.services.storage_service import StorageService

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass
class Attempt:
    """Outcome of one identity call: either a value or the error it failed with."""
    value: Optional[Identity] = None
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class LoginResult:
    """How a login resolved its identity."""
    identity: Identity
    created: bool
    lookup: Attempt


async def attempt(call: Callable[[str], Awaitable[Identity]], username: str) -> Attempt:
    """Run an identity call and capture its result instead of raising."""
    try:
        return Attempt(value=await call(username))
    except ApiError as e:
        return Attempt(error=e)


def validate_username(username: str) -> str:
    """Check a username against the allowed length and characters."""
    username = (username or "").strip()
    min_length = settings.review.username_min_length
    max_length = settings.review.username_max_length
    if not min_length <= len(username) <= max_length:
        raise ValidationError(f"username must be between {min_length} and {max_length} characters")
    if not USERNAME_PATTERN.match(username):
        raise ValidationError("username can only contain letters, numbers, and underscores")
    return username


class SessionService:
    """Owns the current identity for one client and keeps the store in step with it."""

    def __init__(self, api: ApiClient, store: StorageService):
        """Initialize the service with an API client and a persistence store."""
        self.api = api
        self.store = store
        self.state = SessionState.UNAUTHENTICATED
        self.identity: Optional[Identity] = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def username(self) -> Optional[str]:
        return self.identity.username if self.identity else None

    def _authenticate(self, identity: Identity) -> None:
        if not self.is_authenticated:
            active_sessions.inc()
        self.identity = identity
        self.state = SessionState.AUTHENTICATED
        self.store.set_current_user(identity)

    def _reset(self) -> None:
        if self.is_authenticated:
            active_sessions.dec()
        self.identity = None
        self.state = SessionState.UNAUTHENTICATED
        self.store.clear_current_user()

    async def validate(self) -> SessionState:
        """Resolve the cached identity against the server.

        The server wins: any failure drops the cached identity.
        """
        cached = self.store.get_current_user()
        if cached is None:
            logger.debug(f"No cached identity for {self.store.namespace}")
            self._reset()
            return self.state

        try:
            identity = await self.api.get_user(cached.username)
        except ApiError as e:
            logger.warning(f"Cached identity {cached.username} could not be validated: {e}")
            self._reset()
        else:
            logger.info(f"Restored session for {identity.username}")
            self._authenticate(identity)
        return self.state

    async def login(self, username: str) -> LoginResult:
        """Resolve an existing user or create one, then make it current."""
        username = validate_username(username)

        lookup = await attempt(self.api.get_user, username)
        if lookup.ok:
            result = LoginResult(identity=lookup.value, created=False, lookup=lookup)
        else:
            logger.info(f"User {username} not resolved ({type(lookup.error).__name__}), creating it")
            creation = await attempt(self.api.create_user, username)
            if not creation.ok:
                logins.labels(outcome="failed").inc()
                raise creation.error
            result = LoginResult(identity=creation.value, created=True, lookup=lookup)

        logins.labels(outcome="created" if result.created else "existing").inc()
        self._authenticate(result.identity)
        logger.info(f"Logged in as {result.identity.username} (created: {result.created})")
        return result

    async def logout(self) -> None:
        """End the session. Local state is always cleared, whatever the server says."""
        username = self.username
        try:
            await self.api.end_session()
        except ApiError as e:
            logger.warning(f"Server logout for {username} failed: {e}")
        else:
            logger.info(f"Server logout for {username} succeeded")
        finally:
            self._reset()
            self.store.clear_cache()
