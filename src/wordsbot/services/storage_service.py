"""Service for persisting session identity and the due-words snapshot."""
import json
import logging
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session, sessionmaker

from wordsbot.models.api_models import CacheSnapshot, DueItem, Identity
from wordsbot.models.base import SessionLocal
from wordsbot.models.models import StoreEntry

logger = logging.getLogger(__name__)

CURRENT_USER = "words_current_user"
DUE_WORDS_CACHE = "words_due_cache"
LAST_SYNC = "words_last_sync"


def _check_json_native(value: Any, path: str = "value") -> None:
    """Raise TypeError for anything JSON would not give back unchanged."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return
    if isinstance(value, list):
        for index, item in enumerate(value):
            _check_json_native(item, f"{path}[{index}]")
    elif isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"{path} has a non-string key {key!r}")
            _check_json_native(item, f"{path}[{key!r}]")
    else:
        raise TypeError(f"{path} is a {type(value).__name__}, only JSON types can be stored")


class StorageService:
    """Key/value store scoped to one namespace.

    Values are stored as JSON and must be JSON-native (dict with string keys,
    list, str, int, float, bool or None), so whatever ``set`` accepts comes
    back from ``get`` unchanged. Tuples, sets and other types are rejected.
    There is no expiry; staleness is for callers to judge.
    """

    def __init__(self, namespace: str, session_factory: sessionmaker = SessionLocal):
        """Initialize the store for a namespace (usually a chat id)."""
        self.namespace = str(namespace)
        self.session_factory = session_factory

    def _entry(self, db: Session, key: str) -> Optional[StoreEntry]:
        return (
            db.query(StoreEntry)
            .filter(StoreEntry.namespace == self.namespace, StoreEntry.key == key)
            .first()
        )

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-native value under key. Raises TypeError or ValueError otherwise."""
        _check_json_native(value)
        encoded = json.dumps(value, allow_nan=False)
        db = self.session_factory()
        try:
            entry = self._entry(db, key)
            if entry is None:
                entry = StoreEntry(namespace=self.namespace, key=key, value=encoded)
                db.add(entry)
            else:
                entry.value = encoded
            db.commit()
        finally:
            db.close()

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if absent."""
        db = self.session_factory()
        try:
            entry = self._entry(db, key)
            if entry is None:
                return None
            try:
                return json.loads(entry.value)
            except ValueError:
                logger.warning(f"Discarding unreadable value for {self.namespace}/{key}")
                return None
        finally:
            db.close()

    def clear(self, key: str) -> None:
        """Remove key. Clearing a missing key is a no-op."""
        db = self.session_factory()
        try:
            entry = self._entry(db, key)
            if entry is not None:
                db.delete(entry)
                db.commit()
        finally:
            db.close()

    # Current user

    def set_current_user(self, identity: Identity) -> None:
        self.set(CURRENT_USER, identity.to_dict())

    def get_current_user(self) -> Optional[Identity]:
        data = self.get(CURRENT_USER)
        if not isinstance(data, dict) or not isinstance(data.get("username"), str) or not data["username"]:
            return None
        return Identity.from_dict(data)

    def clear_current_user(self) -> None:
        self.clear(CURRENT_USER)

    # Due words cache

    def cache_due_words(self, words: list[DueItem]) -> None:
        """Write the due-words snapshot and stamp the sync time."""
        self.set(DUE_WORDS_CACHE, [{"word": item.word} for item in words])
        self.set(LAST_SYNC, datetime.now(UTC).isoformat())

    def get_cached_due_words(self) -> Optional[CacheSnapshot]:
        words = self.get(DUE_WORDS_CACHE)
        if words is None:
            return None
        return CacheSnapshot(
            words=tuple(DueItem.from_dict(item) for item in words),
            synced_at=self.get_last_sync(),
        )

    def get_last_sync(self) -> Optional[str]:
        return self.get(LAST_SYNC)

    def clear_cache(self) -> None:
        self.clear(DUE_WORDS_CACHE)
        self.clear(LAST_SYNC)
