"""Models for data exchanged with the Words API."""
from dataclasses import dataclass, field, asdict
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple

from wordsbot.errors import ValidationError


class ReviewGrade(IntEnum):
    """Recall quality on the 0-5 scale, forwarded verbatim to the scheduler."""
    TOTAL_BLACKOUT = 0
    INCORRECT = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5

    @classmethod
    def parse(cls, value: Any) -> "ReviewGrade":
        """Convert a 0-5 integer to a grade, rejecting anything else."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"quality must be an integer between 0 and 5, got {value!r}")
        try:
            return cls(value)
        except ValueError as e:
            raise ValidationError(f"quality must be between 0 and 5, got {value}", e) from e

    @property
    def label(self) -> str:
        return _GRADE_TEXT[self][0]

    @property
    def description(self) -> str:
        return _GRADE_TEXT[self][1]


_GRADE_TEXT = {
    ReviewGrade.TOTAL_BLACKOUT: ("Total blackout", "Complete failure to recall"),
    ReviewGrade.INCORRECT: ("Incorrect", "Incorrect response; correct one remembered"),
    ReviewGrade.HARD: ("Hard", "Correct response with serious difficulty"),
    ReviewGrade.GOOD: ("Good", "Correct response with difficulty"),
    ReviewGrade.EASY: ("Easy", "Correct response with hesitation"),
    ReviewGrade.PERFECT: ("Perfect", "Perfect response"),
}


def _required_text(data: Dict[str, Any], key: str) -> str:
    """Read a non-empty string field, raising KeyError or TypeError otherwise."""
    value = data[key]
    if not isinstance(value, str) or not value:
        raise TypeError(f"{key} must be a non-empty string, got {value!r}")
    return value


@dataclass
class Identity:
    """The user a client session is bound to. Equal by username."""
    username: str
    id: Optional[int] = field(default=None, compare=False)
    created_at: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        return cls(
            username=_required_text(data, "username"),
            id=data.get("id"),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class DueItem:
    """A reference to one word in the due queue."""
    word: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DueItem":
        return cls(word=_required_text(data, "word"))


@dataclass
class Definition:
    definition: str
    example: Optional[str] = None
    synonyms: List[str] = field(default_factory=list)
    antonyms: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Definition":
        return cls(
            definition=data.get("definition", ""),
            example=data.get("example") or None,
            synonyms=list(data.get("synonyms") or []),
            antonyms=list(data.get("antonyms") or []),
        )


@dataclass
class Meaning:
    part_of_speech: str
    definitions: List[Definition] = field(default_factory=list)
    synonyms: List[str] = field(default_factory=list)
    antonyms: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Meaning":
        return cls(
            part_of_speech=data.get("partOfSpeech", ""),
            definitions=[Definition.from_dict(d) for d in data.get("definitions") or []],
            synonyms=list(data.get("synonyms") or []),
            antonyms=list(data.get("antonyms") or []),
        )


@dataclass
class WordDetail:
    """Dictionary entry for a single word."""
    word: str
    phonetic: Optional[str] = None
    meanings: List[Meaning] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordDetail":
        return cls(
            word=_required_text(data, "word"),
            phonetic=data.get("phonetic") or None,
            meanings=[Meaning.from_dict(m) for m in data.get("meanings") or []],
        )


@dataclass
class Stats:
    """Aggregate learning counts for a user."""
    total_words: int = 0
    due_today: int = 0
    learning: int = 0
    reviewing: int = 0
    mastered: int = 0
    total_reviews: int = 0
    current_streak: int = 0
    last_review_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stats":
        return cls(
            total_words=int(data.get("total_words", 0)),
            due_today=int(data.get("due_today", 0)),
            learning=int(data.get("learning", 0)),
            reviewing=int(data.get("reviewing", 0)),
            mastered=int(data.get("mastered", 0)),
            total_reviews=int(data.get("total_reviews", 0)),
            current_streak=int(data.get("current_streak", 0)),
            last_review_date=data.get("last_review_date") or None,
        )


@dataclass
class UserWord:
    """A word on the user's study list with its scheduling state."""
    word: str
    status: str
    id: Optional[int] = None
    added_at: Optional[str] = None
    next_review_date: Optional[str] = None
    interval_days: int = 0
    ease_factor: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserWord":
        return cls(
            word=data.get("word", ""),
            status=data.get("status", ""),
            id=data.get("id"),
            added_at=data.get("added_at"),
            next_review_date=data.get("next_review_date"),
            interval_days=int(data.get("interval_days", 0)),
            ease_factor=float(data.get("ease_factor", 0.0)),
        )


@dataclass
class ReviewHistoryEntry:
    word: str
    quality: int
    reviewed_at: Optional[str] = None
    interval_days: int = 0
    ease_factor: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReviewHistoryEntry":
        return cls(
            word=data.get("word", ""),
            quality=int(data.get("quality", 0)),
            reviewed_at=data.get("reviewed_at"),
            interval_days=int(data.get("interval_days", 0)),
            ease_factor=float(data.get("ease_factor", 0.0)),
        )


@dataclass
class CacheSnapshot:
    """Due words as last fetched, with the time they were synced."""
    words: Tuple[DueItem, ...]
    synced_at: Optional[str] = None
