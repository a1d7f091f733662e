"""Models for review session state."""
from enum import Enum
from typing import Dict, FrozenSet


class ReviewState(Enum):
    """States of one review pass over the due queue."""
    LOADING = "loading"
    EMPTY = "empty"
    PRESENTING = "presenting"  # word shown, definition hidden
    REVEALING = "revealing"  # definition shown, grades offered
    SUBMITTING = "submitting"  # grade in flight
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (ReviewState.EMPTY, ReviewState.COMPLETED)

    @property
    def accepts_input(self) -> bool:
        """Whether the user may act on the current card."""
        return self in (ReviewState.PRESENTING, ReviewState.REVEALING)


TRANSITIONS: Dict[ReviewState, FrozenSet[ReviewState]] = {
    ReviewState.LOADING: frozenset({ReviewState.EMPTY, ReviewState.PRESENTING}),
    ReviewState.PRESENTING: frozenset({ReviewState.REVEALING}),
    ReviewState.REVEALING: frozenset({ReviewState.SUBMITTING}),
    ReviewState.SUBMITTING: frozenset({
        ReviewState.PRESENTING,
        ReviewState.REVEALING,
        ReviewState.COMPLETED,
    }),
    ReviewState.EMPTY: frozenset(),
    ReviewState.COMPLETED: frozenset(),
}


def can_transition(source: ReviewState, target: ReviewState) -> bool:
    """Check whether the review state machine allows source -> target."""
    return target in TRANSITIONS[source]
