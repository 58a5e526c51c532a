import logging
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from ..project.models import Project
from .models import Flashcard

logger = logging.getLogger(__name__)


class SessionState(Enum):
    ACTIVE = "active"
    COMPLETE = "complete"


def priority_key(card: Flashcard, position: int) -> Tuple[int, int, float, int]:
    """
    Sort key for choosing the next card; smaller keys are shown first.

    Never-seen cards come first, then harder cards, then the card idle the
    longest. Remaining ties keep pool order through ``position``.
    """
    if card.last_seen is None:
        return (0, -card.difficulty, 0.0, position)
    return (1, -card.difficulty, card.last_seen.timestamp(), position)


def order_by_priority(cards: Iterable[Flashcard]) -> List[Flashcard]:
    """Return a new list of ``cards`` in presentation priority order."""
    indexed = list(enumerate(cards))
    indexed.sort(key=lambda item: priority_key(item[1], item[0]))
    return [card for _, card in indexed]


class SessionScheduler:
    """
    Picks the next card of a review session and detects when the session is exhausted.

    The session is tracked by the project's seen set: a card is only marked
    seen when the caller commits an answer or explicitly records it, so
    asking for the next card never advances the session. Skipped cards are
    held back until every other card has been seen, then offered again in
    skip order.
    """

    def __init__(self, project: Project):
        self.project = project

    @property
    def state(self) -> SessionState:
        return SessionState.COMPLETE if self.project.session_complete else SessionState.ACTIVE

    def remaining(self) -> int:
        """Number of cards in the pool not yet seen this session."""
        seen = self.project.cards_seen_this_session
        return sum(1 for card in self.project.flashcards if card.id not in seen)

    def get_next_card(self) -> Optional[Flashcard]:
        """
        Select the card to present next.

        Returns:
            Optional[Flashcard]: Highest priority unseen card, or None when the pool
            is empty or the session has covered every card. In the latter case the
            project is flagged as session complete.
        """
        pool = self.project.flashcards
        if not pool:
            return None

        seen = self.project.cards_seen_this_session
        skipped = set(self.project.skipped_cards)
        available = [card for card in pool if card.id not in seen and card.id not in skipped]

        if available:
            return order_by_priority(available)[0]

        recycled = self._next_skipped_card()
        if recycled is not None:
            return recycled

        if len(seen) >= len(pool):
            if not self.project.session_complete:
                logger.info(f"Review session complete for project {self.project.id}")
            self.project.session_complete = True
        return None

    def _next_skipped_card(self) -> Optional[Flashcard]:
        by_id = {card.id: card for card in self.project.flashcards}
        seen = self.project.cards_seen_this_session
        for card_id in self.project.skipped_cards:
            if card_id in by_id and card_id not in seen:
                return by_id[card_id]
        return None

    def record_seen(self, card_id: str) -> None:
        """Mark a card as shown this session. Adding an id twice is a no-op."""
        self.project.cards_seen_this_session.add(card_id)
        if card_id in self.project.skipped_cards:
            self.project.skipped_cards = [cid for cid in self.project.skipped_cards if cid != card_id]

    def skip_card(self, card_id: str) -> None:
        """
        Defer a card to the end of the skip queue without counting it as seen.

        Unknown or already seen ids are ignored.
        """
        if card_id in self.project.cards_seen_this_session:
            return
        if not any(card.id == card_id for card in self.project.flashcards):
            return
        queue = [cid for cid in self.project.skipped_cards if cid != card_id]
        queue.append(card_id)
        self.project.skipped_cards = queue

    def reset_session(self, now: Optional[datetime] = None) -> None:
        """
        Start a new review pass. Difficulty and answer counters are kept.
        """
        project = self.project
        if not (project.cards_seen_this_session or project.skipped_cards or project.session_complete):
            return
        self.project.cards_seen_this_session = set()
        self.project.skipped_cards = []
        self.project.session_complete = False
        self.project.touch(now)
