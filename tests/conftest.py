from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from flashdeck.domain.flashcard.models import Flashcard, FlashcardDraft
from flashdeck.domain.project.models import Project


class FakeClock:
    """Returns a strictly increasing sequence of UTC timestamps."""

    def __init__(self, start: Optional[datetime] = None, step: timedelta = timedelta(minutes=1)):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


def build_draft(question: str, answer: str = "Because", correct: int = 0, options: Optional[List[str]] = None):
    return FlashcardDraft(
        question=question,
        answer=answer,
        options=options if options is not None else [f"{question} {letter}" for letter in "ABCD"],
        correct_option_index=correct,
    )


def build_card(card_id: str, difficulty: int = 3, last_seen: Optional[datetime] = None, **kwargs) -> Flashcard:
    return Flashcard(
        id=card_id,
        question=kwargs.pop("question", f"Question {card_id}?"),
        answer=kwargs.pop("answer", f"Answer {card_id}"),
        options=kwargs.pop("options", ["w", "x", "y", "z"]),
        correct_option_index=kwargs.pop("correct_option_index", 0),
        difficulty=difficulty,
        last_seen=last_seen,
        **kwargs,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def project():
    return Project(name="Cell Biology")


@pytest.fixture
def make_draft():
    return build_draft


@pytest.fixture
def make_card():
    return build_card
