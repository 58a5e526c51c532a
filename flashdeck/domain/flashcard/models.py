from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from .config import DEFAULT_DIFFICULTY, OPTION_COUNT, PLACEHOLDER_OPTIONS, DifficultyFilter


def normalize_label(label: Optional[str]) -> Optional[str]:
    """Treat blank provenance labels as absent."""
    if label is None:
        return None
    label = label.strip()
    return label or None


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a persisted timestamp into an aware UTC datetime.

    Accepts ``None``, datetimes and ISO 8601 strings (including a trailing ``Z``).
    Naive values are taken to be UTC.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class FlashcardDraft:
    """Unvalidated flashcard payload produced by a content generator."""

    question: str
    answer: str
    options: List[str] = field(default_factory=list)
    correct_option_index: int = 0

    @property
    def is_well_formed(self) -> bool:
        """Check the draft can become a pool card."""
        if not isinstance(self.question, str) or not self.question.strip():
            return False
        if not isinstance(self.answer, str) or not self.answer.strip():
            return False
        if not isinstance(self.options, (list, tuple)) or len(self.options) != OPTION_COUNT:
            return False
        if any(not isinstance(option, str) or not option.strip() for option in self.options):
            return False
        if len(set(self.options)) != OPTION_COUNT:
            return False
        index = self.correct_option_index
        return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < OPTION_COUNT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FlashcardDraft":
        """Build a draft from a generator's dict, accepting camelCase or snake_case keys."""
        index = data.get("correct_option_index", data.get("correctOptionIndex", 0))
        options = data.get("options")
        return cls(
            question=data.get("question", ""),
            answer=data.get("answer", ""),
            options=list(options) if isinstance(options, (list, tuple)) else options,
            correct_option_index=index,
        )


@dataclass
class Flashcard:
    """Domain model representing a multiple-choice flashcard in a project pool."""

    id: str
    question: str
    answer: str
    options: List[str]
    correct_option_index: int
    difficulty: int = DEFAULT_DIFFICULTY
    last_seen: Optional[datetime] = None
    times_correct: int = 0
    times_incorrect: int = 0
    source_hash: Optional[str] = None
    source_section_title: Optional[str] = None
    source_topic_title: Optional[str] = None

    @property
    def scope(self) -> tuple:
        """The (section, topic) dedup scope this card belongs to."""
        return (self.source_section_title, self.source_topic_title)

    @property
    def display_options(self) -> List[str]:
        """Options to render, falling back to placeholders for damaged records."""
        if self.options and len(self.options) == OPTION_COUNT:
            return list(self.options)
        return list(PLACEHOLDER_OPTIONS)

    @property
    def correct_option(self) -> Optional[str]:
        options = self.display_options
        if 0 <= self.correct_option_index < len(options):
            return options[self.correct_option_index]
        return None

    @property
    def score(self) -> int:
        """Percentage of answers that were correct, 0 if never answered."""
        total = self.times_correct + self.times_incorrect
        if total == 0:
            return 0
        return round(self.times_correct / total * 100)

    @property
    def difficulty_band(self) -> DifficultyFilter:
        return DifficultyFilter.band_for(self.difficulty)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the camelCase record used for snapshots and interchange."""
        return {
            "id": self.id,
            "question": self.question,
            "answer": self.answer,
            "options": list(self.options),
            "correctOptionIndex": self.correct_option_index,
            "difficulty": self.difficulty,
            "lastSeen": format_timestamp(self.last_seen),
            "timesCorrect": self.times_correct,
            "timesIncorrect": self.times_incorrect,
            "sourceHash": self.source_hash,
            "sourceSectionTitle": self.source_section_title,
            "sourceTopicTitle": self.source_topic_title,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Flashcard":
        """Rebuild a card from a trusted snapshot written by ``to_dict``."""
        return cls(
            id=data["id"],
            question=data["question"],
            answer=data["answer"],
            options=list(data.get("options") or []),
            correct_option_index=data.get("correctOptionIndex", 0),
            difficulty=data.get("difficulty", DEFAULT_DIFFICULTY),
            last_seen=parse_timestamp(data.get("lastSeen")),
            times_correct=data.get("timesCorrect", 0),
            times_incorrect=data.get("timesIncorrect", 0),
            source_hash=data.get("sourceHash"),
            source_section_title=data.get("sourceSectionTitle"),
            source_topic_title=data.get("sourceTopicTitle"),
        )


@dataclass
class PoolStatistics:
    """Aggregate answer counts for a pool."""

    total_cards: int = 0
    never_seen: int = 0
    times_correct: int = 0
    times_incorrect: int = 0
    easy: int = 0
    medium: int = 0
    hard: int = 0

    @property
    def cards_studied(self) -> int:
        return self.times_correct + self.times_incorrect

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_cards": self.total_cards,
            "never_seen": self.never_seen,
            "times_correct": self.times_correct,
            "times_incorrect": self.times_incorrect,
            "cards_studied": self.cards_studied,
            "easy": self.easy,
            "medium": self.medium,
            "hard": self.hard,
        }


@dataclass
class ImportResult:
    """Outcome of reading an interchange payload; never raised across the library boundary."""

    success: bool
    count: int = 0
    skipped: int = 0
    duplicates: int = 0
    error: Optional[str] = None
    cards: List[Flashcard] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "count": self.count,
            "skipped": self.skipped,
            "duplicates": self.duplicates,
        }
        if self.error:
            result["error"] = self.error
        return result
