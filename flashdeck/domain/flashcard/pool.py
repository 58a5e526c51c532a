import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Mapping, Optional, Set, Union

from ..project.models import Project
from .config import DEFAULT_DIFFICULTY, MAX_DIFFICULTY, MIN_DIFFICULTY, DifficultyFilter
from .fingerprint import fingerprint
from .interchange import export_flashcards, parse_flashcards
from .models import Flashcard, FlashcardDraft, ImportResult, PoolStatistics, normalize_label

DraftInput = Union[FlashcardDraft, Mapping]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CardPoolManager:
    """
    Maintains the deduplicated, provenance-tagged flashcard pool of one project.

    Questions are unique within a dedup scope: the unlabelled general pool, or
    the set of cards sharing one (section, topic) label pair. General cards and
    topic cards never collide with each other.
    """

    def __init__(self, project: Project, clock: Optional[Clock] = None):
        """
        Initialize CardPoolManager.

        Args:
            project (Project): Project whose pool is managed
            clock (Optional[Clock], optional): Source of "now" for answer timestamps
        """
        self.project = project
        self.clock = clock or _utc_now
        self.logger = logging.getLogger(__name__)

    @property
    def cards(self) -> List[Flashcard]:
        """Read-only snapshot of the pool in insertion order."""
        return list(self.project.flashcards)

    def get_card(self, card_id: str) -> Optional[Flashcard]:
        for card in self.project.flashcards:
            if card.id == card_id:
                return card
        return None

    def cards_in_scope(self, section_title: Optional[str] = None, topic_title: Optional[str] = None) -> List[Flashcard]:
        """Cards belonging to the dedup scope of the given labels."""
        scope = (normalize_label(section_title), normalize_label(topic_title))
        return [card for card in self.project.flashcards if card.scope == scope]

    def _questions_in_scope(self, section_title: Optional[str], topic_title: Optional[str]) -> Set[str]:
        return {card.question for card in self.cards_in_scope(section_title, topic_title)}

    @staticmethod
    def as_draft(item: DraftInput) -> Optional[FlashcardDraft]:
        if isinstance(item, FlashcardDraft):
            return item
        if isinstance(item, Mapping):
            return FlashcardDraft.from_mapping(item)
        return None

    def add_cards(
        self,
        drafts: Iterable[DraftInput],
        source_content: Optional[str] = None,
        section_title: Optional[str] = None,
        topic_title: Optional[str] = None,
    ) -> int:
        """
        Add generated drafts to the pool, skipping malformed drafts and duplicates.

        Args:
            drafts (Iterable[DraftInput]): Drafts or generator dicts
            source_content (Optional[str], optional): Text the drafts were generated from
            section_title (Optional[str], optional): Section label scoping the batch
            topic_title (Optional[str], optional): Topic label scoping the batch

        Returns:
            int: Number of cards actually inserted
        """
        section_title = normalize_label(section_title)
        topic_title = normalize_label(topic_title)
        content_hash = fingerprint(source_content) if source_content else None

        existing = self._questions_in_scope(section_title, topic_title)
        new_cards: List[Flashcard] = []
        malformed = 0

        for item in drafts:
            draft = self.as_draft(item)
            if draft is None or not draft.is_well_formed:
                malformed += 1
                continue
            if draft.question in existing:
                continue
            existing.add(draft.question)
            new_cards.append(
                Flashcard(
                    id=str(uuid.uuid4()),
                    question=draft.question,
                    answer=draft.answer,
                    options=list(draft.options),
                    correct_option_index=draft.correct_option_index,
                    difficulty=DEFAULT_DIFFICULTY,
                    source_hash=content_hash,
                    source_section_title=section_title,
                    source_topic_title=topic_title,
                )
            )

        if malformed:
            self.logger.debug(f"Dropped {malformed} malformed drafts")

        if not new_cards:
            return 0

        self.project.flashcards.extend(new_cards)

        is_general_batch = section_title is None and topic_title is None
        if content_hash and is_general_batch and content_hash not in self.project.processed_hashes:
            self.project.processed_hashes.append(content_hash)

        self.project.touch(self.clock())
        self.logger.info(f"Added {len(new_cards)} flashcards to project {self.project.id}")
        return len(new_cards)

    def has_fingerprint(self, content: str) -> bool:
        """Check whether a general batch was already generated from this text."""
        return fingerprint(content) in self.project.processed_hashes

    def count_duplicates(
        self, questions: Iterable[str], section_title: Optional[str] = None, topic_title: Optional[str] = None
    ) -> int:
        existing = self._questions_in_scope(section_title, topic_title)
        return sum(1 for question in questions if question in existing)

    def delete_card(self, card_id: str) -> bool:
        """
        Remove a card by id.

        The session seen set may keep referring to the id; the scheduler tolerates it.
        """
        remaining = [card for card in self.project.flashcards if card.id != card_id]
        if len(remaining) == len(self.project.flashcards):
            self.logger.debug(f"Delete ignored, no flashcard {card_id}")
            return False

        self.project.flashcards = remaining
        self.project.touch(self.clock())
        return True

    def clear_cards(self) -> int:
        removed = len(self.project.flashcards)
        if removed:
            self.project.flashcards = []
            self.project.touch(self.clock())
            self.logger.info(f"Cleared {removed} flashcards from project {self.project.id}")
        return removed

    def record_outcome(self, card_id: str, correct: bool) -> None:
        """
        Apply an answer to a card's difficulty, counters and recency.

        Unknown ids are ignored: the card may have been deleted while being answered.
        """
        card = self.get_card(card_id)
        if card is None:
            self.logger.debug(f"Outcome ignored, no flashcard {card_id}")
            return

        now = self.clock()
        if correct:
            card.times_correct += 1
            card.difficulty = max(MIN_DIFFICULTY, card.difficulty - 1)
        else:
            card.times_incorrect += 1
            card.difficulty = min(MAX_DIFFICULTY, card.difficulty + 1)
        card.last_seen = now
        self.project.touch(now)

    def search(self, term: str = "", difficulty: DifficultyFilter = DifficultyFilter.ALL) -> List[Flashcard]:
        """Case-insensitive search over questions and answers, filtered by difficulty band."""
        needle = term.strip().lower()
        return [
            card
            for card in self.project.flashcards
            if (not needle or needle in card.question.lower() or needle in card.answer.lower())
            and difficulty.matches(card.difficulty)
        ]

    def statistics(self) -> PoolStatistics:
        stats = PoolStatistics(total_cards=len(self.project.flashcards))
        for card in self.project.flashcards:
            stats.times_correct += card.times_correct
            stats.times_incorrect += card.times_incorrect
            if card.last_seen is None:
                stats.never_seen += 1
            band = card.difficulty_band
            if band is DifficultyFilter.EASY:
                stats.easy += 1
            elif band is DifficultyFilter.MEDIUM:
                stats.medium += 1
            else:
                stats.hard += 1
        return stats

    def export_cards(self) -> str:
        return export_flashcards(self.project.flashcards)

    def import_cards(self, payload: Union[str, bytes]) -> ImportResult:
        """
        Import an interchange payload into the pool.

        Ids are regenerated; difficulty, counters, timestamps and provenance are kept.
        Records whose question already exists in their scope are skipped.

        Args:
            payload (Union[str, bytes]): JSON array of flashcard records

        Returns:
            ImportResult: Number imported, malformed records skipped and duplicates
        """
        parsed = parse_flashcards(payload)
        if not parsed.success:
            return parsed

        seen_by_scope = {}
        imported: List[Flashcard] = []
        duplicates = 0
        for card in parsed.cards:
            if card.scope not in seen_by_scope:
                seen_by_scope[card.scope] = self._questions_in_scope(*card.scope)
            questions = seen_by_scope[card.scope]
            if card.question in questions:
                duplicates += 1
                continue
            questions.add(card.question)
            imported.append(card)

        if imported:
            self.project.flashcards.extend(imported)
            self.project.touch(self.clock())
            self.logger.info(f"Imported {len(imported)} flashcards into project {self.project.id}")

        return ImportResult(
            success=True,
            count=len(imported),
            skipped=parsed.skipped,
            duplicates=duplicates,
            cards=imported,
        )
