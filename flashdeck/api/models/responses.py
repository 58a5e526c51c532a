from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from ...domain.flashcard.models import Flashcard, ImportResult, PoolStatistics
from ...domain.project.models import Project


class FlashcardView(BaseModel):
    id: str
    question: str
    answer: str
    options: List[str]
    correct_option_index: int
    difficulty: int
    last_seen: Optional[datetime]
    times_correct: int
    times_incorrect: int
    score: int
    source_hash: Optional[str] = None
    source_section_title: Optional[str] = None
    source_topic_title: Optional[str] = None

    @classmethod
    def from_card(cls, card: Flashcard) -> "FlashcardView":
        return cls(
            id=card.id,
            question=card.question,
            answer=card.answer,
            options=card.display_options,
            correct_option_index=card.correct_option_index,
            difficulty=card.difficulty,
            last_seen=card.last_seen,
            times_correct=card.times_correct,
            times_incorrect=card.times_incorrect,
            score=card.score,
            source_hash=card.source_hash,
            source_section_title=card.source_section_title,
            source_topic_title=card.source_topic_title,
        )


class ProjectSummary(BaseModel):
    id: str
    name: str
    description: str
    card_count: int
    session_complete: bool
    updated_at: datetime

    @classmethod
    def from_project(cls, project: Project) -> "ProjectSummary":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            card_count=len(project.flashcards),
            session_complete=project.session_complete,
            updated_at=project.updated_at,
        )


class ProjectDetail(ProjectSummary):
    created_at: datetime
    cards_seen_this_session: int
    processed_hashes: List[str]
    flashcards: List[FlashcardView]

    @classmethod
    def from_project(cls, project: Project) -> "ProjectDetail":
        summary = ProjectSummary.from_project(project)
        return cls(
            **summary.model_dump(),
            created_at=project.created_at,
            cards_seen_this_session=len(project.cards_seen_this_session),
            processed_hashes=list(project.processed_hashes),
            flashcards=[FlashcardView.from_card(card) for card in project.flashcards],
        )


class AddCardsResponse(BaseModel):
    added: int
    duplicates: int
    malformed: int
    fingerprint: Optional[str] = None


class ContentCheckResponse(BaseModel):
    fingerprint: Optional[str]
    already_processed: bool
    duplicates: int


class NextCardResponse(BaseModel):
    card: Optional[FlashcardView]
    state: str
    remaining: int


class AnswerResponse(BaseModel):
    card: Optional[FlashcardView]
    correct: Optional[bool]


class StatsResponse(BaseModel):
    total_cards: int
    never_seen: int
    times_correct: int
    times_incorrect: int
    cards_studied: int
    easy: int
    medium: int
    hard: int

    @classmethod
    def from_statistics(cls, stats: PoolStatistics) -> "StatsResponse":
        return cls(**stats.to_dict())


class ImportResponse(BaseModel):
    success: bool
    count: int = 0
    skipped: int = 0
    duplicates: int = 0
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: ImportResult) -> "ImportResponse":
        return cls(**result.to_dict())
