import json
import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic import ValidationError as PydanticValidationError

from .config import DEFAULT_DIFFICULTY, MAX_DIFFICULTY, MIN_DIFFICULTY, OPTION_COUNT
from .models import Flashcard, ImportResult, normalize_label, parse_timestamp

logger = logging.getLogger(__name__)


class FlashcardRecord(BaseModel):
    """Schema every imported flashcard record must satisfy."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question: str
    answer: str
    options: List[str] = Field(..., min_length=OPTION_COUNT, max_length=OPTION_COUNT)
    correct_option_index: StrictInt = Field(..., alias="correctOptionIndex", ge=0, lt=OPTION_COUNT)
    difficulty: StrictInt = Field(DEFAULT_DIFFICULTY, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    last_seen: Optional[datetime] = Field(None, alias="lastSeen")
    times_correct: StrictInt = Field(0, alias="timesCorrect", ge=0)
    times_incorrect: StrictInt = Field(0, alias="timesIncorrect", ge=0)
    source_hash: Optional[str] = Field(None, alias="sourceHash")
    source_section_title: Optional[str] = Field(None, alias="sourceSectionTitle")
    source_topic_title: Optional[str] = Field(None, alias="sourceTopicTitle")

    @field_validator("question", "answer")
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("options")
    def validate_options(cls, v: List[str]) -> List[str]:
        if any(not option.strip() for option in v):
            raise ValueError("options must not be blank")
        if len(set(v)) != len(v):
            raise ValueError("options must be distinct")
        return v

    def to_flashcard(self) -> Flashcard:
        """Create a pool card with a fresh id, keeping performance history."""
        return Flashcard(
            id=str(uuid.uuid4()),
            question=self.question,
            answer=self.answer,
            options=list(self.options),
            correct_option_index=self.correct_option_index,
            difficulty=self.difficulty,
            last_seen=parse_timestamp(self.last_seen),
            times_correct=self.times_correct,
            times_incorrect=self.times_incorrect,
            source_hash=self.source_hash,
            source_section_title=normalize_label(self.source_section_title),
            source_topic_title=normalize_label(self.source_topic_title),
        )


def export_flashcards(cards: Iterable[Flashcard]) -> str:
    """
    Serialise a pool to the JSON interchange format.

    Args:
        cards (Iterable[Flashcard]): Cards to export, in pool order

    Returns:
        str: JSON array of camelCase flashcard records
    """
    return json.dumps([card.to_dict() for card in cards], indent=2, ensure_ascii=False)


def parse_flashcards(payload: Union[str, bytes]) -> ImportResult:
    """
    Read and validate a JSON interchange payload.

    Records that fail validation are skipped and counted. A payload that is not
    JSON, or whose top level is not an array, yields a failed result.

    Args:
        payload (Union[str, bytes]): Raw file contents

    Returns:
        ImportResult: Parsed cards with fresh ids, or the reason for failure
    """
    try:
        data = json.loads(payload)
    except RecursionError:
        logger.warning("Rejected flashcard import: nesting too deep")
        return ImportResult(success=False, error="Invalid JSON: nesting too deep")
    except (ValueError, TypeError) as e:
        logger.warning(f"Rejected flashcard import: {e}")
        return ImportResult(success=False, error=f"Invalid JSON: {e}")

    if not isinstance(data, list):
        return ImportResult(success=False, error="Expected a JSON array of flashcards")

    cards: List[Flashcard] = []
    skipped = 0
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            record = FlashcardRecord.model_validate(item)
        except PydanticValidationError as e:
            skipped += 1
            logger.debug(f"Skipping malformed flashcard record {position}: {e.error_count()} error(s)")
            continue
        cards.append(record.to_flashcard())

    if skipped:
        logger.info(f"Parsed {len(cards)} flashcards, skipped {skipped} malformed records")

    return ImportResult(success=True, count=len(cards), skipped=skipped, cards=cards)
