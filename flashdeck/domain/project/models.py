import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set

from ..flashcard.models import Flashcard, format_timestamp, parse_timestamp


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Project:
    """A learner's project: the card pool plus the state of the current review session."""

    name: str
    description: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    flashcards: List[Flashcard] = field(default_factory=list)
    cards_seen_this_session: Set[str] = field(default_factory=set)
    session_complete: bool = False
    processed_hashes: List[str] = field(default_factory=list)
    skipped_cards: List[str] = field(default_factory=list)

    def touch(self, now: Optional[datetime] = None) -> None:
        self.updated_at = now or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """Whole-project snapshot for the persistence layer."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "flashcards": [card.to_dict() for card in self.flashcards],
            "cardsSeenThisSession": sorted(self.cards_seen_this_session),
            "sessionComplete": self.session_complete,
            "processedHashes": list(self.processed_hashes),
            "skippedCards": list(self.skipped_cards),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Project":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            created_at=parse_timestamp(data.get("createdAt")) or utc_now(),
            updated_at=parse_timestamp(data.get("updatedAt")) or utc_now(),
            flashcards=[Flashcard.from_dict(card) for card in data.get("flashcards", [])],
            cards_seen_this_session=set(data.get("cardsSeenThisSession", [])),
            session_complete=bool(data.get("sessionComplete", False)),
            processed_hashes=list(data.get("processedHashes", [])),
            skipped_cards=list(data.get("skippedCards", [])),
        )

