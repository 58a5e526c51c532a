import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Union

from ...core.exceptions.base import ResourceNotFoundError, ValidationError
from ...core.exceptions.domain import ContentAlreadyProcessedError
from ...repositories.export_repository import FlashcardExporterFactory
from ...repositories.project_repository import ProjectRepositoryInterface
from ..flashcard.config import DifficultyFilter, ExportFormat
from ..flashcard.fingerprint import fingerprint
from ..flashcard.models import Flashcard, ImportResult, PoolStatistics, normalize_label
from ..flashcard.pool import CardPoolManager, DraftInput
from ..flashcard.scheduler import SessionScheduler, SessionState
from .models import Project


@dataclass
class AddCardsResult:
    added: int
    duplicates: int
    malformed: int
    fingerprint: Optional[str] = None


@dataclass
class NextCardResult:
    card: Optional[Flashcard]
    state: SessionState
    remaining: int


@dataclass
class AnswerResult:
    card: Optional[Flashcard]
    correct: Optional[bool]


class StudyService:
    """
    Runs pool and scheduler operations against persisted projects.

    Every operation on a project loads its snapshot, applies one core
    operation and saves it while holding that project's lock, so two rapid
    actions on the same project never interleave.
    """

    def __init__(
        self,
        repository: ProjectRepositoryInterface,
        clock: Optional[Callable[[], datetime]] = None,
        export_dir: str = "output",
        max_import_bytes: Optional[int] = None,
    ):
        """
        Initialize StudyService.

        Args:
            repository (ProjectRepositoryInterface): Project persistence
            clock (Optional[Callable[[], datetime]], optional): Source of "now"
            export_dir (str, optional): Directory for exported files. Defaults to "output".
            max_import_bytes (Optional[int], optional): Largest accepted import payload
        """
        self.repository = repository
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.export_dir = Path(export_dir)
        self.max_import_bytes = max_import_bytes
        self._locks: Dict[str, asyncio.Lock] = {}
        self.logger = logging.getLogger(__name__)

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        if project_id not in self._locks:
            self._locks[project_id] = asyncio.Lock()
        return self._locks[project_id]

    async def _load(self, project_id: str) -> Project:
        project = await self.repository.get(project_id)
        if project is None:
            raise ResourceNotFoundError("Project", project_id)
        return project

    @asynccontextmanager
    async def _editing(self, project_id: str) -> AsyncIterator[Project]:
        """Load, yield for mutation, then save, all under the project lock."""
        async with self._lock_for(project_id):
            try:
                project = await self._load(project_id)
            except ResourceNotFoundError:
                self._locks.pop(project_id, None)
                raise
            yield project
            await self.repository.save(project)

    # Projects

    async def create_project(self, name: str, description: str = "") -> Project:
        if not name or not name.strip():
            raise ValidationError("Project name must not be empty", "name")

        now = self.clock()
        project = Project(name=name.strip(), description=description.strip(), created_at=now, updated_at=now)
        await self.repository.save(project)
        self.logger.info(f"Created project {project.id}")
        return project

    async def get_project(self, project_id: str) -> Project:
        return await self._load(project_id)

    async def list_projects(self, limit: int = 50) -> List[Project]:
        return await self.repository.list_projects(limit)

    async def delete_project(self, project_id: str) -> None:
        async with self._lock_for(project_id):
            deleted = await self.repository.delete(project_id)
        self._locks.pop(project_id, None)
        if not deleted:
            raise ResourceNotFoundError("Project", project_id)

    # Pool

    async def add_cards(
        self,
        project_id: str,
        drafts: Iterable[DraftInput],
        source_content: Optional[str] = None,
        section_title: Optional[str] = None,
        topic_title: Optional[str] = None,
        force: bool = False,
    ) -> AddCardsResult:
        """
        Add a generated batch to a project.

        A general batch whose source text was already used is refused unless
        ``force`` is set. Topic-scoped batches are never refused.

        Raises:
            ContentAlreadyProcessedError: If the source fingerprint is known and force is False
        """
        drafts = [CardPoolManager.as_draft(item) for item in drafts]
        well_formed = [draft for draft in drafts if draft is not None and draft.is_well_formed]
        is_general = normalize_label(section_title) is None and normalize_label(topic_title) is None

        async with self._editing(project_id) as project:
            pool = CardPoolManager(project, clock=self.clock)

            if source_content and is_general and not force and pool.has_fingerprint(source_content):
                raise ContentAlreadyProcessedError(project_id, fingerprint(source_content))

            added = pool.add_cards(well_formed, source_content, section_title, topic_title)

        # Repeats within the batch count as duplicates too
        return AddCardsResult(
            added=added,
            duplicates=len(well_formed) - added,
            malformed=len(drafts) - len(well_formed),
            fingerprint=fingerprint(source_content) if source_content else None,
        )

    async def check_content(
        self,
        project_id: str,
        source_content: Optional[str] = None,
        questions: Optional[List[str]] = None,
        section_title: Optional[str] = None,
        topic_title: Optional[str] = None,
    ) -> Dict[str, object]:
        """Report whether source text was already processed and how many questions are duplicates."""
        project = await self._load(project_id)
        pool = CardPoolManager(project)
        return {
            "fingerprint": fingerprint(source_content) if source_content else None,
            "already_processed": bool(source_content) and pool.has_fingerprint(source_content),
            "duplicates": pool.count_duplicates(questions or [], section_title, topic_title),
        }

    async def list_cards(
        self,
        project_id: str,
        search: str = "",
        difficulty: DifficultyFilter = DifficultyFilter.ALL,
        section_title: Optional[str] = None,
        topic_title: Optional[str] = None,
    ) -> List[Flashcard]:
        project = await self._load(project_id)
        pool = CardPoolManager(project)
        cards = pool.search(search, difficulty)
        if section_title is not None or topic_title is not None:
            scoped = {card.id for card in pool.cards_in_scope(section_title, topic_title)}
            cards = [card for card in cards if card.id in scoped]
        return cards

    async def delete_card(self, project_id: str, card_id: str) -> bool:
        async with self._editing(project_id) as project:
            return CardPoolManager(project, clock=self.clock).delete_card(card_id)

    async def clear_cards(self, project_id: str) -> int:
        async with self._editing(project_id) as project:
            return CardPoolManager(project, clock=self.clock).clear_cards()

    async def statistics(self, project_id: str) -> PoolStatistics:
        project = await self._load(project_id)
        return CardPoolManager(project).statistics()

    # Session

    async def next_card(self, project_id: str) -> NextCardResult:
        async with self._editing(project_id) as project:
            scheduler = SessionScheduler(project)
            card = scheduler.get_next_card()
            return NextCardResult(card=card, state=scheduler.state, remaining=scheduler.remaining())

    async def answer_card(
        self,
        project_id: str,
        card_id: str,
        correct: Optional[bool] = None,
        selected_option_index: Optional[int] = None,
    ) -> AnswerResult:
        """
        Record an answer and mark the card seen for this session.

        Either ``correct`` or ``selected_option_index`` must be given. A card
        deleted while being answered is still marked seen, but no outcome is recorded.
        """
        if correct is None and selected_option_index is None:
            raise ValidationError("Either correct or selected_option_index is required", "correct")

        async with self._editing(project_id) as project:
            pool = CardPoolManager(project, clock=self.clock)
            card = pool.get_card(card_id)
            if card is not None and correct is None:
                correct = selected_option_index == card.correct_option_index
            if card is not None:
                pool.record_outcome(card_id, correct)
            SessionScheduler(project).record_seen(card_id)

        return AnswerResult(card=card, correct=correct if card is not None else None)

    async def mark_seen(self, project_id: str, card_id: str) -> None:
        async with self._editing(project_id) as project:
            SessionScheduler(project).record_seen(card_id)

    async def skip_card(self, project_id: str, card_id: str) -> None:
        async with self._editing(project_id) as project:
            SessionScheduler(project).skip_card(card_id)

    async def reset_session(self, project_id: str) -> None:
        async with self._editing(project_id) as project:
            SessionScheduler(project).reset_session(self.clock())

    # Interchange

    async def export_cards(self, project_id: str) -> str:
        project = await self._load(project_id)
        return CardPoolManager(project).export_cards()

    async def export_to_file(self, project_id: str, export_format: ExportFormat) -> Path:
        project = await self._load(project_id)
        exporter = FlashcardExporterFactory.create(export_format, str(self.export_dir / f"flashcards_{project.id}"))
        return await exporter.export(project.flashcards, deck_name=project.name or "Flashcards")

    async def import_cards(self, project_id: str, payload: Union[str, bytes]) -> ImportResult:
        """Import an interchange payload. Unreadable payloads give a failed result, not an exception."""
        if self.max_import_bytes is not None and len(payload) > self.max_import_bytes:
            return ImportResult(success=False, error=f"Import exceeds {self.max_import_bytes} bytes")

        async with self._editing(project_id) as project:
            return CardPoolManager(project, clock=self.clock).import_cards(payload)
