from .domain.flashcard.fingerprint import fingerprint
from .domain.flashcard.interchange import export_flashcards, parse_flashcards
from .domain.flashcard.models import Flashcard, FlashcardDraft, ImportResult
from .domain.flashcard.pool import CardPoolManager
from .domain.flashcard.scheduler import SessionScheduler, SessionState
from .domain.project.models import Project

__all__ = [
    'CardPoolManager',
    'Flashcard',
    'FlashcardDraft',
    'ImportResult',
    'Project',
    'SessionScheduler',
    'SessionState',
    'export_flashcards',
    'fingerprint',
    'parse_flashcards',
]
