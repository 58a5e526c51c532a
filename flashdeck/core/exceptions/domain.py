from typing import Dict, Optional

from .base import AppError


class ProjectError(AppError):
    """Project-related errors"""

    def __init__(self, message: str, project_id: str, details: Optional[Dict] = None):
        super().__init__(message, "PROJECT_ERROR", {"project_id": project_id, **(details or {})})


class ContentAlreadyProcessedError(ProjectError):
    """Raised when a general batch is generated from source text already used for this project"""

    def __init__(self, project_id: str, fingerprint: str):
        super().__init__(
            "Cards were already generated from this content",
            project_id,
            {"fingerprint": fingerprint},
        )
        self.error_code = "CONTENT_ALREADY_PROCESSED"


class FlashcardError(AppError):
    """Base class for flashcard-related errors"""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, "FLASHCARD_ERROR", details)


class FlashcardExportError(FlashcardError):
    """Raised when writing an export file fails"""

    def __init__(self, export_format: str, reason: str, details: Optional[Dict] = None):
        super().__init__(
            f"Flashcard export to {export_format} failed: {reason}",
            {"export_format": export_format, "reason": reason, **(details or {})},
        )


class StorageError(AppError):
    """Raised when project storage operations fail"""

    def __init__(self, operation: str, reason: str, details: Optional[Dict] = None):
        super().__init__(
            f"Storage {operation} failed: {reason}",
            "STORAGE_ERROR",
            {"operation": operation, "reason": reason, **(details or {})},
        )
