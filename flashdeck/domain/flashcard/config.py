from enum import Enum
from typing import Tuple

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DEFAULT_DIFFICULTY = 3
OPTION_COUNT = 4

PLACEHOLDER_OPTIONS: Tuple[str, ...] = ("Option A", "Option B", "Option C", "Option D")


class ExportFormat(Enum):
    JSON = "json"
    CSV = "csv"
    ANKI = "anki"

    @property
    def extension(self) -> str:
        """Return the file extension used for this format."""
        extensions = {"json": ".json", "csv": ".csv", "anki": ".apkg"}
        return extensions[self.value]

    @property
    def media_type(self) -> str:
        media_types = {"json": "application/json", "csv": "text/csv", "anki": "application/apkg"}
        return media_types[self.value]


class DifficultyFilter(Enum):
    ALL = "all"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    def matches(self, difficulty: int) -> bool:
        """Check whether a difficulty value falls in this band."""
        if self is DifficultyFilter.EASY:
            return difficulty <= 2
        if self is DifficultyFilter.MEDIUM:
            return difficulty == 3
        if self is DifficultyFilter.HARD:
            return difficulty >= 4
        return True

    @classmethod
    def band_for(cls, difficulty: int) -> "DifficultyFilter":
        for band in (cls.EASY, cls.MEDIUM, cls.HARD):
            if band.matches(difficulty):
                return band
        return cls.ALL
