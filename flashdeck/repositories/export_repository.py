import asyncio
import csv
import html
import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence

import aiofiles
import genanki

from ..core.exceptions.domain import FlashcardExportError
from ..domain.flashcard.config import ExportFormat
from ..domain.flashcard.interchange import export_flashcards
from ..domain.flashcard.models import Flashcard


class FlashcardExporter(ABC):
    """Abstract base class for writing a project's pool to a file."""

    export_format: ExportFormat

    def __init__(self, output_file: str):
        """
        Initialize the exporter.

        Args:
            output_file (str): Path of the file to write
        """
        self.output_file = Path(output_file)
        self.logger = logging.getLogger(__name__)
        self._ensure_output_directory()

    def _ensure_output_directory(self) -> None:
        """Ensure the output directory exists."""
        self.output_file.parent.mkdir(parents=True, exist_ok=True)

    async def export(self, cards: Sequence[Flashcard], deck_name: str = "Flashcards") -> Path:
        """
        Write cards to the output file.

        Args:
            cards (Sequence[Flashcard]): Cards to export
            deck_name (str): Title used by formats that carry one

        Returns:
            Path: The written file

        Raises:
            FlashcardExportError: If there's an error during writing.
        """
        try:
            await self._write(cards, deck_name)
        except Exception as e:
            error_msg = f"Error exporting flashcards: {str(e)}"
            self.logger.error(error_msg)
            raise FlashcardExportError(self.export_format.value, str(e)) from e

        self.logger.info(f"Exported {len(cards)} flashcards to {self.output_file}")
        return self.output_file

    @abstractmethod
    async def _write(self, cards: Sequence[Flashcard], deck_name: str) -> None:
        pass


class JSONFlashcardExporter(FlashcardExporter):
    """Interchange JSON export, readable by the importer."""

    export_format = ExportFormat.JSON

    async def _write(self, cards: Sequence[Flashcard], deck_name: str) -> None:
        async with aiofiles.open(self.output_file, mode="w", encoding="utf-8") as file:
            await file.write(export_flashcards(cards))


class CSVFlashcardExporter(FlashcardExporter):
    """CSV export with one row per card."""

    export_format = ExportFormat.CSV
    HEADER = ["question", "answer", "option_a", "option_b", "option_c", "option_d", "correct_option", "difficulty"]

    @staticmethod
    def _row(card: Flashcard) -> List[str]:
        return [card.question, card.answer, *card.display_options, card.correct_option or "", str(card.difficulty)]

    async def _write(self, cards: Sequence[Flashcard], deck_name: str) -> None:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(self.HEADER)
        for card in cards:
            writer.writerow(self._row(card))

        async with aiofiles.open(self.output_file, mode="w", encoding="utf-8", newline="") as file:
            await file.write(buffer.getvalue())


class AnkiFlashcardExporter(FlashcardExporter):
    """Anki deck export; the front lists the options, the back gives the correct one."""

    export_format = ExportFormat.ANKI

    def __init__(self, output_file: str):
        super().__init__(output_file)
        self.model = genanki.Model(
            1607392320,  # Fixed model ID
            "Multiple Choice",
            fields=[{'name': 'Front'}, {'name': 'Back'}],
            templates=[{'name': 'Card', 'qfmt': '{{Front}}', 'afmt': '{{FrontSide}}<hr id="answer">{{Back}}'}],
        )

    def _note(self, card: Flashcard) -> genanki.Note:
        options = "".join(f"<li>{html.escape(option)}</li>" for option in card.display_options)
        front = f"{html.escape(card.question)}<ol type=\"A\">{options}</ol>"
        back = f"<b>{html.escape(card.correct_option or '')}</b><br>{html.escape(card.answer)}"
        return genanki.Note(model=self.model, fields=[front, back])

    async def _write(self, cards: Sequence[Flashcard], deck_name: str) -> None:
        deck = genanki.Deck(2059400111, deck_name)  # Fixed deck ID
        for card in cards:
            deck.add_note(self._note(card))
        package = genanki.Package(deck)
        await asyncio.to_thread(package.write_to_file, str(self.output_file))


class FlashcardExporterFactory:
    """Factory for creating flashcard exporters."""

    @staticmethod
    def create(export_format: ExportFormat, output_file: str) -> FlashcardExporter:
        """
        Create the exporter for a format.

        Args:
            export_format (ExportFormat): Desired export format
            output_file (str): Path without extension

        Returns:
            FlashcardExporter: Configured exporter instance

        Raises:
            ValueError: If export format is unsupported
        """
        exporters = {
            ExportFormat.JSON: JSONFlashcardExporter,
            ExportFormat.CSV: CSVFlashcardExporter,
            ExportFormat.ANKI: AnkiFlashcardExporter,
        }
        if export_format not in exporters:
            raise ValueError(f"Unsupported export format: {export_format}")
        return exporters[export_format](output_file + export_format.extension)
