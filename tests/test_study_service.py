import asyncio
import csv
import json

import pytest
from cachetools import TTLCache

from flashdeck.core.exceptions.base import ResourceNotFoundError, ValidationError
from flashdeck.core.exceptions.domain import ContentAlreadyProcessedError
from flashdeck.domain.flashcard.config import DifficultyFilter, ExportFormat
from flashdeck.domain.flashcard.scheduler import SessionState
from flashdeck.domain.project.service import StudyService
from flashdeck.repositories.project_repository import ProjectRepository
from flashdeck.storage.memory import DictionaryBackend


def drafts(*questions):
    return [
        {"question": q, "answer": f"{q} answer", "options": ["w", "x", "y", "z"], "correctOptionIndex": 1}
        for q in questions
    ]


@pytest.fixture
def repository():
    return ProjectRepository(DictionaryBackend(), cache=TTLCache(maxsize=10, ttl=60))


@pytest.fixture
def service(repository, clock, tmp_path):
    return StudyService(repository, clock=clock, export_dir=str(tmp_path), max_import_bytes=10_000)


@pytest.fixture
async def project_id(service):
    project = await service.create_project("Biology", "Chapter notes")
    return project.id


async def test_create_project_requires_name(service):
    with pytest.raises(ValidationError):
        await service.create_project("   ")


async def test_unknown_project_raises(service):
    with pytest.raises(ResourceNotFoundError):
        await service.next_card("missing")


async def test_add_cards_reports_counts(service, project_id):
    result = await service.add_cards(project_id, drafts("A?", "B?") + [{"question": "Broken"}])

    assert (result.added, result.duplicates, result.malformed) == (2, 0, 1)

    again = await service.add_cards(project_id, drafts("A?", "C?"))
    assert (again.added, again.duplicates) == (1, 1)


async def test_repeated_general_source_is_refused_unless_forced(service, project_id):
    await service.add_cards(project_id, drafts("A?"), source_content="Lecture 1")

    with pytest.raises(ContentAlreadyProcessedError) as exc_info:
        await service.add_cards(project_id, drafts("B?"), source_content="Lecture 1")
    assert exc_info.value.error_code == "CONTENT_ALREADY_PROCESSED"

    forced = await service.add_cards(project_id, drafts("B?"), source_content="Lecture 1", force=True)
    assert forced.added == 1


async def test_repeated_topic_source_is_not_refused(service, project_id):
    await service.add_cards(project_id, drafts("A?"), source_content="Lecture 1", section_title="S", topic_title="T")

    result = await service.add_cards(
        project_id, drafts("B?"), source_content="Lecture 1", section_title="S", topic_title="T"
    )

    assert result.added == 1


async def test_check_content(service, project_id):
    await service.add_cards(project_id, drafts("A?"), source_content="Lecture 1")

    report = await service.check_content(project_id, source_content="Lecture 1", questions=["A?", "Z?"])

    assert report["already_processed"] is True
    assert report["duplicates"] == 1
    assert (await service.check_content(project_id, source_content="Lecture 2"))["already_processed"] is False


async def test_full_session_is_persisted(service, repository, project_id):
    await service.add_cards(project_id, drafts("A?", "B?"))

    for _ in range(2):
        result = await service.next_card(project_id)
        assert result.state is SessionState.ACTIVE
        await service.answer_card(project_id, result.card.id, correct=True)

    final = await service.next_card(project_id)
    assert final.card is None
    assert final.state is SessionState.COMPLETE
    assert final.remaining == 0

    repository.cache.clear()
    stored = await repository.get(project_id)
    assert stored.session_complete is True
    assert all(card.difficulty == 2 for card in stored.flashcards)

    await service.reset_session(project_id)
    assert (await service.next_card(project_id)).card is not None


async def test_answer_by_selected_option(service, project_id):
    await service.add_cards(project_id, drafts("A?"))
    card = (await service.next_card(project_id)).card

    wrong = await service.answer_card(project_id, card.id, selected_option_index=0)

    assert wrong.correct is False
    assert wrong.card.times_incorrect == 1
    assert wrong.card.difficulty == 4


async def test_answer_requires_outcome(service, project_id):
    with pytest.raises(ValidationError):
        await service.answer_card(project_id, "card")


async def test_answer_for_deleted_card_only_marks_seen(service, project_id):
    await service.add_cards(project_id, drafts("A?", "B?"))
    card = (await service.next_card(project_id)).card
    await service.delete_card(project_id, card.id)

    result = await service.answer_card(project_id, card.id, correct=True)

    assert result.card is None
    assert result.correct is None
    assert card.id in (await service.get_project(project_id)).cards_seen_this_session


async def test_concurrent_answers_are_not_lost(service, project_id):
    await service.add_cards(project_id, drafts("A?"))
    card = (await service.next_card(project_id)).card

    await asyncio.gather(*(service.answer_card(project_id, card.id, correct=False) for _ in range(5)))

    stored = (await service.get_project(project_id)).flashcards[0]
    assert stored.times_incorrect == 5
    assert stored.difficulty == 5


async def test_skip_defers_card(service, project_id):
    await service.add_cards(project_id, drafts("A?", "B?"))
    first = (await service.next_card(project_id)).card

    await service.skip_card(project_id, first.id)

    assert (await service.next_card(project_id)).card.id != first.id


async def test_list_cards_filters(service, project_id):
    await service.add_cards(project_id, drafts("Mitosis?", "Meiosis?"))
    await service.add_cards(project_id, drafts("Osmosis?"), section_title="Cells", topic_title="Transport")

    assert [c.question for c in await service.list_cards(project_id, search="mito")] == ["Mitosis?"]
    assert [c.question for c in await service.list_cards(project_id, section_title="Cells")] == []
    scoped = await service.list_cards(project_id, section_title="Cells", topic_title="Transport")
    assert [c.question for c in scoped] == ["Osmosis?"]
    assert await service.list_cards(project_id, difficulty=DifficultyFilter.HARD) == []


async def test_statistics_and_clear(service, project_id):
    await service.add_cards(project_id, drafts("A?", "B?"))

    assert (await service.statistics(project_id)).total_cards == 2
    assert await service.clear_cards(project_id) == 2
    assert (await service.statistics(project_id)).total_cards == 0


async def test_import_round_trip_between_projects(service, project_id):
    await service.add_cards(project_id, drafts("A?", "B?"))
    payload = await service.export_cards(project_id)
    other = await service.create_project("Copy")

    result = await service.import_cards(other.id, payload)

    assert result.success is True
    assert result.count == 2


async def test_oversized_import_is_rejected(service, project_id):
    result = await service.import_cards(project_id, "[" + " " * 20_000 + "]")

    assert result.success is False
    assert "exceeds" in result.error


async def test_export_to_json_and_csv_files(service, project_id):
    await service.add_cards(project_id, drafts("A?", "B?"))

    json_path = await service.export_to_file(project_id, ExportFormat.JSON)
    csv_path = await service.export_to_file(project_id, ExportFormat.CSV)

    assert json_path.suffix == ".json"
    assert [item["question"] for item in json.loads(json_path.read_text(encoding="utf-8"))] == ["A?", "B?"]

    with open(csv_path, newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))
    assert rows[0][0] == "question"
    assert rows[1][:2] == ["A?", "A? answer"]
    assert rows[1][6] == "x"


async def test_export_to_anki_deck(service, project_id):
    await service.add_cards(project_id, drafts("A?"))

    path = await service.export_to_file(project_id, ExportFormat.ANKI)

    assert path.suffix == ".apkg"
    assert path.stat().st_size > 0


async def test_delete_project(service, project_id):
    await service.delete_project(project_id)

    with pytest.raises(ResourceNotFoundError):
        await service.get_project(project_id)
    with pytest.raises(ResourceNotFoundError):
        await service.delete_project(project_id)


async def test_repeats_within_batch_count_as_duplicates(service, project_id):
    submitted = drafts("A?", "A?", "B?") + [{"question": "Broken"}]

    result = await service.add_cards(project_id, submitted)

    assert (result.added, result.duplicates, result.malformed) == (2, 1, 1)
    assert result.added + result.duplicates + result.malformed == len(submitted)


async def test_unknown_project_does_not_keep_a_lock(service):
    for _ in range(3):
        with pytest.raises(ResourceNotFoundError):
            await service.answer_card("missing", "card", correct=True)

    assert "missing" not in service._locks


async def test_deleted_project_releases_its_lock(service, project_id):
    await service.next_card(project_id)
    assert project_id in service._locks

    await service.delete_project(project_id)

    assert project_id not in service._locks
