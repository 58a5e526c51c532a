import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse

from ...core.container import get_study_service
from ...core.error_handling import handle_exceptions
from ...core.exceptions.base import ResourceNotFoundError, ValidationError
from ...core.exceptions.domain import ContentAlreadyProcessedError, FlashcardExportError, StorageError
from ...domain.flashcard.config import DifficultyFilter, ExportFormat
from ...domain.project.service import StudyService
from ..models.models import AddCardsRequest, ContentCheckRequest, ProjectRequest
from ..models.responses import (
    AddCardsResponse,
    ContentCheckResponse,
    FlashcardView,
    ImportResponse,
    ProjectDetail,
    ProjectSummary,
    StatsResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/projects", tags=["projects"])

PROJECT_ERRORS = {
    ResourceNotFoundError: (404, "Resource not found"),
    ValidationError: (400, "Invalid request"),
    StorageError: (503, "Project storage unavailable"),
}


@router.post("", response_model=ProjectSummary, status_code=201)
@handle_exceptions(PROJECT_ERRORS)
async def create_project(request: ProjectRequest, service: StudyService = Depends(get_study_service)):
    """
    Create an empty project.

    Args:
        request (ProjectRequest): Project name and description
        service (StudyService): Study service instance

    Returns:
        ProjectSummary: The new project
    """
    project = await service.create_project(request.name, request.description)
    return ProjectSummary.from_project(project)


@router.get("", response_model=List[ProjectSummary])
@handle_exceptions(PROJECT_ERRORS)
async def list_projects(
    limit: int = Query(default=50, ge=1, le=200), service: StudyService = Depends(get_study_service)
):
    projects = await service.list_projects(limit)
    return [ProjectSummary.from_project(project) for project in projects]


@router.get("/{project_id}", response_model=ProjectDetail)
@handle_exceptions(PROJECT_ERRORS)
async def get_project(project_id: str, service: StudyService = Depends(get_study_service)):
    project = await service.get_project(project_id)
    return ProjectDetail.from_project(project)


@router.delete("/{project_id}", status_code=204)
@handle_exceptions(PROJECT_ERRORS)
async def delete_project(project_id: str, service: StudyService = Depends(get_study_service)):
    await service.delete_project(project_id)


@router.post("/{project_id}/cards", response_model=AddCardsResponse)
@handle_exceptions({**PROJECT_ERRORS, ContentAlreadyProcessedError: (409, "Content already processed")})
async def add_cards(project_id: str, request: AddCardsRequest, service: StudyService = Depends(get_study_service)):
    """
    Add a generated batch of flashcards to a project.

    Malformed drafts and questions already in the batch's scope are skipped.

    Args:
        project_id (str): Project identifier
        request (AddCardsRequest): Drafts plus optional source text and scope labels
        service (StudyService): Study service instance

    Returns:
        AddCardsResponse: Counts of added, duplicate and malformed drafts

    Raises:
        HTTPException: 409 if the source text was already processed and force is not set
    """
    result = await service.add_cards(
        project_id,
        request.drafts,
        source_content=request.source_content,
        section_title=request.section_title,
        topic_title=request.topic_title,
        force=request.force,
    )
    return AddCardsResponse(
        added=result.added, duplicates=result.duplicates, malformed=result.malformed, fingerprint=result.fingerprint
    )


@router.post("/{project_id}/content-check", response_model=ContentCheckResponse)
@handle_exceptions(PROJECT_ERRORS)
async def check_content(
    project_id: str, request: ContentCheckRequest, service: StudyService = Depends(get_study_service)
):
    report = await service.check_content(
        project_id,
        source_content=request.source_content,
        questions=request.questions,
        section_title=request.section_title,
        topic_title=request.topic_title,
    )
    return ContentCheckResponse(**report)


@router.get("/{project_id}/cards", response_model=List[FlashcardView])
@handle_exceptions(PROJECT_ERRORS)
async def list_cards(
    project_id: str,
    search: str = Query(default=""),
    difficulty: DifficultyFilter = Query(default=DifficultyFilter.ALL),
    section_title: Optional[str] = Query(default=None),
    topic_title: Optional[str] = Query(default=None),
    service: StudyService = Depends(get_study_service),
):
    """
    List a project's cards, optionally searched, filtered by difficulty band or scoped.
    """
    cards = await service.list_cards(project_id, search, difficulty, section_title, topic_title)
    return [FlashcardView.from_card(card) for card in cards]


@router.delete("/{project_id}/cards/{card_id}")
@handle_exceptions(PROJECT_ERRORS)
async def delete_card(project_id: str, card_id: str, service: StudyService = Depends(get_study_service)):
    return {"deleted": await service.delete_card(project_id, card_id)}


@router.delete("/{project_id}/cards")
@handle_exceptions(PROJECT_ERRORS)
async def clear_cards(project_id: str, service: StudyService = Depends(get_study_service)):
    return {"deleted": await service.clear_cards(project_id)}


@router.get("/{project_id}/stats", response_model=StatsResponse)
@handle_exceptions(PROJECT_ERRORS)
async def get_statistics(project_id: str, service: StudyService = Depends(get_study_service)):
    return StatsResponse.from_statistics(await service.statistics(project_id))


@router.get("/{project_id}/export")
@handle_exceptions({**PROJECT_ERRORS, FlashcardExportError: (500, "Failed to export flashcards")})
async def export_cards(
    project_id: str,
    export_format: ExportFormat = Query(default=ExportFormat.JSON, alias="format"),
    service: StudyService = Depends(get_study_service),
):
    """
    Download a project's cards as JSON, CSV or an Anki deck.

    Args:
        project_id (str): Project identifier
        export_format (ExportFormat): json, csv or anki
        service (StudyService): Study service instance

    Returns:
        FileResponse: Exported file
    """
    output_file = await service.export_to_file(project_id, export_format)
    filename = os.path.basename(output_file)
    return FileResponse(
        output_file,
        media_type=export_format.media_type,
        filename=filename,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/{project_id}/import", response_model=ImportResponse)
@handle_exceptions(PROJECT_ERRORS)
async def import_cards(project_id: str, request: Request, service: StudyService = Depends(get_study_service)):
    """
    Import a JSON array of flashcard records into a project.

    Unreadable payloads are reported in the response body rather than as an HTTP error.
    """
    payload = await request.body()
    result = await service.import_cards(project_id, payload)
    if not result.success:
        logger.warning(f"Import into project {project_id} failed: {result.error}")
    return ImportResponse.from_result(result)
