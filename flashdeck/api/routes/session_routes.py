from fastapi import APIRouter, Depends

from ...core.container import get_study_service
from ...core.error_handling import handle_exceptions
from ...core.exceptions.base import ResourceNotFoundError, ValidationError
from ...core.exceptions.domain import StorageError
from ...domain.project.service import StudyService
from ..models.models import AnswerRequest, CardActionRequest
from ..models.responses import AnswerResponse, FlashcardView, NextCardResponse

router = APIRouter(prefix="/projects/{project_id}/session", tags=["session"])

SESSION_ERRORS = {
    ResourceNotFoundError: (404, "Resource not found"),
    ValidationError: (400, "Invalid request"),
    StorageError: (503, "Project storage unavailable"),
}


@router.get("/next", response_model=NextCardResponse)
@handle_exceptions(SESSION_ERRORS)
async def next_card(project_id: str, service: StudyService = Depends(get_study_service)):
    """
    Get the card to study next.

    The card is not marked seen until it is answered or skipped, so this call
    can be repeated freely. ``card`` is null when the pool is empty or the
    session is complete.

    Args:
        project_id (str): Project identifier
        service (StudyService): Study service instance

    Returns:
        NextCardResponse: The next card, the session state and cards remaining
    """
    result = await service.next_card(project_id)
    return NextCardResponse(
        card=FlashcardView.from_card(result.card) if result.card else None,
        state=result.state.value,
        remaining=result.remaining,
    )


@router.post("/answer", response_model=AnswerResponse)
@handle_exceptions(SESSION_ERRORS)
async def answer_card(project_id: str, request: AnswerRequest, service: StudyService = Depends(get_study_service)):
    result = await service.answer_card(
        project_id, request.card_id, correct=request.correct, selected_option_index=request.selected_option_index
    )
    return AnswerResponse(
        card=FlashcardView.from_card(result.card) if result.card else None,
        correct=result.correct,
    )


@router.post("/seen", status_code=204)
@handle_exceptions(SESSION_ERRORS)
async def mark_seen(project_id: str, request: CardActionRequest, service: StudyService = Depends(get_study_service)):
    await service.mark_seen(project_id, request.card_id)


@router.post("/skip", status_code=204)
@handle_exceptions(SESSION_ERRORS)
async def skip_card(project_id: str, request: CardActionRequest, service: StudyService = Depends(get_study_service)):
    """Defer a card until every other card of the session has been seen."""
    await service.skip_card(project_id, request.card_id)


@router.post("/reset", status_code=204)
@handle_exceptions(SESSION_ERRORS)
async def reset_session(project_id: str, service: StudyService = Depends(get_study_service)):
    await service.reset_session(project_id)
