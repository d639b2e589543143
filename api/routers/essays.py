"""Essays Router - Essay submission, editing and analysis endpoints."""

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import (
    ServiceContainer,
    get_lifecycle,
    get_services,
    pagination_params,
)
from api.models import (
    AnalysisResponse,
    EssayCreateRequest,
    EssayListResponse,
    EssayResponse,
    EssayTextRequest,
    EssayUpdateRequest,
    EvaluationResponse,
    ReanalyzeRequest,
)
from grading import AnalysisStatus, EssayLifecycle
from grading.results import AnalysisResult
from utils.auth import CurrentUser, get_current_user
from utils.monitoring import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/essays", tags=["Essays"])


@router.post("", response_model=EssayResponse, status_code=status.HTTP_201_CREATED)
async def create_essay(
    request: EssayCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """
    Submit an essay.

    When text is included, automated analysis starts right away.
    """
    essay = await lifecycle.create_essay(
        user,
        title=request.title,
        text=request.text,
        image_url=request.image_url,
        student_id=request.student_id,
        classroom_id=request.classroom_id,
    )
    return EssayResponse.model_validate(essay)


@router.get("", response_model=EssayListResponse)
async def list_essays(
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
    pagination: dict = Depends(pagination_params),
):
    """List the essays visible to the caller, newest first."""
    essays = await lifecycle.list_essays(
        user,
        limit=pagination["page_size"],
        offset=pagination["offset"],
    )
    return EssayListResponse(
        essays=[EssayResponse.model_validate(e) for e in essays],
        page=pagination["page"],
        page_size=pagination["page_size"],
    )


@router.post("/reanalyze", response_model=AnalysisResult)
async def reanalyze_text(
    request: ReanalyzeRequest,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """Analyze arbitrary text synchronously. Nothing is stored or cached."""
    return await lifecycle.reanalyze(user, request.text)


@router.get("/{essay_id}", response_model=EssayResponse)
async def get_essay(
    essay_id: str,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    essay = await lifecycle.get_essay(user, essay_id)
    return EssayResponse.model_validate(essay)


@router.put("/{essay_id}", response_model=EssayResponse)
async def update_essay(
    essay_id: str,
    request: EssayUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """
    Edit an essay.

    A changed text resets the automatic and final scores and restarts
    analysis; the response reflects the reset.
    """
    essay = await lifecycle.edit_essay(user, essay_id, title=request.title, text=request.text)
    return EssayResponse.model_validate(essay)


@router.delete("/{essay_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_essay(
    essay_id: str,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    await lifecycle.delete_essay(user, essay_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{essay_id}/text", response_model=EssayResponse)
async def attach_essay_text(
    essay_id: str,
    request: EssayTextRequest,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """Store text from the OCR/correction pipeline and start analysis."""
    essay = await lifecycle.attach_text(user, essay_id, request.text)
    return EssayResponse.model_validate(essay)


@router.get("/{essay_id}/analysis", response_model=AnalysisResponse)
async def get_essay_analysis(
    essay_id: str,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    lifecycle: EssayLifecycle = Depends(get_lifecycle),
):
    """
    Get the automated analysis of an essay.

    Returns 200 with the result once it is available, or 202 while the
    analysis is still running.
    """
    outcome = await lifecycle.get_analysis(user, essay_id)
    if outcome.status != AnalysisStatus.COMPLETED:
        response.status_code = status.HTTP_202_ACCEPTED
    return AnalysisResponse(status=outcome.status.value, result=outcome.result)


@router.get("/{essay_id}/evaluations", response_model=list[EvaluationResponse])
async def list_essay_evaluations(
    essay_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    evaluations = await services.aggregator.list_evaluations(user, essay_id)
    return [EvaluationResponse.model_validate(e) for e in evaluations]
