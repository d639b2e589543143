"""Evaluations Router - Human competency evaluations."""

from fastapi import APIRouter, Depends, Response, status

from api.dependencies import ServiceContainer, get_services
from api.models import (
    EvaluationCreateRequest,
    EvaluationResponse,
    EvaluationUpdateRequest,
    EvaluationWriteResponse,
)
from utils.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/evaluations", tags=["Evaluations"])


async def _write_response(services: ServiceContainer, evaluation) -> EvaluationWriteResponse:
    essay = await services.essays.get_essay(evaluation.essay_id)
    return EvaluationWriteResponse(
        evaluation=EvaluationResponse.model_validate(evaluation),
        final_score=essay.final_score if essay else None,
    )


@router.post("", response_model=EvaluationWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_evaluation(
    request: EvaluationCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Evaluate one competency of an essay.

    **Requires:** Grade permission on the essay. The final score is
    recomputed after the write.
    """
    evaluation = await services.aggregator.create_evaluation(
        user,
        request.essay_id,
        request.competency,
        request.score,
        comment=request.comment,
    )
    return await _write_response(services, evaluation)


@router.put("/{evaluation_id}", response_model=EvaluationWriteResponse)
async def update_evaluation(
    evaluation_id: str,
    request: EvaluationUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    evaluation = await services.aggregator.update_evaluation(
        user,
        evaluation_id,
        competency=request.competency,
        score=request.score,
        comment=request.comment,
    )
    return await _write_response(services, evaluation)


@router.delete("/{evaluation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_evaluation(
    evaluation_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    await services.aggregator.delete_evaluation(user, evaluation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
