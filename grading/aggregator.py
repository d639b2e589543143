"""
Grade Aggregator

Reconciles the automatic score with human competency evaluations into one
authoritative final score:

- With evaluations: unweighted mean of their scores
- Without evaluations: the stored automatic score (may be None)

The final score is recomputed after every evaluation write and after each
successful automated analysis.
"""

from typing import Iterable, List, Optional

from utils.errors import NotFoundError, PersistenceError, ValidationError
from utils.monitoring import get_logger

from .validation import validate_competency, validate_score

logger = get_logger(__name__)


def compute_final_score(scores: Iterable[float], auto_score: Optional[float]) -> Optional[float]:
    """Mean of the human scores, or the automatic score when there are none."""
    scores = list(scores)
    if not scores:
        return auto_score
    return sum(scores) / len(scores)


class GradeAggregator:
    """
    Evaluation operations and final score recalculation.

    Args:
        gateway: Essay persistence gateway
        policy: Access policy for evaluation operations
    """

    def __init__(self, gateway, policy=None):
        self.gateway = gateway
        self.policy = policy

    async def recalculate_final_score(self, essay_id: str) -> Optional[float]:
        """
        Recompute and store the final score of an essay.

        Raises:
            PersistenceError: With ``essay_missing`` set if the essay is gone
        """
        essay = await self.gateway.get_essay(essay_id)
        if essay is None:
            raise PersistenceError("Essay no longer exists", essay_id=essay_id, essay_missing=True)

        evaluations = await self.gateway.get_evaluations(essay_id)
        final_score = compute_final_score((e.score for e in evaluations), essay.auto_score)

        await self.gateway.update_essay_final_score(essay_id, final_score)
        logger.info(
            "Final score recalculated",
            essay_id=essay_id,
            final_score=final_score,
            evaluations=len(evaluations),
        )
        return final_score

    # ========================================================================
    # EVALUATIONS
    # ========================================================================

    async def _get_essay(self, essay_id: str):
        essay = await self.gateway.get_essay(essay_id)
        if essay is None:
            raise NotFoundError("Essay not found", resource="essay", resource_id=essay_id)
        return essay

    async def _get_evaluation(self, evaluation_id: str):
        evaluation = await self.gateway.get_evaluation(evaluation_id)
        if evaluation is None:
            raise NotFoundError("Evaluation not found", resource="evaluation", resource_id=evaluation_id)
        return evaluation

    async def create_evaluation(
        self,
        user,
        essay_id: str,
        competency,
        score,
        comment: Optional[str] = None,
    ):
        """
        Create an evaluation and recompute the final score.

        Raises:
            ValidationError: Competency/score out of range or already evaluated
            NotFoundError: Unknown essay
            PermissionDeniedError: Caller may not grade the essay
        """
        competency = validate_competency(competency)
        score = validate_score(score)

        essay = await self._get_essay(essay_id)
        await self.policy.ensure_can_grade(user, essay)

        if await self.gateway.find_evaluation(essay_id, competency) is not None:
            raise ValidationError(
                f"Competency {competency} is already evaluated for this essay",
                field="competency",
            )

        evaluation = await self.gateway.create_evaluation(
            essay_id,
            competency,
            score,
            comment=comment,
            evaluator_id=user.user_id,
        )
        await self.recalculate_final_score(essay_id)
        return evaluation

    async def update_evaluation(
        self,
        user,
        evaluation_id: str,
        competency=None,
        score=None,
        comment: Optional[str] = None,
    ):
        """Update an evaluation and recompute the final score."""
        if competency is not None:
            competency = validate_competency(competency)
        if score is not None:
            score = validate_score(score)

        evaluation = await self._get_evaluation(evaluation_id)
        essay = await self._get_essay(evaluation.essay_id)
        await self.policy.ensure_can_grade(user, essay)

        if competency is not None and competency != evaluation.competency:
            existing = await self.gateway.find_evaluation(essay.id, competency)
            if existing is not None and existing.id != evaluation.id:
                raise ValidationError(
                    f"Competency {competency} is already evaluated for this essay",
                    field="competency",
                )

        updated = await self.gateway.update_evaluation(
            evaluation_id,
            competency=competency,
            score=score,
            comment=comment,
        )
        if updated is None:
            raise NotFoundError("Evaluation not found", resource="evaluation", resource_id=evaluation_id)

        await self.recalculate_final_score(essay.id)
        return updated

    async def delete_evaluation(self, user, evaluation_id: str):
        """Delete an evaluation and recompute the final score."""
        evaluation = await self._get_evaluation(evaluation_id)
        essay = await self._get_essay(evaluation.essay_id)
        await self.policy.ensure_can_grade(user, essay)

        deleted = await self.gateway.delete_evaluation(evaluation_id)
        if deleted is None:
            raise NotFoundError("Evaluation not found", resource="evaluation", resource_id=evaluation_id)

        await self.recalculate_final_score(essay.id)
        return deleted

    async def list_evaluations(self, user, essay_id: str) -> List:
        essay = await self._get_essay(essay_id)
        await self.policy.ensure_can_view(user, essay)
        return await self.gateway.get_evaluations(essay_id)
