"""
Essay Database Operations

Persistence gateway for essays and their per-competency evaluations.

Writes that race with background analysis are conditional: the auto score
is only stored if the essay text is still the text that was analyzed.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError

from database.models import Classroom, Enrollment, Essay, Evaluation
from utils.errors import NotFoundError, PersistenceError, ValidationError
from utils.monitoring import get_logger

from .async_ops import AsyncGateway

logger = get_logger(__name__)


class EssayGateway(AsyncGateway):
    """Reads and writes essays and evaluations."""

    # ========================================================================
    # ESSAYS
    # ========================================================================

    async def get_essay(self, essay_id: str) -> Optional[Essay]:
        """Get essay by ID, or None if it does not exist."""
        async with self.session() as session:
            return await session.get(Essay, essay_id)

    async def create_essay(
        self,
        title: str,
        student_id: str,
        submitted_by: str,
        text: Optional[str] = None,
        image_url: Optional[str] = None,
        classroom_id: Optional[str] = None,
    ) -> Essay:
        """
        Create a new essay.

        Args:
            title: Essay title
            student_id: Author of the essay
            submitted_by: User who uploaded it (student or teacher)
            text: Transcribed text, if already available
            image_url: Scanned page location
            classroom_id: Classroom the essay was handed in to

        Returns:
            Created essay
        """
        essay = Essay(
            title=title,
            student_id=student_id,
            submitted_by=submitted_by,
            text=text,
            image_url=image_url,
            classroom_id=classroom_id,
        )
        async with self.session() as session:
            session.add(essay)
            await session.flush()

        logger.info("Essay created", essay_id=essay.id, student_id=student_id)
        return essay

    async def update_essay_title(self, essay_id: str, title: str) -> Essay:
        """Rename an essay. Scores are left untouched."""
        async with self.session() as session:
            essay = await session.get(Essay, essay_id)
            if essay is None:
                raise PersistenceError("Essay no longer exists", essay_id=essay_id, essay_missing=True)
            essay.title = title
            await session.flush()
            return essay

    async def update_essay_text(
        self,
        essay_id: str,
        text: str,
        title: Optional[str] = None,
    ) -> Essay:
        """
        Replace the essay text.

        Any previous automatic analysis and final score belong to the old
        text, so both are cleared in the same write.
        """
        async with self.session() as session:
            essay = await session.get(Essay, essay_id)
            if essay is None:
                raise PersistenceError("Essay no longer exists", essay_id=essay_id, essay_missing=True)
            essay.text = text
            if title is not None:
                essay.title = title
            essay.auto_score = None
            essay.final_score = None
            essay.analysis = None
            await session.flush()
            return essay

    async def update_essay_auto_score(
        self,
        essay_id: str,
        score: float,
        analysis: Optional[Dict[str, Any]] = None,
        expected_text: Optional[str] = None,
    ) -> bool:
        """
        Store the automatic score for an essay.

        Args:
            essay_id: Essay ID
            score: Automatic score (0-1000)
            analysis: Breakdown snapshot stored alongside the score
            expected_text: When given, only write if the essay text still matches

        Returns:
            True if written, False if the text changed since analysis began

        Raises:
            PersistenceError: With ``essay_missing`` set if the essay was deleted
        """
        conditions = [Essay.id == essay_id]
        if expected_text is not None:
            conditions.append(Essay.text == expected_text)

        async with self.session() as session:
            result = await session.execute(
                update(Essay)
                .where(*conditions)
                .values(auto_score=score, analysis=analysis)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                return True

            exists = await session.scalar(select(Essay.id).where(Essay.id == essay_id))

        if exists is None:
            raise PersistenceError("Essay no longer exists", essay_id=essay_id, essay_missing=True)

        logger.debug("Auto score skipped, essay text changed", essay_id=essay_id)
        return False

    async def update_essay_final_score(self, essay_id: str, score: Optional[float]) -> None:
        """Store the final score (None clears it)."""
        async with self.session() as session:
            result = await session.execute(
                update(Essay)
                .where(Essay.id == essay_id)
                .values(final_score=score)
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                raise PersistenceError("Essay no longer exists", essay_id=essay_id, essay_missing=True)

    async def delete_essay(self, essay_id: str) -> bool:
        """
        Delete an essay and its evaluations.

        Returns:
            True if the essay existed
        """
        async with self.session() as session:
            await session.execute(delete(Evaluation).where(Evaluation.essay_id == essay_id))
            result = await session.execute(delete(Essay).where(Essay.id == essay_id))
            deleted = bool(result.rowcount)

        if deleted:
            logger.info("Essay deleted", essay_id=essay_id)
        return deleted

    async def list_essays_for_student(
        self,
        student_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Essay]:
        """Essays written by a student, newest first."""
        query = (
            select(Essay)
            .where(Essay.student_id == student_id)
            .order_by(Essay.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_essays_for_teacher(
        self,
        teacher_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Essay]:
        """Essays handed in to the teacher's classrooms or written by their students."""
        classroom_ids = select(Classroom.id).where(Classroom.teacher_id == teacher_id)
        student_ids = select(Enrollment.student_id).where(Enrollment.classroom_id.in_(classroom_ids))

        query = (
            select(Essay)
            .where(or_(Essay.classroom_id.in_(classroom_ids), Essay.student_id.in_(student_ids)))
            .order_by(Essay.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_all_essays(self, limit: int = 50, offset: int = 0) -> List[Essay]:
        """All essays, newest first."""
        query = select(Essay).order_by(Essay.created_at.desc()).limit(limit).offset(offset)
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    # ========================================================================
    # EVALUATIONS
    # ========================================================================

    async def get_evaluations(self, essay_id: str) -> List[Evaluation]:
        """Evaluations of an essay, ordered by competency."""
        query = (
            select(Evaluation)
            .where(Evaluation.essay_id == essay_id)
            .order_by(Evaluation.competency)
        )
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_evaluation(self, evaluation_id: str) -> Optional[Evaluation]:
        async with self.session() as session:
            return await session.get(Evaluation, evaluation_id)

    async def find_evaluation(self, essay_id: str, competency: int) -> Optional[Evaluation]:
        """Find the evaluation of one competency of an essay."""
        query = select(Evaluation).where(
            Evaluation.essay_id == essay_id,
            Evaluation.competency == competency,
        )
        async with self.session() as session:
            return await session.scalar(query)

    async def create_evaluation(
        self,
        essay_id: str,
        competency: int,
        score: float,
        comment: Optional[str] = None,
        evaluator_id: Optional[str] = None,
    ) -> Evaluation:
        """
        Create an evaluation.

        Raises:
            ValidationError: If the competency is already evaluated for this essay
            NotFoundError: If the essay was deleted
        """
        evaluation = Evaluation(
            essay_id=essay_id,
            competency=competency,
            score=score,
            comment=comment,
            evaluator_id=evaluator_id,
        )
        try:
            async with self.session() as session:
                session.add(evaluation)
                await session.flush()
        except IntegrityError as e:
            if await self.get_essay(essay_id) is None:
                raise NotFoundError("Essay not found", resource="essay", resource_id=essay_id) from e
            raise ValidationError(
                f"Competency {competency} is already evaluated for this essay",
                field="competency",
            ) from e

        return evaluation

    async def update_evaluation(
        self,
        evaluation_id: str,
        competency: Optional[int] = None,
        score: Optional[float] = None,
        comment: Optional[str] = None,
    ) -> Optional[Evaluation]:
        """
        Update fields of an evaluation. Fields left as None are kept.

        Returns:
            Updated evaluation, or None if it does not exist
        """
        try:
            async with self.session() as session:
                evaluation = await session.get(Evaluation, evaluation_id)
                if evaluation is None:
                    return None
                if competency is not None:
                    evaluation.competency = competency
                if score is not None:
                    evaluation.score = score
                if comment is not None:
                    evaluation.comment = comment
                await session.flush()
                return evaluation
        except IntegrityError as e:
            raise ValidationError(
                f"Competency {competency} is already evaluated for this essay",
                field="competency",
            ) from e

    async def delete_evaluation(self, evaluation_id: str) -> Optional[Evaluation]:
        """
        Delete an evaluation.

        Returns:
            The deleted evaluation, or None if it did not exist
        """
        async with self.session() as session:
            evaluation = await session.get(Evaluation, evaluation_id)
            if evaluation is None:
                return None
            await session.delete(evaluation)
            return evaluation
