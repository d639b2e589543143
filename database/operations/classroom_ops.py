"""
Classroom Database Operations

Classrooms, enrollments, and the queries that decide which students a
teacher is responsible for.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from database.models import Classroom, Enrollment, Essay, Evaluation, User
from utils.errors import NotFoundError, ValidationError
from utils.monitoring import get_logger

from .async_ops import AsyncGateway

logger = get_logger(__name__)


class ClassroomGateway(AsyncGateway):
    """Reads and writes classrooms and enrollments."""

    async def create_classroom(self, name: str, teacher_id: str) -> Classroom:
        classroom = Classroom(name=name, teacher_id=teacher_id)
        async with self.session() as session:
            session.add(classroom)
            await session.flush()

        logger.info("Classroom created", classroom_id=classroom.id, teacher_id=teacher_id)
        return classroom

    async def get_classroom(self, classroom_id: str) -> Optional[Classroom]:
        async with self.session() as session:
            return await session.get(Classroom, classroom_id)

    async def list_classrooms_for_teacher(self, teacher_id: str) -> List[Classroom]:
        query = (
            select(Classroom)
            .where(Classroom.teacher_id == teacher_id)
            .order_by(Classroom.created_at)
        )
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_classrooms_for_student(self, student_id: str) -> List[Classroom]:
        query = (
            select(Classroom)
            .join(Enrollment, Enrollment.classroom_id == Classroom.id)
            .where(Enrollment.student_id == student_id)
            .order_by(Classroom.created_at)
        )
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_all_classrooms(self) -> List[Classroom]:
        async with self.session() as session:
            result = await session.execute(select(Classroom).order_by(Classroom.created_at))
            return list(result.scalars().all())

    async def list_classroom_students(self, classroom_id: str) -> List[User]:
        """Students enrolled in a classroom, in enrollment order."""
        query = (
            select(User)
            .join(Enrollment, Enrollment.student_id == User.id)
            .where(Enrollment.classroom_id == classroom_id)
            .order_by(Enrollment.created_at)
        )
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def delete_classroom(self, classroom_id: str) -> bool:
        """
        Delete a classroom and its enrollments.

        Essays handed in to the classroom stay with their students and are
        detached from it.

        Returns:
            False if the classroom did not exist
        """
        async with self.session() as session:
            await session.execute(
                update(Essay).where(Essay.classroom_id == classroom_id).values(classroom_id=None)
            )
            await session.execute(delete(Enrollment).where(Enrollment.classroom_id == classroom_id))
            result = await session.execute(delete(Classroom).where(Classroom.id == classroom_id))
            deleted = bool(result.rowcount)

        if deleted:
            logger.info("Classroom deleted", classroom_id=classroom_id)
        return deleted

    async def remove_student(self, classroom_id: str, student_id: str) -> bool:
        """Remove a student's enrollment. Returns False if there was none."""
        query = delete(Enrollment).where(
            Enrollment.classroom_id == classroom_id,
            Enrollment.student_id == student_id,
        )
        async with self.session() as session:
            result = await session.execute(query)
            removed = bool(result.rowcount)

        if removed:
            logger.info("Student removed from classroom", classroom_id=classroom_id, student_id=student_id)
        return removed

    async def enroll_student(self, classroom_id: str, student_id: str) -> Enrollment:
        """
        Enroll a student in a classroom.

        Raises:
            NotFoundError: If the classroom does not exist
            ValidationError: If the student is already enrolled
        """
        enrollment = Enrollment(classroom_id=classroom_id, student_id=student_id)
        try:
            async with self.session() as session:
                if await session.get(Classroom, classroom_id) is None:
                    raise NotFoundError(
                        "Classroom not found", resource="classroom", resource_id=classroom_id
                    )
                session.add(enrollment)
                await session.flush()
        except IntegrityError as e:
            raise ValidationError("Student is already enrolled in this classroom", field="student_id") from e

        logger.info("Student enrolled", classroom_id=classroom_id, student_id=student_id)
        return enrollment

    async def is_enrolled(self, student_id: str, classroom_id: str) -> bool:
        query = select(Enrollment.id).where(
            Enrollment.student_id == student_id,
            Enrollment.classroom_id == classroom_id,
        )
        async with self.session() as session:
            return await session.scalar(query) is not None

    async def teacher_teaches_student(self, teacher_id: str, student_id: str) -> bool:
        """True if the student is enrolled in any classroom the teacher owns."""
        query = (
            select(Enrollment.id)
            .join(Classroom, Enrollment.classroom_id == Classroom.id)
            .where(Classroom.teacher_id == teacher_id, Enrollment.student_id == student_id)
            .limit(1)
        )
        async with self.session() as session:
            return await session.scalar(query) is not None

    async def teacher_owns_classroom(self, teacher_id: str, classroom_id: str) -> bool:
        query = select(Classroom.id).where(
            Classroom.id == classroom_id,
            Classroom.teacher_id == teacher_id,
        )
        async with self.session() as session:
            return await session.scalar(query) is not None

    async def list_classroom_essays(
        self,
        classroom_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Essay]:
        """Essays handed in to a classroom, newest first."""
        query = (
            select(Essay)
            .where(Essay.classroom_id == classroom_id)
            .order_by(Essay.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def classroom_statistics(self, classroom_id: str) -> Dict[str, Any]:
        """
        Aggregate grading statistics for a classroom.

        Returns:
            Dictionary with essay count, graded count, mean final score and
            the mean evaluation score per competency
        """
        totals_query = select(
            func.count(Essay.id),
            func.count(Essay.final_score),
            func.avg(Essay.final_score),
        ).where(Essay.classroom_id == classroom_id)

        competency_query = (
            select(Evaluation.competency, func.avg(Evaluation.score))
            .join(Essay, Evaluation.essay_id == Essay.id)
            .where(Essay.classroom_id == classroom_id)
            .group_by(Evaluation.competency)
            .order_by(Evaluation.competency)
        )

        async with self.session() as session:
            essay_count, graded_count, mean_final = (await session.execute(totals_query)).one()
            competency_rows = (await session.execute(competency_query)).all()

        return {
            "classroom_id": classroom_id,
            "essay_count": essay_count,
            "graded_count": graded_count,
            "mean_final_score": float(mean_final) if mean_final is not None else None,
            "competency_means": {
                int(competency): float(mean) for competency, mean in competency_rows
            },
        }
