"""
Essay Lifecycle

Coordinates persistence, access checks, analysis and grading for the
request handlers.

Ordering rules:
- A text change is persisted (with scores reset) before analysis state is
  invalidated, so a cache read in between can never return a stale score
- Deleting an essay removes it from storage before the orchestrator
  forgets it; a job that finishes afterwards finds the essay gone
"""

from typing import Any, Dict, List, Optional

from database.models import UserRole
from utils.auth import Permission, PermissionChecker
from utils.errors import NotFoundError, PermissionDeniedError, ValidationError
from utils.monitoring import get_logger

from .orchestrator import AnalysisOutcome
from .results import AnalysisResult

logger = get_logger(__name__)


class EssayLifecycle:
    """
    Essay and classroom operations used by the API.

    Args:
        essays: Essay persistence gateway
        classrooms: Classroom persistence gateway
        users: User persistence gateway
        orchestrator: Analysis orchestrator
        aggregator: Grade aggregator
        policy: Essay access policy
    """

    def __init__(self, essays, classrooms, users, orchestrator, aggregator, policy):
        self.essays = essays
        self.classrooms = classrooms
        self.users = users
        self.orchestrator = orchestrator
        self.aggregator = aggregator
        self.policy = policy

    async def _get_essay(self, essay_id: str):
        essay = await self.essays.get_essay(essay_id)
        if essay is None:
            raise NotFoundError("Essay not found", resource="essay", resource_id=essay_id)
        return essay

    @staticmethod
    def _require_permission(user, permission: Permission, message: str):
        if not PermissionChecker(user.role).has_permission(permission):
            raise PermissionDeniedError(message, action=permission.value)

    @staticmethod
    def _clean_text(text: Optional[str]) -> Optional[str]:
        if text is None:
            return None
        if not text.strip():
            raise ValidationError("Essay text cannot be empty", field="text")
        return text

    # ========================================================================
    # ESSAYS
    # ========================================================================

    async def _resolve_author(self, user, student_id: Optional[str], classroom_id: Optional[str]) -> str:
        """Work out whose essay is being created and check the caller may file it."""
        if user.is_student:
            if student_id and student_id != user.user_id:
                raise PermissionDeniedError("Students may only submit their own essays", action="create")
            if classroom_id and not await self.classrooms.is_enrolled(user.user_id, classroom_id):
                raise PermissionDeniedError(
                    "You are not enrolled in this classroom",
                    action="create",
                    resource_id=classroom_id,
                )
            return user.user_id

        if not student_id:
            raise ValidationError("student_id is required", field="student_id")

        student = await self.users.get_user(student_id)
        if student is None:
            raise NotFoundError("Student not found", resource="user", resource_id=student_id)
        if student.role != UserRole.STUDENT:
            raise ValidationError("Essays can only belong to students", field="student_id")

        if user.is_teacher:
            if classroom_id:
                if not await self.classrooms.teacher_owns_classroom(user.user_id, classroom_id):
                    raise PermissionDeniedError(
                        "Only the classroom's teacher may file essays in it",
                        action="create",
                        resource_id=classroom_id,
                    )
            elif not await self.classrooms.teacher_teaches_student(user.user_id, student_id):
                raise PermissionDeniedError(
                    "Student is not enrolled in any of your classrooms",
                    action="create",
                    resource_id=student_id,
                )

        return student_id

    async def create_essay(
        self,
        user,
        title: str,
        text: Optional[str] = None,
        image_url: Optional[str] = None,
        student_id: Optional[str] = None,
        classroom_id: Optional[str] = None,
    ):
        """
        Create an essay. When text is supplied, the first analysis starts.

        Students submit for themselves; teachers and admins submit on behalf
        of a student.
        """
        self._require_permission(user, Permission.ESSAY_WRITE, "Not allowed to create essays")

        if not title or not title.strip():
            raise ValidationError("Title is required", field="title")
        text = self._clean_text(text)

        if classroom_id and await self.classrooms.get_classroom(classroom_id) is None:
            raise NotFoundError("Classroom not found", resource="classroom", resource_id=classroom_id)

        author_id = await self._resolve_author(user, student_id, classroom_id)

        essay = await self.essays.create_essay(
            title=title.strip(),
            student_id=author_id,
            submitted_by=user.user_id,
            text=text,
            image_url=image_url,
            classroom_id=classroom_id,
        )

        if text:
            await self.orchestrator.invalidate_and_restart(essay.id, text)
        return essay

    async def attach_text(self, user, essay_id: str, text: str):
        """Store transcribed text for an essay and start its analysis."""
        text = self._clean_text(text)
        if text is None:
            raise ValidationError("Essay text is required", field="text")

        await self.policy.ensure_can_edit(user, await self._get_essay(essay_id))

        essay = await self.essays.update_essay_text(essay_id, text)
        await self.orchestrator.invalidate_and_restart(essay_id, text)
        return essay

    async def edit_essay(
        self,
        user,
        essay_id: str,
        title: Optional[str] = None,
        text: Optional[str] = None,
    ):
        """
        Edit an essay.

        A changed text resets automatic and final scores and restarts
        analysis. A title-only edit keeps both.
        """
        if title is not None and not title.strip():
            raise ValidationError("Title cannot be empty", field="title")
        text = self._clean_text(text)

        essay = await self._get_essay(essay_id)
        await self.policy.ensure_can_edit(user, essay)

        if text is not None and text != essay.text:
            essay = await self.essays.update_essay_text(
                essay_id, text, title=title.strip() if title else None
            )
            await self.orchestrator.invalidate_and_restart(essay_id, text)
            logger.info("Essay text changed, analysis restarted", essay_id=essay_id)
        elif title is not None and title.strip() != essay.title:
            essay = await self.essays.update_essay_title(essay_id, title.strip())

        return essay

    async def delete_essay(self, user, essay_id: str):
        essay = await self._get_essay(essay_id)
        await self.policy.ensure_can_delete(user, essay)

        await self.essays.delete_essay(essay_id)
        await self.orchestrator.forget(essay_id)

    async def get_essay(self, user, essay_id: str):
        essay = await self._get_essay(essay_id)
        await self.policy.ensure_can_view(user, essay)
        return essay

    async def list_essays(self, user, limit: int = 50, offset: int = 0) -> List:
        """Students see their essays, teachers their classrooms', admins all."""
        if user.is_admin:
            return await self.essays.list_all_essays(limit=limit, offset=offset)
        if user.is_teacher:
            return await self.essays.list_essays_for_teacher(user.user_id, limit=limit, offset=offset)
        return await self.essays.list_essays_for_student(user.user_id, limit=limit, offset=offset)

    # ========================================================================
    # ANALYSIS
    # ========================================================================

    async def get_analysis(self, user, essay_id: str) -> AnalysisOutcome:
        """Cached analysis of an essay, or RUNNING while one is computed."""
        essay = await self._get_essay(essay_id)
        await self.policy.ensure_can_view(user, essay)

        if not essay.text:
            raise ValidationError("Essay text is not available yet", field="text")
        return await self.orchestrator.request_analysis(essay_id, essay.text)

    async def reanalyze(self, user, text: str) -> AnalysisResult:
        """Analyze arbitrary text without storing or caching anything."""
        self._require_permission(user, Permission.ESSAY_ANALYZE, "Not allowed to analyze text")
        return await self.orchestrator.analyze_text(text)

    # ========================================================================
    # CLASSROOMS
    # ========================================================================

    async def _get_classroom(self, classroom_id: str):
        classroom = await self.classrooms.get_classroom(classroom_id)
        if classroom is None:
            raise NotFoundError("Classroom not found", resource="classroom", resource_id=classroom_id)
        return classroom

    async def create_classroom(self, user, name: str):
        self._require_permission(user, Permission.CLASSROOM_WRITE, "Only teachers may create classrooms")
        if not name or not name.strip():
            raise ValidationError("Classroom name is required", field="name")
        return await self.classrooms.create_classroom(name.strip(), user.user_id)

    async def list_classrooms(self, user) -> List:
        """Teachers see the classrooms they own, students those they attend."""
        if user.is_admin:
            return await self.classrooms.list_all_classrooms()
        if user.is_teacher:
            return await self.classrooms.list_classrooms_for_teacher(user.user_id)
        return await self.classrooms.list_classrooms_for_student(user.user_id)

    async def get_classroom(self, user, classroom_id: str):
        """
        A classroom with its enrolled students.

        Returns:
            Tuple of (classroom, students)
        """
        classroom = await self._get_classroom(classroom_id)
        await self.policy.ensure_can_manage_classroom(user, classroom_id)
        students = await self.classrooms.list_classroom_students(classroom_id)
        return classroom, students

    async def delete_classroom(self, user, classroom_id: str):
        await self._get_classroom(classroom_id)
        await self.policy.ensure_can_manage_classroom(user, classroom_id)
        await self.classrooms.delete_classroom(classroom_id)

    async def remove_student(self, user, classroom_id: str, student_id: str):
        await self._get_classroom(classroom_id)
        await self.policy.ensure_can_manage_classroom(user, classroom_id)

        if not await self.classrooms.remove_student(classroom_id, student_id):
            raise NotFoundError(
                "Student is not enrolled in this classroom",
                resource="enrollment",
                resource_id=student_id,
            )

    async def enroll_student(self, user, classroom_id: str, student_email: str):
        """Enroll a student, looked up by email, in one of the caller's classrooms."""
        await self._get_classroom(classroom_id)
        await self.policy.ensure_can_manage_classroom(user, classroom_id)

        student = await self.users.get_user_by_email(student_email)
        if student is None:
            raise NotFoundError("Student not found", resource="user", resource_id=student_email)
        if student.role != UserRole.STUDENT:
            raise ValidationError("Only students can be enrolled", field="student_email")

        return await self.classrooms.enroll_student(classroom_id, student.id)

    async def list_classroom_essays(self, user, classroom_id: str, limit: int = 100, offset: int = 0) -> List:
        await self._get_classroom(classroom_id)
        await self.policy.ensure_can_manage_classroom(user, classroom_id)
        return await self.classrooms.list_classroom_essays(classroom_id, limit=limit, offset=offset)

    async def classroom_statistics(self, user, classroom_id: str) -> Dict[str, Any]:
        await self._get_classroom(classroom_id)
        await self.policy.ensure_can_manage_classroom(user, classroom_id)
        return await self.classrooms.classroom_statistics(classroom_id)
