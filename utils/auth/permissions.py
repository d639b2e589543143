"""
RBAC Permissions and Essay Access Policy

Role capabilities come from a role-permission table. Whether a caller may
act on one specific essay also depends on ownership and enrollment:

- Students may view, edit and delete essays they own
- Teachers may view, edit, delete and grade essays of students enrolled in
  one of their classrooms, or essays filed under one of their classrooms
- Admins may do everything
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set

from utils.errors import PermissionDeniedError


# ============================================================================
# Permission Definitions
# ============================================================================

class Permission(str, Enum):
    """Application permissions."""

    # Essays
    ESSAY_READ = "essay:read"
    ESSAY_WRITE = "essay:write"
    ESSAY_DELETE = "essay:delete"
    ESSAY_ANALYZE = "essay:analyze"

    # Grading
    GRADING_READ = "grading:read"
    GRADING_WRITE = "grading:write"

    # Classrooms
    CLASSROOM_WRITE = "classroom:write"

    # Access to every essay regardless of ownership
    ESSAY_ADMIN = "essay:admin"


# ============================================================================
# Role Definitions
# ============================================================================

class Role(str, Enum):
    """User roles."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


# ============================================================================
# Role-Permission Mapping
# ============================================================================

ROLE_PERMISSIONS: Dict[Role, Set[Permission]] = {
    Role.STUDENT: {
        Permission.ESSAY_READ,
        Permission.ESSAY_WRITE,
        Permission.ESSAY_DELETE,
        Permission.ESSAY_ANALYZE,
        Permission.GRADING_READ,
    },

    Role.TEACHER: {
        Permission.ESSAY_READ,
        Permission.ESSAY_WRITE,
        Permission.ESSAY_DELETE,
        Permission.ESSAY_ANALYZE,
        Permission.GRADING_READ,
        Permission.GRADING_WRITE,
        Permission.CLASSROOM_WRITE,
    },

    # Admins have all permissions
    Role.ADMIN: set(Permission),
}


# ============================================================================
# Permission Checker
# ============================================================================

@dataclass
class PermissionChecker:
    """Helper class to check permissions for a role."""

    role: str

    def __post_init__(self):
        self.role = str(self.role.value if isinstance(self.role, Role) else self.role).lower()

    def get_permissions(self) -> Set[Permission]:
        try:
            return ROLE_PERMISSIONS.get(Role(self.role), set())
        except ValueError:
            # Invalid role, return empty set
            return set()

    def has_permission(self, permission: Permission) -> bool:
        return permission in self.get_permissions()

    def has_all_permissions(self, permissions: List[Permission]) -> bool:
        user_permissions = self.get_permissions()
        return all(perm in user_permissions for perm in permissions)


def get_permissions_for_role(role: str) -> Set[Permission]:
    """
    Get all permissions for a given role.

    Args:
        role: Role name

    Returns:
        Set of permissions for the role (empty for unknown roles)
    """
    return PermissionChecker(role=role).get_permissions()


# ============================================================================
# Essay Access Policy
# ============================================================================

class AccessPolicy:
    """
    Decides whether a caller may view, edit or grade an essay.

    Args:
        classrooms: Gateway answering enrollment and ownership questions
    """

    def __init__(self, classrooms):
        self.classrooms = classrooms

    async def _has_relationship(self, user, essay) -> bool:
        checker = PermissionChecker(user.role)
        if checker.has_permission(Permission.ESSAY_ADMIN):
            return True

        if user.role == Role.STUDENT:
            return essay.student_id == user.user_id

        if user.role == Role.TEACHER:
            if essay.classroom_id and await self.classrooms.teacher_owns_classroom(
                user.user_id, essay.classroom_id
            ):
                return True
            return await self.classrooms.teacher_teaches_student(user.user_id, essay.student_id)

        return False

    async def can_view(self, user, essay) -> bool:
        if not PermissionChecker(user.role).has_permission(Permission.ESSAY_READ):
            return False
        return await self._has_relationship(user, essay)

    async def can_edit(self, user, essay) -> bool:
        if not PermissionChecker(user.role).has_permission(Permission.ESSAY_WRITE):
            return False
        return await self._has_relationship(user, essay)

    async def can_delete(self, user, essay) -> bool:
        if not PermissionChecker(user.role).has_permission(Permission.ESSAY_DELETE):
            return False
        return await self._has_relationship(user, essay)

    async def can_grade(self, user, essay) -> bool:
        if not PermissionChecker(user.role).has_permission(Permission.GRADING_WRITE):
            return False
        return await self._has_relationship(user, essay)

    async def ensure_can_view(self, user, essay):
        if not await self.can_view(user, essay):
            _deny("view", essay)

    async def ensure_can_edit(self, user, essay):
        if not await self.can_edit(user, essay):
            _deny("edit", essay)

    async def ensure_can_delete(self, user, essay):
        if not await self.can_delete(user, essay):
            _deny("delete", essay)

    async def ensure_can_grade(self, user, essay):
        if not await self.can_grade(user, essay):
            _deny("grade", essay)

    async def can_manage_classroom(self, user, classroom_id: str) -> bool:
        checker = PermissionChecker(user.role)
        if checker.has_permission(Permission.ESSAY_ADMIN):
            return True
        if not checker.has_permission(Permission.CLASSROOM_WRITE):
            return False
        return await self.classrooms.teacher_owns_classroom(user.user_id, classroom_id)

    async def ensure_can_manage_classroom(self, user, classroom_id: str):
        if not await self.can_manage_classroom(user, classroom_id):
            raise PermissionDeniedError(
                "Only the classroom's teacher may do this",
                action="manage",
                resource_id=classroom_id,
            )


def _deny(action: str, essay, message: Optional[str] = None):
    raise PermissionDeniedError(
        message or f"Not allowed to {action} this essay",
        action=action,
        resource_id=essay.id,
    )
