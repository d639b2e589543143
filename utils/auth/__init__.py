"""Authentication and authorization utilities."""

from .permissions import (
    Permission,
    Role,
    ROLE_PERMISSIONS,
    PermissionChecker,
    AccessPolicy,
    get_permissions_for_role,
)
from .jwt_handler import (
    CurrentUser,
    create_access_token,
    verify_access_token,
    user_from_payload,
    get_current_user,
)

__all__ = [
    "Permission",
    "Role",
    "ROLE_PERMISSIONS",
    "PermissionChecker",
    "AccessPolicy",
    "get_permissions_for_role",
    "CurrentUser",
    "create_access_token",
    "verify_access_token",
    "user_from_payload",
    "get_current_user",
]
