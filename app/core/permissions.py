"""User roles and permissions."""

from enum import Enum

from app.core.exceptions import PermissionDeniedError


class Role(str, Enum):
    """User roles in the system."""

    ADMIN = "admin"  # Manages houses, students, teachers and rewards
    TEACHER = "teacher"  # Awards and deducts points for students they can access


# Permissions by role
ROLE_PERMISSIONS = {
    Role.ADMIN: [
        "houses:write",
        "students:write",
        "teachers:write",
        "rewards:write",
        "rewards:read",
        "sorting:run",
        "leaderboard:read",
        "transactions:write",
        "transactions:read_all",
        "transactions:reverse_any",
        "document:export",
        "document:import",
    ],
    Role.TEACHER: [
        "rewards:read",
        "leaderboard:read",
        "transactions:write",
        "transactions:read_own",
        "transactions:reverse_own",
    ],
}


def has_permission(role: Role, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, [])


def require_permission(role: Role, permission: str) -> None:
    """Raise if a role lacks a specific permission."""
    if not has_permission(role, permission):
        raise PermissionDeniedError("Not enough permissions")
