"""Role-based permission decorators and utilities."""

from functools import wraps
from typing import Callable

from academy_admin.exceptions import ForbiddenException, UnauthorizedException
from academy_admin.models.profile import Role
from academy_admin.utils.request_context import get_current_user_role


def _role_values(roles) -> set[str]:
    return {role.value if isinstance(role, Role) else role for role in roles}


def require_role(*allowed_roles: Role | str) -> Callable:
    """Decorator that enforces role-based access control.

    Usage:
        @router.post("/payments")
        @require_role(Role.ADMIN)
        async def record_payment(...):
            ...

    Superusers pass every check.
    """
    role_values = _role_values(allowed_roles)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_role = get_current_user_role()

            if current_role is None:
                raise UnauthorizedException()

            if current_role == Role.SUPERUSER.value:
                return await func(*args, **kwargs)

            if current_role not in role_values:
                raise ForbiddenException()

            return await func(*args, **kwargs)

        return wrapper

    return decorator


# Shorthands for the common role sets
ANY_ROLE = (Role.VIEWER, Role.TEACHER, Role.ADMIN)
STAFF = (Role.TEACHER, Role.ADMIN)


class PermissionChecker:
    """Utility class for checking permissions programmatically."""

    def __init__(self, user_role: str | None):
        self.role = user_role

    @property
    def is_superuser(self) -> bool:
        return self.role == Role.SUPERUSER.value

    @property
    def is_admin(self) -> bool:
        """Admins and superusers."""
        return self.role in (Role.ADMIN.value, Role.SUPERUSER.value)

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER.value

    def can_manage_roles(self) -> bool:
        return self.is_superuser


def get_permission_checker() -> PermissionChecker:
    """Get a PermissionChecker for the current user."""
    return PermissionChecker(get_current_user_role())
