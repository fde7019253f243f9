"""
Role based access control.

Permissions are `resource:action` strings attached to roles. Admins are
granted every permission by seeding, so checks never special-case them.
"""
from typing import Iterable

from eservice.core.exceptions import AuthorizationError, PermissionDeniedError
from eservice.models.user import User


def _ensure_can_be_checked(user: User) -> None:
    if not user.is_active:
        raise AuthorizationError("User account is inactive")
    if user.role is None:
        raise AuthorizationError("User has no role assigned")


def check_permission(user: User, permission: str) -> None:
    """Raise unless the user holds `permission`"""
    _ensure_can_be_checked(user)
    if permission not in user.permission_names:
        raise PermissionDeniedError([permission])


def check_any_permission(user: User, permissions: Iterable[str]) -> None:
    """Raise unless the user holds at least one of `permissions`"""
    permissions = list(permissions)
    _ensure_can_be_checked(user)
    if not user.permission_names.intersection(permissions):
        raise PermissionDeniedError(permissions)


def check_all_permissions(user: User, permissions: Iterable[str]) -> None:
    """Raise unless the user holds every one of `permissions`; details list the missing ones"""
    _ensure_can_be_checked(user)
    missing = [p for p in permissions if p not in user.permission_names]
    if missing:
        raise PermissionDeniedError(missing)
