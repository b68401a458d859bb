from typing import Sequence

from rest_framework.permissions import BasePermission, SAFE_METHODS

from common.typing import RequestWithUser, RoleAwareUser, RoleCheckContext
from .models import ROLE_ADMIN, ROLE_NURSE, ROLE_OWNER


def _has_role(user: RoleAwareUser, roles: Sequence[str], staff_passes: bool = True) -> bool:
    return RoleCheckContext(user=user, target_roles=roles, staff_passes=staff_passes).matches()


def _authenticated(request: RequestWithUser) -> bool:
    user = getattr(request, 'user', None)
    return bool(user and user.is_authenticated)


def is_admin(user: RoleAwareUser) -> bool:
    return _has_role(user, [ROLE_ADMIN])


def is_owner(user: RoleAwareUser) -> bool:
    return _has_role(user, [ROLE_OWNER], staff_passes=False)


def is_nurse(user: RoleAwareUser) -> bool:
    return _has_role(user, [ROLE_NURSE], staff_passes=False)


class IsAdmin(BasePermission):
    """Платформенный администратор (роль admin или is_staff)."""

    def has_permission(self, request: RequestWithUser, view) -> bool:
        return _authenticated(request) and is_admin(request.user)


class IsOwnerOrAdmin(BasePermission):
    """
    Владелец учреждения работает со своими данными, администратор - от имени любого владельца.
    """

    def has_permission(self, request: RequestWithUser, view) -> bool:
        if not _authenticated(request):
            return False
        return _has_role(request.user, [ROLE_OWNER, ROLE_ADMIN])


class IsNurse(BasePermission):
    def has_permission(self, request: RequestWithUser, view) -> bool:
        return _authenticated(request) and is_nurse(request.user)


class IsOwnerOrNurse(BasePermission):
    """Авторы обращений в поддержку."""

    def has_permission(self, request: RequestWithUser, view) -> bool:
        if not _authenticated(request):
            return False
        return _has_role(request.user, [ROLE_OWNER, ROLE_NURSE], staff_passes=False)


class IsAdminOrOwnerReadOnly(BasePermission):
    """
    Чтение для владельцев и админов, запись только для админов.
    """

    def has_permission(self, request: RequestWithUser, view) -> bool:
        if not _authenticated(request):
            return False
        if request.method in SAFE_METHODS:
            return _has_role(request.user, [ROLE_OWNER, ROLE_ADMIN])
        return is_admin(request.user)
