from rest_framework import permissions

from apps.accounts import rbac


class CanReadAppeals(permissions.BasePermission):
    """Office inbox: ``office.appeals.read``."""

    message = 'Обращения доступны только членам правления.'

    def has_permission(self, request, view):
        return rbac.has_capability(rbac.role_of(request.user), rbac.Capability.APPEALS_READ)


class CanManageAppeals(permissions.BasePermission):
    """Status changes, assignment and reminders: ``office.appeals.status``."""

    message = 'Управление обращениями недоступно для вашей роли.'

    def has_permission(self, request, view):
        return rbac.has_capability(rbac.role_of(request.user), rbac.Capability.APPEALS_STATUS)
