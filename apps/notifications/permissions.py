from rest_framework import permissions

from apps.accounts import rbac


class AnnouncementAccess(permissions.BasePermission):
    """
    Read the office list with ``office.announcements.read``.

    Writes are checked again by the service, which knows whether the
    call creates or edits.
    """

    message = 'Объявления доступны только членам правления.'

    def has_permission(self, request, view):
        role = rbac.role_of(request.user)
        if request.method in permissions.SAFE_METHODS:
            return rbac.has_capability(role, rbac.Capability.ANNOUNCEMENTS_READ)
        return (
            rbac.has_capability(role, rbac.Capability.ANNOUNCEMENTS_WRITE)
            or rbac.has_capability(role, rbac.Capability.ANNOUNCEMENTS_EDIT)
        )
