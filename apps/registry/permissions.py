from rest_framework import permissions

from apps.accounts import rbac


class RegistryAccess(permissions.BasePermission):
    """
    Read registry with ``office.registry.read``; change it with
    ``office.registry.write``.
    """

    message = 'Реестр доступен только членам правления.'

    def has_permission(self, request, view):
        role = rbac.role_of(request.user)
        if request.method in permissions.SAFE_METHODS:
            return rbac.has_capability(role, rbac.Capability.REGISTRY_READ)
        return rbac.has_capability(role, rbac.Capability.REGISTRY_WRITE)


class CanWriteRegistry(permissions.BasePermission):
    message = 'Изменение реестра недоступно для вашей роли.'

    def has_permission(self, request, view):
        return rbac.has_capability(rbac.role_of(request.user), rbac.Capability.REGISTRY_WRITE)
