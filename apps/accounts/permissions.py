from rest_framework import permissions

from . import rbac


class HasCapability(permissions.BasePermission):
    """
    Grant access when the user's role carries ``required_capability``.

    Subclass and set ``required_capability``, or build one on the fly
    with :func:`capability_required`.
    """

    required_capability = None
    area = 'office'

    def has_permission(self, request, view):
        role = rbac.role_of(request.user)
        if rbac.has_capability(role, self.required_capability):
            return True
        self.message = rbac.forbidden_message(rbac.get_forbidden_reason(role, self.area) or 'forbidden')
        return False


def capability_required(capability, area='office'):
    """Return a permission class that checks a single capability."""
    return type(
        f'Requires_{capability.replace(".", "_")}',
        (HasCapability,),
        {'required_capability': capability, 'area': area},
    )


class IsResident(HasCapability):
    """Resident cabinet access."""
    required_capability = rbac.Capability.CABINET_ACCESS
    area = 'cabinet'


class IsOfficeStaff(HasCapability):
    """Any board member who may open the office."""
    required_capability = rbac.Capability.OFFICE_ACCESS


class IsFinanceStaff(HasCapability):
    """Chairman, accountant or admin."""
    required_capability = rbac.Capability.FINANCE_VIEW
    area = 'finance'


class IsPortalAdmin(HasCapability):
    message = 'Раздел администрирования доступен только администратору.'
    required_capability = rbac.Capability.ADMIN_ACCESS
    area = 'admin'
