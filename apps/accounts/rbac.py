"""
Role-based access control for the portal.

Every route is gated by a capability. Roles map to a fixed set of
capabilities; unknown roles (and anonymous visitors, the ``guest`` role)
get none.

Areas:
    cabinet - resident self-service
    office  - board back-office
    finance - billing screens inside the office
    admin   - system administration
"""

from typing import Optional

from .models import Role


GUEST = 'guest'


class Capability:
    CABINET_ACCESS = 'cabinet.access'
    OFFICE_ACCESS = 'office.access'
    FINANCE_VIEW = 'office.finance.view'
    FINANCE_READ = 'office.finance.read'
    ANNOUNCEMENTS_READ = 'office.announcements.read'
    ANNOUNCEMENTS_WRITE = 'office.announcements.write'
    ANNOUNCEMENTS_EDIT = 'office.announcements.edit'
    APPEALS_READ = 'office.appeals.read'
    APPEALS_COMMENT = 'office.appeals.comment'
    APPEALS_STATUS = 'office.appeals.status'
    REGISTRY_READ = 'office.registry.read'
    REGISTRY_WRITE = 'office.registry.write'
    ADMIN_ACCESS = 'admin.access'
    ADMIN_AUDIT = 'admin.audit'


ALL_CAPABILITIES = frozenset(
    value for name, value in vars(Capability).items() if name.isupper()
)

_OFFICE_BASE = {Capability.CABINET_ACCESS, Capability.OFFICE_ACCESS}

ROLE_CAPABILITIES = {
    GUEST: frozenset(),
    Role.RESIDENT.value: frozenset({Capability.CABINET_ACCESS}),
    Role.CHAIRMAN.value: frozenset(_OFFICE_BASE | {
        Capability.FINANCE_VIEW,
        Capability.FINANCE_READ,
        Capability.ANNOUNCEMENTS_READ,
        Capability.ANNOUNCEMENTS_WRITE,
        Capability.ANNOUNCEMENTS_EDIT,
        Capability.APPEALS_READ,
        Capability.APPEALS_COMMENT,
        Capability.APPEALS_STATUS,
        Capability.REGISTRY_READ,
        Capability.REGISTRY_WRITE,
    }),
    Role.SECRETARY.value: frozenset(_OFFICE_BASE | {
        Capability.ANNOUNCEMENTS_READ,
        Capability.ANNOUNCEMENTS_WRITE,
        Capability.ANNOUNCEMENTS_EDIT,
        Capability.APPEALS_READ,
        Capability.APPEALS_COMMENT,
        Capability.APPEALS_STATUS,
        Capability.REGISTRY_READ,
        Capability.REGISTRY_WRITE,
    }),
    Role.ACCOUNTANT.value: frozenset(_OFFICE_BASE | {
        Capability.FINANCE_VIEW,
        Capability.FINANCE_READ,
        Capability.APPEALS_READ,
        Capability.REGISTRY_READ,
    }),
    Role.ADMIN.value: ALL_CAPABILITIES,
}

FORBIDDEN_MESSAGES = {
    'auth.required': 'Требуется вход в систему.',
    'admin.resident': 'Раздел администрирования недоступен жителям.',
    'admin.staff': 'Раздел администрирования доступен только администратору.',
    'office.resident': 'Офис правления недоступен жителям.',
    'cabinet.staff': 'Личный кабинет недоступен для этой роли.',
    'office.finance.forbidden': 'Финансовые разделы недоступны для вашей роли.',
    'forbidden': 'Недостаточно прав для выполнения действия.',
}


def role_of(user) -> str:
    """Return the RBAC role for a request user (``guest`` when anonymous)."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return GUEST
    return user.role or GUEST


def get_capabilities(role: str) -> frozenset:
    return ROLE_CAPABILITIES.get(role, frozenset())


def has_capability(role: str, capability: str) -> bool:
    """True when the role's row in the matrix contains the capability."""
    return capability in get_capabilities(role)


def get_forbidden_reason(role: str, area: str) -> Optional[str]:
    """
    Return a machine-readable reason why ``role`` may not enter ``area``.

    Args:
        role: RBAC role name
        area: One of 'admin', 'office', 'cabinet', 'finance'

    Returns:
        Reason code, or None when access is allowed
    """
    if role == GUEST:
        return 'auth.required'

    if area == 'admin':
        if has_capability(role, Capability.ADMIN_ACCESS):
            return None
        return 'admin.resident' if role == Role.RESIDENT else 'admin.staff'

    if area == 'office':
        if has_capability(role, Capability.OFFICE_ACCESS):
            return None
        return 'office.resident'

    if area == 'finance':
        if has_capability(role, Capability.FINANCE_VIEW):
            return None
        if not has_capability(role, Capability.OFFICE_ACCESS):
            return 'office.resident'
        return 'office.finance.forbidden'

    if area == 'cabinet':
        if has_capability(role, Capability.CABINET_ACCESS):
            return None
        return 'cabinet.staff'

    return 'forbidden'


def forbidden_message(code: Optional[str]) -> str:
    """Human-readable (Russian) message for a forbidden-reason code."""
    return FORBIDDEN_MESSAGES.get(code or 'forbidden', FORBIDDEN_MESSAGES['forbidden'])


def default_path_for_role(role: str) -> str:
    """Landing page for a role after login."""
    if role == GUEST:
        return '/'
    if role == Role.ADMIN:
        return '/admin'
    if has_capability(role, Capability.OFFICE_ACCESS):
        return '/office'
    return '/cabinet'
