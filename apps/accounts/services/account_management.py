"""Account management service."""

import logging
from uuid import UUID

from django.db import transaction
from django.contrib.auth import get_user_model

from apps.accounts.models import Role
from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event

from .exceptions import UserNotFoundError, RoleChangeError

User = get_user_model()
logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('full_name', 'phone')


@transaction.atomic
def update_profile(*, user: User, **fields) -> User:
    """Update the editable profile fields of a user."""
    changed = []
    for key, value in fields.items():
        if key in PROFILE_FIELDS and getattr(user, key) != value:
            setattr(user, key, value)
            changed.append(key)
    if changed:
        user.save(update_fields=changed)
    return user


@transaction.atomic
def change_user_role(*, user_id: UUID, role: str, changed_by: User, request_id: str = '') -> User:
    """
    Assign a new RBAC role.

    Args:
        user_id: Account to change
        role: New Role value
        changed_by: Administrator making the change
        request_id: Correlation id for the audit entry

    Returns:
        Updated user

    Raises:
        UserNotFoundError: If user doesn't exist
        RoleChangeError: If the role is unknown or an admin demotes themselves
    """
    if role not in Role.values:
        raise RoleChangeError(f"Неизвестная роль: {role}")

    try:
        user = User.objects.select_for_update().get(id=user_id)
    except User.DoesNotExist:
        raise UserNotFoundError(f"User with ID {user_id} not found")

    if user.id == changed_by.id and role != Role.ADMIN:
        raise RoleChangeError("Администратор не может снять роль с самого себя")

    old_role = user.role
    user.role = role
    user.save(update_fields=['role'])

    log_audit_event(
        actor=changed_by,
        action=AuditAction.USER_ROLE_CHANGE,
        target_type='user',
        target_id=user.id,
        details={'old_role': old_role, 'new_role': role},
        request_id=request_id,
    )
    logger.info("Role of %s changed %s -> %s by %s", user.email, old_role, role, changed_by.email)
    return user
