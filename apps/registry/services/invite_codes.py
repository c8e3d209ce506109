"""
Invite code service.

Codes look like ``K7QP-3MZD`` and are shown to the board member once; only
the sha256 of the normalised code is stored.
"""

import logging
import secrets
from typing import Optional, Tuple
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.registry.models import InviteCode, Person, hash_invite_code

from .exceptions import (
    PersonNotFoundError,
    InviteCodeNotFoundError,
    InviteCodeUsedError,
)

logger = logging.getLogger(__name__)

# No 0/O or 1/I/L to keep codes readable over the phone
CODE_ALPHABET = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
CODE_PART_LENGTH = 4


def generate_code() -> str:
    """Random ``XXXX-XXXX`` code."""
    parts = [
        ''.join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_PART_LENGTH))
        for _ in range(2)
    ]
    return '-'.join(parts)


@transaction.atomic
def create_invite_code(
    *,
    person_id: UUID,
    created_by: Optional[User] = None,
    max_retries: int = 5
) -> Tuple[InviteCode, str]:
    """
    Issue a new invite code for a registry person.

    Uses retry logic on hash collision.

    Args:
        person_id: Registry person the code will be bound to
        created_by: Board member issuing the code
        max_retries: Maximum attempts to generate unique code

    Returns:
        Tuple of (InviteCode, raw code). The raw code is not stored.

    Raises:
        PersonNotFoundError: If person doesn't exist
        RuntimeError: If cannot generate unique code after retries
    """
    try:
        person = Person.objects.get(id=person_id, is_active=True)
    except Person.DoesNotExist:
        raise PersonNotFoundError(f"Person with ID {person_id} not found")

    for attempt in range(max_retries):
        code = generate_code()
        try:
            with transaction.atomic():
                invite = InviteCode.objects.create(
                    person=person,
                    code_hash=hash_invite_code(code),
                    created_by=created_by,
                )
            return invite, code
        except IntegrityError:
            # Collision detected, retry
            if attempt == max_retries - 1:
                raise RuntimeError(
                    f"Failed to generate unique invite code after {max_retries} attempts"
                )
            continue

    # Should never reach here
    raise RuntimeError("Unexpected error in invite code generation")


def validate_invite_code(*, code: str) -> InviteCode:
    """
    Check that a code exists and is still usable.

    Returns:
        The matching InviteCode

    Raises:
        InviteCodeNotFoundError: Unknown or revoked code
        InviteCodeUsedError: Code already redeemed
    """
    try:
        invite = InviteCode.objects.select_related('person').get(code_hash=hash_invite_code(code))
    except InviteCode.DoesNotExist:
        raise InviteCodeNotFoundError("Код приглашения не найден")

    if invite.used_at:
        raise InviteCodeUsedError("Код приглашения уже использован")
    if invite.revoked_at:
        raise InviteCodeNotFoundError("Код приглашения не найден")

    return invite


@transaction.atomic
def redeem_invite_code(*, code: str, user: User) -> InviteCode:
    """
    Consume an invite code and bind its person to ``user``.

    The row is locked so two registrations racing on one code cannot
    both succeed.
    """
    validate_invite_code(code=code)

    invite = (
        InviteCode.objects
        .select_for_update()
        .select_related('person')
        .get(code_hash=hash_invite_code(code))
    )
    if invite.used_at:
        raise InviteCodeUsedError("Код приглашения уже использован")

    invite.mark_used(user)

    person = invite.person
    if person.user_id is None:
        person.user = user
        person.save(update_fields=['user', 'updated_at'])

    logger.info("Invite code %s redeemed by %s", invite.id, user.email)
    return invite


@transaction.atomic
def regenerate_invite_code(*, person_id: UUID, created_by: Optional[User] = None) -> Tuple[InviteCode, str]:
    """Revoke every active code of the person and issue a fresh one."""
    revoked = InviteCode.objects.filter(
        person_id=person_id,
        used_at__isnull=True,
        revoked_at__isnull=True,
    ).update(revoked_at=timezone.now())

    if revoked:
        logger.info("Revoked %d invite code(s) for person %s", revoked, person_id)

    return create_invite_code(person_id=person_id, created_by=created_by)


def list_invite_codes(*, person_id: Optional[UUID] = None, used: Optional[bool] = None) -> QuerySet:
    queryset = InviteCode.objects.select_related('person', 'used_by', 'created_by')
    if person_id:
        queryset = queryset.filter(person_id=person_id)
    if used is True:
        queryset = queryset.filter(used_at__isnull=False)
    elif used is False:
        queryset = queryset.filter(used_at__isnull=True)
    return queryset
