"""Person merging service with full transaction safety."""

import logging
from uuid import UUID

from django.db import transaction

from apps.accounts.models import User
from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event
from apps.registry.models import Person, PlotOwnership, PersonMergeHistory

from .exceptions import InvalidMergeError, PersonNotFoundError

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ('full_name', 'phone', 'email')


@transaction.atomic
def merge_persons(
    *,
    source_person_id: UUID,
    target_person_id: UUID,
    merged_by: User,
    reason: str = '',
    request_id: str = ''
) -> Person:
    """
    Merge a duplicate registry card into the card that is kept.

    Process:
    1. Lock both persons
    2. Move plot ownerships (pairs the target already has are dropped)
    3. Move invite codes
    4. Move the cabinet account link if the target has none
    5. Fill the target's empty contact fields from the source
    6. Record merge history and audit entry
    7. Soft delete source

    Args:
        source_person_id: Person to be merged (will be deactivated)
        target_person_id: Person to merge into (will be kept)
        merged_by: Office user performing the merge
        reason: Optional reason for merge
        request_id: Correlation id for the audit entry

    Returns:
        Updated target person

    Raises:
        PersonNotFoundError: If either person doesn't exist
        InvalidMergeError: If merge parameters are invalid
    """
    if source_person_id == target_person_id:
        raise InvalidMergeError("Нельзя объединить карточку саму с собой")

    try:
        source = Person.objects.select_for_update().get(id=source_person_id)
    except Person.DoesNotExist:
        raise PersonNotFoundError(f"Source person {source_person_id} not found")

    try:
        target = Person.objects.select_for_update().get(id=target_person_id)
    except Person.DoesNotExist:
        raise PersonNotFoundError(f"Target person {target_person_id} not found")

    if not source.is_active:
        raise InvalidMergeError("Карточка уже объединена с другой")
    if not target.is_active:
        raise InvalidMergeError("Нельзя объединять в неактивную карточку")

    # Step 1: Move ownerships
    moved = 0
    target_plot_ids = set(target.ownerships.values_list('plot_id', flat=True))
    for ownership in PlotOwnership.objects.filter(person=source):
        if ownership.plot_id in target_plot_ids:
            ownership.delete()
            continue
        ownership.person = target
        ownership.save(update_fields=['person'])
        moved += 1

    # Step 2: Move invite codes
    source.invite_codes.update(person=target)

    # Step 3: Cabinet account link
    update_fields = []
    if source.user_id and not target.user_id:
        user_id = source.user_id
        source.user = None
        source.save(update_fields=['user'])
        target.user_id = user_id
        update_fields.append('user')

    # Step 4: Fill blanks
    for field in CONTACT_FIELDS:
        if not getattr(target, field) and getattr(source, field):
            setattr(target, field, getattr(source, field))
            update_fields.append(field)

    if update_fields:
        target.save(update_fields=update_fields + ['updated_at'])

    # Step 5: History
    PersonMergeHistory.objects.create(
        source_person_id=source.id,
        source_full_name=source.full_name,
        target_person=target,
        merged_by=merged_by,
        reason=reason,
        moved_ownerships=moved,
    )
    log_audit_event(
        actor=merged_by,
        action=AuditAction.REGISTRY_MERGE,
        target_type='person',
        target_id=target.id,
        target_ids=[source.id, target.id],
        details={'reason': reason, 'moved_ownerships': moved},
        request_id=request_id,
    )

    # Step 6: Soft delete source
    source.is_active = False
    source.merged_into = target
    source.save(update_fields=['is_active', 'merged_into', 'updated_at'])

    logger.info("Person %s merged into %s (%d ownerships moved)", source.id, target.id, moved)
    return target
