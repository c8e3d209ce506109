"""
Notification drafts.

Drafts are generated in bulk from the debtor list, reviewed by the
office, approved and only then picked up by the sender.
"""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Count, QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.billing.models import PenaltyAccrual, PenaltyStatus, sum_amount
from apps.billing.services import list_debtors, current_period, parse_period
from apps.notifications.models import NotificationDraft, DraftStatus, Channel, FINAL_DRAFT_STATUSES
from apps.registry.models import Plot

from .exceptions import DraftNotFoundError, DraftStateError, UnknownTemplateError
from .templates import get_template, render_template

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def _recipient_for(person, channel: str) -> str:
    if person is None:
        return ''
    if channel == Channel.EMAIL:
        return person.email
    if channel in (Channel.SMS, Channel.TELEGRAM):
        return person.phone
    return person.full_name


def _locked_draft(draft_id: UUID) -> NotificationDraft:
    try:
        return NotificationDraft.objects.select_for_update().get(id=draft_id)
    except NotificationDraft.DoesNotExist:
        raise DraftNotFoundError(f"Черновик {draft_id} не найден")


@transaction.atomic
def generate_debtor_drafts(
    *,
    user: User,
    period: Optional[str] = None,
    min_debt: Decimal = ZERO,
    template_id: str = 'debt_notice',
    channel: str = Channel.EMAIL,
) -> dict:
    """
    Create one draft per debtor plot.

    Plots that already have an unfinished draft for the same period and
    template are skipped.

    Returns:
        dict with ``created``, ``skipped`` and the new ``drafts``

    Raises:
        UnknownTemplateError: No template with this id
        InvalidPeriodError: Malformed period
    """
    if get_template(template_id) is None:
        raise UnknownTemplateError(f"Неизвестный шаблон: {template_id}")

    period = period or current_period()
    parse_period(period)

    debtors = list_debtors(period=period, min_debt=min_debt)
    plots = Plot.objects.in_bulk([row['plot_id'] for row in debtors])

    existing = set(
        NotificationDraft.objects
        .filter(period=period, template_id=template_id)
        .exclude(status__in=FINAL_DRAFT_STATUSES)
        .values_list('plot_id', flat=True)
    )

    created = []
    skipped = 0
    for row in debtors:
        if row['plot_id'] in existing:
            skipped += 1
            continue

        plot = plots[row['plot_id']]
        person = plot.get_primary_owner()
        penalty = sum_amount(PenaltyAccrual.objects.filter(
            plot=plot,
            period=period,
            status=PenaltyStatus.ACTIVE,
        ))
        rendered = render_template(template_id, {
            'name': person.full_name if person else row['owner_name'],
            'plot': row['plot_label'],
            'period': period,
            'debt': row['debt'],
            'penalty': penalty,
        })

        created.append(NotificationDraft(
            plot=plot,
            person=person,
            plot_label=row['plot_label'],
            resident_name=person.full_name if person else row['owner_name'],
            channel=channel,
            recipient=_recipient_for(person, channel),
            template_id=template_id,
            subject=rendered['subject'],
            body=rendered['body'],
            period=period,
            debt_amount=row['debt'],
            created_by=user,
        ))

    NotificationDraft.objects.bulk_create(created)
    logger.info(
        "Generated %d %s drafts for %s (skipped %d) by %s",
        len(created), template_id, period, skipped, user.email,
    )
    return {'created': len(created), 'skipped': skipped, 'drafts': created}


def get_draft(draft_id: UUID) -> NotificationDraft:
    try:
        return NotificationDraft.objects.get(id=draft_id)
    except NotificationDraft.DoesNotExist:
        raise DraftNotFoundError(f"Черновик {draft_id} не найден")


def list_drafts(
    *,
    status: Optional[str] = None,
    period: Optional[str] = None,
    channel: Optional[str] = None,
    template_id: Optional[str] = None,
) -> QuerySet:
    queryset = NotificationDraft.objects.all()
    if status:
        queryset = queryset.filter(status=status)
    if period:
        queryset = queryset.filter(period=period)
    if channel:
        queryset = queryset.filter(channel=channel)
    if template_id:
        queryset = queryset.filter(template_id=template_id)
    return queryset


@transaction.atomic
def approve_draft(*, draft_id: UUID, user: User) -> NotificationDraft:
    """
    Raises:
        DraftNotFoundError
        DraftStateError: Draft is not in ``draft`` status
    """
    draft = _locked_draft(draft_id)
    if draft.status == DraftStatus.APPROVED:
        return draft
    if draft.status != DraftStatus.DRAFT:
        raise DraftStateError(f"Нельзя одобрить черновик в статусе «{draft.get_status_display()}»")

    draft.status = DraftStatus.APPROVED
    draft.approved_by = user
    draft.approved_at = timezone.now()
    draft.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])
    return draft


def bulk_approve(*, draft_ids: List[UUID], user: User) -> dict:
    """Approve each draft independently; failures do not stop the batch."""
    approved = []
    failed = []
    for draft_id in draft_ids:
        try:
            approve_draft(draft_id=draft_id, user=user)
        except (DraftNotFoundError, DraftStateError) as e:
            failed.append({'id': str(draft_id), 'error': str(e)})
        else:
            approved.append(str(draft_id))

    logger.info("Bulk approve by %s: %d approved, %d failed", user.email, len(approved), len(failed))
    return {'approved': approved, 'failed': failed}


@transaction.atomic
def cancel_draft(*, draft_id: UUID, user: User) -> NotificationDraft:
    draft = _locked_draft(draft_id)
    if draft.status in (DraftStatus.SENT, DraftStatus.SENDING):
        raise DraftStateError("Отправленное уведомление нельзя отменить")

    draft.status = DraftStatus.CANCELLED
    draft.save(update_fields=['status', 'updated_at'])
    logger.info("Draft %s cancelled by %s", draft.id, user.email)
    return draft


@transaction.atomic
def update_draft_body(
    *,
    draft_id: UUID,
    body: str,
    subject: Optional[str] = None,
    recipient: Optional[str] = None,
) -> NotificationDraft:
    """
    Edit a draft before approval.

    Raises:
        DraftStateError: Draft was already approved or processed
    """
    draft = _locked_draft(draft_id)
    if draft.status != DraftStatus.DRAFT:
        raise DraftStateError("Редактировать можно только черновик")

    draft.body = body
    if subject is not None:
        draft.subject = subject
    if recipient is not None:
        draft.recipient = recipient.strip()
    draft.save(update_fields=['body', 'subject', 'recipient', 'updated_at'])
    return draft


def drafts_summary() -> dict:
    """Number of drafts per status, every status present."""
    counts = dict(
        NotificationDraft.objects
        .values_list('status')
        .annotate(total=Count('id'))
        .order_by()
    )
    summary = {choice: counts.get(choice, 0) for choice in DraftStatus.values}
    summary['total'] = sum(counts.values())
    return summary


def list_ready_to_send(*, channel: Optional[str] = None, limit: Optional[int] = None) -> List[NotificationDraft]:
    """Approved drafts, oldest first."""
    queryset = NotificationDraft.objects.filter(status=DraftStatus.APPROVED).order_by('created_at')
    if channel:
        queryset = queryset.filter(channel=channel)
    if limit:
        queryset = queryset[:limit]
    return list(queryset)
