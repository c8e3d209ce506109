"""
Late-payment penalties.

A penalty is charged per overdue accrual: the unpaid remainder times the
annual rate, prorated by the days elapsed since the end of its period.
Frozen and voided penalties are left alone by later runs.
"""

import logging
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event
from apps.billing.models import ZERO, Accrual, PenaltyAccrual, PenaltyStatus

from .exceptions import PenaltyNotFoundError, PenaltyStateError, ReasonRequiredError
from .period_dates import parse_period

logger = logging.getLogger(__name__)

DAYS_IN_YEAR = Decimal('365')


def calculate_penalty(*, remaining: Decimal, rate: Decimal, days: int) -> Decimal:
    amount = remaining * Decimal(rate) * Decimal(days) / DAYS_IN_YEAR
    return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def preview_penalty(
    *,
    as_of: Optional[date] = None,
    rate: Optional[Decimal] = None,
    min_penalty: Decimal = ZERO
) -> List[dict]:
    """
    Penalties that would be charged on ``as_of``.

    Returns:
        List of {'accrual_id', 'plot_id', 'plot_label', 'period', 'remaining',
        'days_overdue', 'amount'}
    """
    as_of = as_of or timezone.localdate()
    rate = Decimal(rate) if rate is not None else settings.SNT_PENALTY_RATE

    rows = []
    accruals = Accrual.objects.with_paid_amount().select_related('plot').order_by('period', 'created_at')
    for accrual in accruals:
        remaining = accrual.remaining
        if remaining <= ZERO:
            continue

        _, last_day = parse_period(accrual.period)
        days = (as_of - last_day).days
        if days <= 0:
            continue

        amount = calculate_penalty(remaining=remaining, rate=rate, days=days)
        if amount <= ZERO or amount < min_penalty:
            continue

        rows.append({
            'accrual_id': accrual.id,
            'plot_id': accrual.plot_id,
            'plot_label': accrual.plot.label,
            'period': accrual.period,
            'remaining': remaining,
            'days_overdue': days,
            'rate': rate,
            'amount': amount,
        })
    return rows


@transaction.atomic
def apply_penalties(
    *,
    user: User,
    as_of: Optional[date] = None,
    rate: Optional[Decimal] = None,
    min_penalty: Decimal = ZERO,
    request_id: str = ''
) -> dict:
    """
    Create or refresh one penalty per overdue accrual.

    Returns:
        {'created', 'updated', 'skipped', 'total'}
    """
    as_of = as_of or timezone.localdate()
    rows = preview_penalty(as_of=as_of, rate=rate, min_penalty=min_penalty)

    existing = {
        penalty.accrual_id: penalty
        for penalty in PenaltyAccrual.objects.select_for_update().filter(
            accrual_id__in=[row['accrual_id'] for row in rows]
        )
    }

    created = updated = skipped = 0
    total = ZERO
    for row in rows:
        penalty = existing.get(row['accrual_id'])
        if penalty is not None and penalty.status != PenaltyStatus.ACTIVE:
            skipped += 1
            continue

        values = {
            'plot_id': row['plot_id'],
            'period': row['period'],
            'as_of': as_of,
            'days_overdue': row['days_overdue'],
            'rate': row['rate'],
            'base_amount': row['remaining'],
            'amount': row['amount'],
        }
        if penalty is None:
            PenaltyAccrual.objects.create(accrual_id=row['accrual_id'], created_by=user, **values)
            created += 1
        else:
            for field, value in values.items():
                setattr(penalty, field, value)
            penalty.save()
            updated += 1
        total += row['amount']

    result = {'created': created, 'updated': updated, 'skipped': skipped, 'total': total}
    log_audit_event(
        actor=user,
        action=AuditAction.PENALTY_APPLY,
        target_type='penalty',
        details={**result, 'total': str(total), 'as_of': as_of.isoformat()},
        request_id=request_id,
    )
    logger.info("Penalties applied as of %s: %d created, %d updated", as_of, created, updated)
    return result


@transaction.atomic
def recalc_penalties(
    *,
    user: User,
    as_of: Optional[date] = None,
    rate: Optional[Decimal] = None,
    request_id: str = ''
) -> dict:
    """
    Recompute active penalties for a new date or rate.

    An accrual paid off in the meantime gets a zero penalty.

    Returns:
        {'updated', 'total'}
    """
    as_of = as_of or timezone.localdate()
    penalties = (
        PenaltyAccrual.objects
        .select_for_update()
        .filter(status=PenaltyStatus.ACTIVE)
        .select_related('accrual')
    )

    updated = 0
    total = ZERO
    for penalty in penalties:
        penalty_rate = Decimal(rate) if rate is not None else penalty.rate
        _, last_day = parse_period(penalty.period)
        days = max(0, (as_of - last_day).days)
        remaining = penalty.accrual.remaining

        penalty.as_of = as_of
        penalty.rate = penalty_rate
        penalty.days_overdue = days
        penalty.base_amount = remaining
        penalty.amount = calculate_penalty(remaining=remaining, rate=penalty_rate, days=days)
        penalty.save()
        updated += 1
        total += penalty.amount

    log_audit_event(
        actor=user,
        action=AuditAction.PENALTY_RECALC,
        target_type='penalty',
        details={'updated': updated, 'total': str(total), 'as_of': as_of.isoformat()},
        request_id=request_id,
    )
    return {'updated': updated, 'total': total}


def list_penalties(*, period: Optional[str] = None, plot_id=None, status: Optional[str] = None) -> QuerySet:
    queryset = PenaltyAccrual.objects.select_related('plot', 'accrual')
    if period:
        queryset = queryset.filter(period=period)
    if plot_id:
        queryset = queryset.filter(plot_id=plot_id)
    if status:
        queryset = queryset.filter(status=status)
    return queryset


# Allowed source statuses and the resulting status for each manual action
_TRANSITIONS = {
    AuditAction.PENALTY_VOID: ((PenaltyStatus.ACTIVE, PenaltyStatus.FROZEN), PenaltyStatus.VOIDED),
    AuditAction.PENALTY_UNVOID: ((PenaltyStatus.VOIDED,), PenaltyStatus.ACTIVE),
    AuditAction.PENALTY_FREEZE: ((PenaltyStatus.ACTIVE,), PenaltyStatus.FROZEN),
    AuditAction.PENALTY_UNFREEZE: ((PenaltyStatus.FROZEN,), PenaltyStatus.ACTIVE),
}


@transaction.atomic
def _change_status(
    *,
    penalty_id: UUID,
    action: str,
    user: User,
    reason: str,
    request_id: str
) -> PenaltyAccrual:
    try:
        penalty = PenaltyAccrual.objects.select_for_update().get(id=penalty_id)
    except PenaltyAccrual.DoesNotExist:
        raise PenaltyNotFoundError(f"Penalty {penalty_id} not found")

    allowed_from, new_status = _TRANSITIONS[action]
    if penalty.status not in allowed_from:
        raise PenaltyStateError(
            f"Нельзя изменить пеню в статусе «{penalty.get_status_display()}»"
        )

    old_status = penalty.status
    penalty.status = new_status
    penalty.status_reason = reason
    penalty.status_changed_by = user
    penalty.status_changed_at = timezone.now()
    penalty.save()

    log_audit_event(
        actor=user,
        action=action,
        target_type='penalty',
        target_id=penalty.id,
        details={'from': old_status, 'to': new_status, 'reason': reason},
        request_id=request_id,
    )
    return penalty


def void_penalty(*, penalty_id: UUID, user: User, reason: str, request_id: str = '') -> PenaltyAccrual:
    """
    Cancel a penalty.

    Raises:
        ReasonRequiredError: Blank reason
        PenaltyNotFoundError: Unknown penalty
        PenaltyStateError: Penalty is already voided
    """
    reason = (reason or '').strip()
    if not reason:
        raise ReasonRequiredError()
    return _change_status(
        penalty_id=penalty_id, action=AuditAction.PENALTY_VOID,
        user=user, reason=reason, request_id=request_id,
    )


def unvoid_penalty(*, penalty_id: UUID, user: User, reason: str = '', request_id: str = '') -> PenaltyAccrual:
    return _change_status(
        penalty_id=penalty_id, action=AuditAction.PENALTY_UNVOID,
        user=user, reason=(reason or '').strip(), request_id=request_id,
    )


def freeze_penalty(*, penalty_id: UUID, user: User, reason: str = '', request_id: str = '') -> PenaltyAccrual:
    """Stop later runs from changing the penalty amount."""
    return _change_status(
        penalty_id=penalty_id, action=AuditAction.PENALTY_FREEZE,
        user=user, reason=(reason or '').strip(), request_id=request_id,
    )


def unfreeze_penalty(*, penalty_id: UUID, user: User, reason: str = '', request_id: str = '') -> PenaltyAccrual:
    return _change_status(
        penalty_id=penalty_id, action=AuditAction.PENALTY_UNFREEZE,
        user=user, reason=(reason or '').strip(), request_id=request_id,
    )
