"""Accounting period closing and the closed-period guard."""

import logging

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event
from apps.billing.models import BillingPeriod, PeriodStatus

from .exceptions import PeriodClosedError, ReasonRequiredError
from .period_dates import parse_period
from .reconciliation import build_period_snapshot

logger = logging.getLogger(__name__)


def is_period_closed(period: str) -> bool:
    return BillingPeriod.objects.filter(period=period, status=PeriodStatus.CLOSED).exists()


def ensure_period_open(
    *,
    period: str,
    reason: str = '',
    actor: User = None,
    operation: str = '',
    request_id: str = ''
) -> None:
    """
    Guard for every write that touches a period.

    Open periods pass silently. A closed period passes only with a reason,
    and the override is written to the audit log.

    Raises:
        PeriodClosedError: Closed period and no reason given
    """
    if not is_period_closed(period):
        return

    reason = (reason or '').strip()
    if not reason:
        logger.warning("Rejected %s on closed period %s", operation or 'change', period)
        raise PeriodClosedError()

    log_audit_event(
        actor=actor,
        action=AuditAction.PERIOD_CLOSED_CHANGE,
        target_type='period',
        target_id=period,
        details={'reason': reason, 'operation': operation},
        request_id=request_id,
    )


@transaction.atomic
def close_period(*, period: str, user: User, request_id: str = '') -> BillingPeriod:
    """
    Close a period and store its totals snapshot.

    Closing an already closed period returns it unchanged.

    Raises:
        InvalidPeriodError: Malformed period
    """
    parse_period(period)

    billing_period, _ = BillingPeriod.objects.get_or_create(period=period)
    billing_period = BillingPeriod.objects.select_for_update().get(id=billing_period.id)
    if billing_period.is_closed:
        return billing_period

    billing_period.snapshot = build_period_snapshot(period)
    billing_period.status = PeriodStatus.CLOSED
    billing_period.closed_at = timezone.now()
    billing_period.closed_by = user
    billing_period.save()

    log_audit_event(
        actor=user,
        action=AuditAction.PERIOD_CLOSE,
        target_type='period',
        target_id=period,
        details=billing_period.snapshot,
        request_id=request_id,
    )
    logger.info("Period %s closed by %s", period, user.email)
    return billing_period


@transaction.atomic
def reopen_period(*, period: str, user: User, reason: str, request_id: str = '') -> BillingPeriod:
    """
    Reopen a closed period. The last snapshot is kept for reference.

    Raises:
        InvalidPeriodError: Malformed period
        ReasonRequiredError: Blank reason
    """
    parse_period(period)
    reason = (reason or '').strip()
    if not reason:
        raise ReasonRequiredError()

    billing_period, _ = BillingPeriod.objects.get_or_create(period=period)
    billing_period = BillingPeriod.objects.select_for_update().get(id=billing_period.id)
    if not billing_period.is_closed:
        return billing_period

    billing_period.status = PeriodStatus.OPEN
    billing_period.closed_at = None
    billing_period.closed_by = None
    billing_period.save()

    log_audit_event(
        actor=user,
        action=AuditAction.PERIOD_REOPEN,
        target_type='period',
        target_id=period,
        details={'reason': reason},
        request_id=request_id,
    )
    logger.info("Period %s reopened by %s: %s", period, user.email, reason)
    return billing_period


def list_periods() -> QuerySet:
    return BillingPeriod.objects.select_related('closed_by')
