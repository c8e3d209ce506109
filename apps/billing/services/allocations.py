"""
Allocation of payments to accruals.

Automatic allocation is FIFO: each payment, oldest first, pays off the
oldest open accruals of its plot.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from django.db import transaction

from apps.accounts.models import User
from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event
from apps.billing.models import ZERO, Accrual, Allocation, AllocationKind, Payment

from .exceptions import (
    AccrualNotFoundError,
    AllocationError,
    AllocationNotFoundError,
    PaymentNotFoundError,
)
from .periods import ensure_period_open

logger = logging.getLogger(__name__)


@transaction.atomic
def auto_allocate(*, plot_id: Optional[UUID] = None, user: Optional[User] = None) -> dict:
    """
    Allocate every plot-matched payment remainder to open accruals.

    Args:
        plot_id: Limit the run to one plot
        user: Recorded as the author of the allocations

    Returns:
        {'created_count', 'periods'} where periods lists the accrual periods touched
    """
    payments = (
        Payment.objects
        .select_for_update()
        .filter(plot__isnull=False)
        .order_by('paid_at', 'created_at')
    )
    if plot_id:
        payments = payments.filter(plot_id=plot_id)

    created = 0
    periods = set()
    open_accruals = {}

    for payment in payments:
        left = payment.remaining
        if left <= ZERO:
            continue

        if payment.plot_id not in open_accruals:
            open_accruals[payment.plot_id] = list(
                Accrual.objects
                .select_for_update()
                .filter(plot_id=payment.plot_id)
                .order_by('period', 'created_at')
            )

        for accrual in open_accruals[payment.plot_id]:
            if left <= ZERO:
                break
            accrual_left = accrual.remaining
            if accrual_left <= ZERO:
                continue

            amount = min(left, accrual_left)
            Allocation.objects.create(
                payment=payment,
                accrual=accrual,
                amount=amount,
                kind=AllocationKind.AUTO,
                created_by=user,
            )
            left -= amount
            created += 1
            periods.add(accrual.period)

    logger.info("Auto-allocation created %d allocations", created)
    return {'created_count': created, 'periods': sorted(periods)}


@transaction.atomic
def manual_allocate(
    *,
    payment_id: UUID,
    accrual_id: UUID,
    amount: Decimal,
    user: User,
    reason: str = '',
    request_id: str = ''
) -> Allocation:
    """
    Apply part of a payment to a chosen accrual.

    Raises:
        PaymentNotFoundError: Unknown payment
        AccrualNotFoundError: Unknown accrual
        AllocationError: Amount is not positive or exceeds either remainder
        PeriodClosedError: Accrual period closed and no reason given
    """
    try:
        payment = Payment.objects.select_for_update().get(id=payment_id)
    except Payment.DoesNotExist:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")

    try:
        accrual = Accrual.objects.select_for_update().get(id=accrual_id)
    except Accrual.DoesNotExist:
        raise AccrualNotFoundError(f"Accrual {accrual_id} not found")

    if amount is None or amount <= ZERO:
        raise AllocationError("Сумма должна быть больше нуля")
    if amount > payment.remaining or amount > accrual.remaining:
        raise AllocationError("Сумма превышает остаток")

    ensure_period_open(
        period=accrual.period,
        reason=reason,
        actor=user,
        operation='allocation.manual',
        request_id=request_id,
    )

    allocation = Allocation.objects.create(
        payment=payment,
        accrual=accrual,
        amount=amount,
        kind=AllocationKind.MANUAL,
        created_by=user,
    )

    log_audit_event(
        actor=user,
        action=AuditAction.ALLOCATION_MANUAL,
        target_type='allocation',
        target_id=allocation.id,
        details={
            'payment_id': str(payment.id),
            'accrual_id': str(accrual.id),
            'amount': str(amount),
        },
        request_id=request_id,
    )
    return allocation


@transaction.atomic
def unapply_allocation(*, allocation_id: UUID, user: User, request_id: str = '') -> None:
    """
    Remove one allocation.

    Raises:
        AllocationNotFoundError: Unknown allocation
    """
    try:
        allocation = Allocation.objects.select_for_update().get(id=allocation_id)
    except Allocation.DoesNotExist:
        raise AllocationNotFoundError(f"Allocation {allocation_id} not found")

    details = {
        'payment_id': str(allocation.payment_id),
        'accrual_id': str(allocation.accrual_id),
        'amount': str(allocation.amount),
    }
    allocation.delete()

    log_audit_event(
        actor=user,
        action=AuditAction.ALLOCATION_UNAPPLY,
        target_type='allocation',
        target_id=allocation_id,
        details=details,
        request_id=request_id,
    )


@transaction.atomic
def unapply_payment_allocations(*, payment_id: UUID, user: User, request_id: str = '') -> int:
    """
    Remove every allocation of a payment.

    Returns:
        Number of allocations removed

    Raises:
        PaymentNotFoundError: Unknown payment
    """
    try:
        payment = Payment.objects.select_for_update().get(id=payment_id)
    except Payment.DoesNotExist:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")

    allocation_ids = list(payment.allocations.values_list('id', flat=True))
    removed = len(allocation_ids)
    if removed:
        total = payment.allocated_amount
        payment.allocations.all().delete()
        log_audit_event(
            actor=user,
            action=AuditAction.ALLOCATION_UNAPPLY,
            target_type='payment',
            target_id=payment.id,
            target_ids=allocation_ids,
            details={'amount': str(total), 'count': removed},
            request_id=request_id,
        )
    return removed
