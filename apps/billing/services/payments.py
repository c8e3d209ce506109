"""Manually entered payments."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.db.models import Q, QuerySet

from apps.accounts.models import User
from apps.billing.models import Payment, PaymentSource, MatchStatus
from apps.registry.models import Plot

from .exceptions import BillingServiceError, PaymentNotFoundError
from .period_dates import period_of
from .periods import ensure_period_open

logger = logging.getLogger(__name__)


@transaction.atomic
def create_payment(
    *,
    amount: Decimal,
    paid_at: date,
    user: User,
    plot_id=None,
    payer_name: str = '',
    purpose: str = '',
    external_ref: str = '',
    reason: str = '',
    request_id: str = ''
) -> Payment:
    """
    Record a payment by hand. A payment with a plot is matched right away.

    Raises:
        BillingServiceError: Non-positive amount or unknown plot
        PeriodClosedError: Payment date falls into a closed period and no reason given
    """
    if amount is None or amount <= 0:
        raise BillingServiceError("Сумма платежа должна быть больше нуля")
    if plot_id and not Plot.objects.filter(id=plot_id).exists():
        raise BillingServiceError("Участок не найден")

    ensure_period_open(
        period=period_of(paid_at),
        reason=reason,
        actor=user,
        operation='payments.create',
        request_id=request_id,
    )

    payment = Payment.objects.create(
        plot_id=plot_id,
        amount=amount,
        paid_at=paid_at,
        payer_name=payer_name,
        purpose=purpose,
        external_ref=external_ref,
        source=PaymentSource.MANUAL,
        match_status=MatchStatus.MATCHED if plot_id else MatchStatus.UNMATCHED,
        match_method='manual' if plot_id else '',
        match_confidence=Decimal('1.00') if plot_id else None,
        created_by=user,
    )
    logger.info("Payment %s of %s recorded by %s", payment.id, amount, user.email)
    return payment


def get_payment(payment_id) -> Payment:
    try:
        return Payment.objects.with_allocated_amount().select_related('plot').get(id=payment_id)
    except Payment.DoesNotExist:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")


def list_payments(
    *,
    plot_id=None,
    match_status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    q: str = ''
) -> QuerySet:
    # Aggregate annotations drop Meta.ordering, so the order is spelled out
    queryset = (
        Payment.objects
        .with_allocated_amount()
        .select_related('plot')
        .order_by('-paid_at', '-created_at', 'id')
    )
    if plot_id:
        queryset = queryset.filter(plot_id=plot_id)
    if match_status:
        queryset = queryset.filter(match_status=match_status)
    if date_from:
        queryset = queryset.filter(paid_at__gte=date_from)
    if date_to:
        queryset = queryset.filter(paid_at__lte=date_to)
    q = (q or '').strip()
    if q:
        queryset = queryset.filter(
            Q(payer_name__icontains=q) | Q(purpose__icontains=q) | Q(external_ref__icontains=q)
        )
    return queryset
