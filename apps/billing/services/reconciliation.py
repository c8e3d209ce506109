"""
Reconciliation: period summaries, debtors, balances and payment matching.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from django.db import transaction
from django.db.models import Sum, QuerySet, F

from apps.accounts.models import User
from apps.billing.models import (
    ZERO,
    Accrual,
    Allocation,
    Payment,
    PenaltyAccrual,
    PenaltyStatus,
    MatchStatus,
    sum_amount,
)
from apps.registry.models import Plot

from .exceptions import PaymentNotFoundError, MatchUpdateError
from .period_dates import parse_period
from .statement_import import match_payment_to_plot

logger = logging.getLogger(__name__)

BULK_MATCH_ACTIONS = ('confirm', 'review', 'unmatch')


def _plot_totals(period: Optional[str] = None) -> dict:
    """
    Accrued and allocated sums per plot.

    Returns:
        {plot_id: {'accrued': Decimal, 'paid': Decimal}}
    """
    accruals = Accrual.objects.all()
    allocations = Allocation.objects.all()
    if period:
        accruals = accruals.filter(period=period)
        allocations = allocations.filter(accrual__period=period)

    totals = {}
    for row in accruals.values('plot_id').annotate(total=Sum('amount')):
        totals.setdefault(row['plot_id'], {'accrued': ZERO, 'paid': ZERO})['accrued'] = row['total']
    for row in allocations.values('accrual__plot_id').annotate(total=Sum('amount')):
        totals.setdefault(row['accrual__plot_id'], {'accrued': ZERO, 'paid': ZERO})['paid'] = row['total']
    return totals


def _plot_index(plot_ids) -> dict:
    plots = Plot.objects.filter(id__in=plot_ids)
    return {plot.id: plot for plot in plots}


def _owner_name(plot: Plot) -> str:
    owner = plot.get_primary_owner()
    return owner.full_name if owner else ''


def get_summary(*, period: str) -> dict:
    """
    Totals of one period.

    ``paid`` counts allocations to the period's accruals; ``payments_total``
    counts money received during the month whatever it was applied to.

    Raises:
        InvalidPeriodError: Malformed period
    """
    first_day, last_day = parse_period(period)

    accrued = sum_amount(Accrual.objects.filter(period=period))
    paid = sum_amount(Allocation.objects.filter(accrual__period=period))
    payments = Payment.objects.filter(paid_at__gte=first_day, paid_at__lte=last_day)
    debtors = [
        plot_id for plot_id, row in _plot_totals(period).items()
        if row['accrued'] > row['paid']
    ]

    return {
        'period': period,
        'accrued': accrued,
        'paid': paid,
        'debt': max(ZERO, accrued - paid),
        'payments_count': payments.count(),
        'payments_total': sum_amount(payments),
        'debtors_count': len(debtors),
    }


def list_debtors(*, period: Optional[str] = None, min_debt: Decimal = ZERO) -> List[dict]:
    """
    Plots whose accruals exceed what was applied to them, largest debt first.

    Raises:
        InvalidPeriodError: Malformed period
    """
    if period:
        parse_period(period)

    rows = []
    totals = _plot_totals(period)
    plots = _plot_index(totals.keys())
    for plot_id, row in totals.items():
        debt = row['accrued'] - row['paid']
        if debt <= ZERO or debt < min_debt:
            continue
        plot = plots[plot_id]
        rows.append({
            'plot_id': plot_id,
            'plot_label': plot.label,
            'owner_name': _owner_name(plot),
            'accrued': row['accrued'],
            'paid': row['paid'],
            'debt': debt,
        })

    rows.sort(key=lambda item: (-item['debt'], item['plot_label']))
    return rows


def list_balances(*, period: Optional[str] = None) -> List[dict]:
    """
    Balance of every active plot.

    With a period, ``paid`` is what was applied to that period's accruals.
    Without one, ``paid`` is every payment linked to the plot, so money not
    yet allocated shows up as ``credit``.

    Raises:
        InvalidPeriodError: Malformed period
    """
    if period:
        parse_period(period)

    totals = _plot_totals(period)
    if not period:
        received = (
            Payment.objects
            .filter(plot__isnull=False)
            .values('plot_id')
            .annotate(total=Sum('amount'))
        )
        for row in received:
            totals.setdefault(row['plot_id'], {'accrued': ZERO, 'paid': ZERO})['paid'] = row['total']

    rows = []
    plots = Plot.objects.filter(is_active=True)
    for plot in plots:
        row = totals.get(plot.id, {'accrued': ZERO, 'paid': ZERO})
        balance = row['paid'] - row['accrued']
        rows.append({
            'plot_id': plot.id,
            'plot_label': plot.label,
            'owner_name': _owner_name(plot),
            'accrued': row['accrued'],
            'paid': row['paid'],
            'debt': max(ZERO, -balance),
            'credit': max(ZERO, balance),
            'balance': balance,
        })
    return rows


def build_period_snapshot(period: str) -> dict:
    """JSON-safe totals stored when a period is closed."""
    summary = get_summary(period=period)
    penalties = PenaltyAccrual.objects.filter(period=period, status=PenaltyStatus.ACTIVE)
    return {
        'accrued_total': str(summary['accrued']),
        'paid_total': str(summary['paid']),
        'debt_total': str(summary['debt']),
        'penalty_total': str(sum_amount(penalties)),
        'payments_count': summary['payments_count'],
        'debtors_count': summary['debtors_count'],
    }


def list_unallocated() -> QuerySet:
    """Payments with nothing applied yet."""
    return (
        Payment.objects
        .filter(allocations__isnull=True)
        .select_related('plot')
        .distinct()
        .order_by('-paid_at', '-created_at', 'id')
    )


def list_overpayments() -> QuerySet:
    """Partially allocated payments: something was applied but money is left over."""
    return (
        Payment.objects
        .with_allocated_amount()
        .filter(allocated_total__gt=ZERO, allocated_total__lt=F('amount'))
        .select_related('plot')
        .order_by('-paid_at', '-created_at', 'id')
    )


@transaction.atomic
def manual_match(*, payment_id, plot_id, user: User) -> Payment:
    """
    Link a payment to a plot by hand.

    Raises:
        PaymentNotFoundError: Unknown payment
        MatchUpdateError: Unknown plot, or the payment is already allocated
    """
    try:
        payment = Payment.objects.select_for_update().get(id=payment_id)
    except Payment.DoesNotExist:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")

    if payment.allocations.exists():
        raise MatchUpdateError("Платёж уже разнесён. Сначала отмените разнесение.")

    if not Plot.objects.filter(id=plot_id).exists():
        raise MatchUpdateError("Участок не найден")

    payment.plot_id = plot_id
    payment.match_status = MatchStatus.MATCHED
    payment.match_method = 'manual'
    payment.match_confidence = Decimal('1.00')
    payment.match_candidates = [str(plot_id)]
    payment.save()

    logger.info("Payment %s matched to plot %s by %s", payment.id, plot_id, user.email)
    return payment


@transaction.atomic
def run_auto_match() -> dict:
    """
    Re-run matching on payments that still have no plot.

    A payment pointing at exactly one plot becomes matched; everything else
    is flagged for review.

    Returns:
        {'checked', 'matched', 'needs_review'}
    """
    pending = [MatchStatus.UNMATCHED, MatchStatus.AMBIGUOUS, MatchStatus.NEEDS_REVIEW]
    payments = (
        Payment.objects
        .select_for_update()
        .filter(match_status__in=pending, plot__isnull=True)
    )

    checked = matched = needs_review = 0
    for payment in payments:
        checked += 1
        result = match_payment_to_plot(purpose=payment.purpose, payer_name=payment.payer_name)
        if result['status'] == MatchStatus.MATCHED:
            payment.plot_id = result['plot_id']
            payment.match_status = MatchStatus.MATCHED
            matched += 1
        else:
            payment.match_status = MatchStatus.NEEDS_REVIEW
            needs_review += 1
        payment.match_method = result['method']
        payment.match_confidence = result['confidence']
        payment.match_candidates = result['candidates']
        payment.save()

    logger.info("Auto-match: %d checked, %d matched", checked, matched)
    return {'checked': checked, 'matched': matched, 'needs_review': needs_review}


@transaction.atomic
def bulk_update_match(*, payment_ids, action: str, user: User) -> dict:
    """
    Apply one match decision to many payments.

    Actions:
        confirm: accept the suggested plot (payments without one are skipped)
        review: flag for manual review
        unmatch: drop the plot link (allocated payments are skipped)

    Returns:
        {'updated', 'skipped'}

    Raises:
        MatchUpdateError: Unknown action
    """
    if action not in BULK_MATCH_ACTIONS:
        raise MatchUpdateError(f"Неизвестное действие: {action}")

    updated = skipped = 0
    for payment in Payment.objects.select_for_update().filter(id__in=payment_ids):
        if action == 'confirm':
            if payment.plot_id is None:
                skipped += 1
                continue
            payment.match_status = MatchStatus.MATCHED
            payment.match_method = payment.match_method or 'manual'
            payment.match_confidence = Decimal('1.00')
        elif action == 'review':
            payment.match_status = MatchStatus.NEEDS_REVIEW
        else:
            if payment.allocations.exists():
                skipped += 1
                continue
            payment.plot = None
            payment.match_status = MatchStatus.UNMATCHED
            payment.match_method = ''
            payment.match_confidence = None
        payment.save()
        updated += 1

    logger.info("Bulk match %s by %s: %d updated, %d skipped", action, user.email, updated, skipped)
    return {'updated': updated, 'skipped': skipped}


def plot_debt(plot_id, period: Optional[str] = None) -> Decimal:
    """Outstanding accruals of one plot, optionally for a single period."""
    accruals = Accrual.objects.filter(plot_id=plot_id)
    allocations = Allocation.objects.filter(accrual__plot_id=plot_id)
    if period:
        accruals = accruals.filter(period=period)
        allocations = allocations.filter(accrual__period=period)
    return max(ZERO, sum_amount(accruals) - sum_amount(allocations))
