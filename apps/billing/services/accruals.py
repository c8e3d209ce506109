"""Monthly accrual preview and generation."""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q, QuerySet

from apps.accounts.models import User
from apps.billing.models import ZERO, Accrual, AccrualCategory
from apps.registry.models import Plot
from apps.registry.services import split_plot_query

from .exceptions import BillingServiceError
from .period_dates import parse_period
from .periods import ensure_period_open

logger = logging.getLogger(__name__)


def compute_amount(
    *,
    category: str,
    tariff: Optional[Decimal] = None,
    fixed_amount: Optional[Decimal] = None
) -> Decimal:
    """
    Amount charged to one plot.

    A fixed amount wins. Otherwise membership uses the tariff or the default
    fee, electricity multiplies the kWh tariff by the default consumption and
    target contributions need an explicit tariff.
    """
    if fixed_amount is not None:
        return Decimal(fixed_amount).quantize(Decimal('0.01'))

    if category == AccrualCategory.MEMBERSHIP:
        amount = tariff if tariff is not None else settings.SNT_MEMBERSHIP_FEE
    elif category == AccrualCategory.ELECTRICITY:
        rate = tariff if tariff is not None else settings.SNT_ELECTRICITY_TARIFF
        amount = Decimal(rate) * settings.SNT_ELECTRICITY_DEFAULT_KWH
    elif category == AccrualCategory.TARGET:
        amount = tariff if tariff is not None else ZERO
    else:
        raise BillingServiceError(f"Неизвестная категория начисления: {category}")

    return Decimal(amount).quantize(Decimal('0.01'))


def select_plots(*, plot_ids: Optional[Iterable] = None, plot_query: str = '') -> QuerySet:
    """Active plots narrowed by explicit ids and/or a "<line> <number>" / number query."""
    plots = Plot.objects.filter(is_active=True)
    if plot_ids:
        plots = plots.filter(id__in=list(plot_ids))

    plot_query = (plot_query or '').strip()
    if plot_query:
        condition = Q(number__iexact=plot_query) | Q(street__iexact=plot_query)
        address = split_plot_query(plot_query)
        if address:
            condition |= Q(street__iexact=address[0], number__iexact=address[1])
        plots = plots.filter(condition)

    return plots.order_by('street', 'number')


def preview_accruals(
    *,
    period: str,
    category: str,
    tariff: Optional[Decimal] = None,
    fixed_amount: Optional[Decimal] = None,
    plot_ids: Optional[Iterable] = None,
    plot_query: str = ''
) -> List[dict]:
    """
    Rows an accrual run would create.

    Returns:
        List of {'plot_id', 'plot_label', 'amount', 'exists'}

    Raises:
        InvalidPeriodError: Malformed period
    """
    parse_period(period)
    amount = compute_amount(category=category, tariff=tariff, fixed_amount=fixed_amount)

    plots = list(select_plots(plot_ids=plot_ids, plot_query=plot_query))
    existing = set(
        Accrual.objects
        .filter(period=period, category=category, plot__in=plots)
        .values_list('plot_id', flat=True)
    )

    return [
        {
            'plot_id': plot.id,
            'plot_label': plot.label,
            'amount': amount,
            'exists': plot.id in existing,
        }
        for plot in plots
    ]


@transaction.atomic
def generate_accruals(
    *,
    period: str,
    category: str,
    user: User,
    tariff: Optional[Decimal] = None,
    fixed_amount: Optional[Decimal] = None,
    plot_ids: Optional[Iterable] = None,
    plot_query: str = '',
    note: str = '',
    reason: str = '',
    request_id: str = ''
) -> dict:
    """
    Create accruals for every previewed row that does not exist yet.

    Returns:
        {'created_count', 'skipped_count', 'duplicates'}

    Raises:
        InvalidPeriodError: Malformed period
        PeriodClosedError: Closed period and no reason given
    """
    rows = preview_accruals(
        period=period,
        category=category,
        tariff=tariff,
        fixed_amount=fixed_amount,
        plot_ids=plot_ids,
        plot_query=plot_query,
    )
    ensure_period_open(
        period=period,
        reason=reason,
        actor=user,
        operation='accruals.generate',
        request_id=request_id,
    )

    to_create = []
    duplicates = []
    for row in rows:
        if row['exists']:
            duplicates.append(row['plot_label'])
            continue
        to_create.append(Accrual(
            plot_id=row['plot_id'],
            period=period,
            category=category,
            amount=row['amount'],
            tariff=tariff,
            note=note,
            created_by=user,
        ))

    Accrual.objects.bulk_create(to_create)

    logger.info(
        "Accruals %s/%s generated by %s: %d created, %d skipped",
        period, category, user.email, len(to_create), len(duplicates),
    )
    return {
        'created_count': len(to_create),
        'skipped_count': len(duplicates),
        'duplicates': duplicates,
    }


def list_accruals(
    *,
    period: Optional[str] = None,
    plot_id=None,
    category: Optional[str] = None
) -> QuerySet:
    queryset = (
        Accrual.objects
        .with_paid_amount()
        .select_related('plot')
        .order_by('period', 'plot__street', 'plot__number', 'category', 'id')
    )
    if period:
        queryset = queryset.filter(period=period)
    if plot_id:
        queryset = queryset.filter(plot_id=plot_id)
    if category:
        queryset = queryset.filter(category=category)
    return queryset
