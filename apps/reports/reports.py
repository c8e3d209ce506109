"""
Reports
=======

Read-only aggregates for the office: month-by-month money flow, a
single-month report and the dashboard counters.

Classes:
    ReportQueries: Static methods returning plain dictionaries.

Example:
    Last six months of accruals and payments::

        from apps.reports.reports import ReportQueries

        for row in ReportQueries.monthly_aggregates():
            print(row['period'], row['accrued'], row['paid'], row['debt_end'])

Note:
    Amounts are returned as ``Decimal``; serializers quantize them to
    two places.
"""

from typing import List, Optional

from django.db.models import Sum, Count
from django.db.models.functions import TruncMonth
from django.utils import timezone

from apps.appeals.models import Appeal, AppealStatus
from apps.billing.models import ZERO, Accrual, Payment, PenaltyAccrual, PenaltyStatus, sum_amount
from apps.billing.services import (
    InvalidPeriodError,
    parse_period,
    period_of,
    current_period,
    shift_period,
    iter_periods,
    get_summary,
    list_unallocated,
)
from apps.notifications.models import NotificationDraft, DraftStatus

from .exceptions import InvalidReportPeriodError

# Months covered by ``monthly_aggregates`` when no range is given
DEFAULT_RANGE_MONTHS = 6


def _checked(period: str) -> str:
    try:
        parse_period(period)
    except InvalidPeriodError as e:
        raise InvalidReportPeriodError(str(e))
    return period


class ReportQueries:
    """
    Aggregations over billing, appeals and notifications.

    Methods:
        monthly_aggregates: Accrued, paid and running debt per month.
        monthly_report: Totals, categories and appeals of one month.
        office_dashboard: Counters for the office landing page.
    """

    @staticmethod
    def period_range(period_from: Optional[str] = None, period_to: Optional[str] = None) -> List[str]:
        """
        Months from ``period_from`` to ``period_to`` inclusive.

        Missing bounds default to the last six months ending with the
        current one. An inverted range is swapped.

        Raises:
            InvalidReportPeriodError: A bound is not ``YYYY-MM``
        """
        end = _checked(period_to) if period_to else current_period()
        start = _checked(period_from) if period_from else shift_period(end, -(DEFAULT_RANGE_MONTHS - 1))
        if start > end:
            start, end = end, start
        return list(iter_periods(start, end))

    @staticmethod
    def monthly_aggregates(period_from: Optional[str] = None, period_to: Optional[str] = None) -> List[dict]:
        """
        Money flow per month.

        Returns:
            list[dict]: One entry per month, oldest first:
                - period (str)
                - accrued (Decimal): Accruals of the period
                - paid (Decimal): Payments dated within the month
                - debt_end (Decimal): Running ``accrued - paid`` since the
                  first month of the range
                - payments_count (int)
        """
        months = ReportQueries.period_range(period_from, period_to)
        first_day, _ = parse_period(months[0])
        _, last_day = parse_period(months[-1])

        accrued = dict(
            Accrual.objects
            .filter(period__in=months)
            .values_list('period')
            .annotate(total=Sum('amount'))
            .order_by()
        )

        paid = {}
        payments = (
            Payment.objects
            .filter(paid_at__gte=first_day, paid_at__lte=last_day)
            .annotate(month=TruncMonth('paid_at'))
            .values('month')
            .annotate(total=Sum('amount'), count=Count('id'))
            .order_by()
        )
        for row in payments:
            paid[period_of(row['month'])] = row

        rows = []
        running = ZERO
        for period in months:
            month_accrued = accrued.get(period) or ZERO
            month_paid = paid[period]['total'] if period in paid else ZERO
            running += month_accrued - month_paid
            rows.append({
                'period': period,
                'accrued': month_accrued,
                'paid': month_paid,
                'debt_end': running,
                'payments_count': paid[period]['count'] if period in paid else 0,
            })
        return rows

    @staticmethod
    def monthly_report(period: Optional[str] = None) -> dict:
        """
        Report for one month (the current one by default).

        ``debt`` is accruals of the month minus payments dated within it
        and may be negative when residents pay ahead.

        Raises:
            InvalidReportPeriodError: Malformed period
        """
        period = _checked(period) if period else current_period()
        first_day, last_day = parse_period(period)

        accruals = Accrual.objects.filter(period=period)
        accrued = sum_amount(accruals)
        paid = sum_amount(Payment.objects.filter(paid_at__gte=first_day, paid_at__lte=last_day))
        penalty = sum_amount(PenaltyAccrual.objects.filter(period=period, status=PenaltyStatus.ACTIVE))

        categories = [
            {'category': row['category'], 'amount': row['total']}
            for row in accruals.values('category').annotate(total=Sum('amount')).order_by('category')
        ]

        appeals = Appeal.objects.filter(created_at__date__gte=first_day, created_at__date__lte=last_day)
        by_status = dict(appeals.values_list('status').annotate(total=Count('id')).order_by())

        return {
            'period': period,
            'totals': {
                'accrued': accrued,
                'paid': paid,
                'debt': accrued - paid,
                'penalty': penalty,
            },
            'categories': categories,
            'appeals': {
                'total': sum(by_status.values()),
                'new': by_status.get(AppealStatus.NEW, 0),
                'in_progress': by_status.get(AppealStatus.IN_PROGRESS, 0),
                'needs_info': by_status.get(AppealStatus.NEEDS_INFO, 0),
                'closed': by_status.get(AppealStatus.CLOSED, 0),
            },
        }

    @staticmethod
    def office_dashboard(now=None) -> dict:
        """Counters for the office landing page."""
        now = now or timezone.now()
        open_appeals = Appeal.objects.exclude(status=AppealStatus.CLOSED)
        unallocated = list_unallocated()

        return {
            'appeals': {
                'open': open_appeals.count(),
                'overdue': open_appeals.filter(due_at__lt=now).count(),
            },
            'unallocated_payments': {
                'count': unallocated.count(),
                'total': sum((payment.amount for payment in unallocated), ZERO),
            },
            'current_period': get_summary(period=current_period()),
            'drafts_awaiting_approval': NotificationDraft.objects.filter(status=DraftStatus.DRAFT).count(),
        }
