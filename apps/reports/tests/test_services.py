from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.appeals.models import Appeal, AppealStatus
from apps.billing.services import current_period
from apps.notifications.models import NotificationDraft
from apps.reports.exceptions import InvalidReportPeriodError
from apps.reports.exports import format_money, export_debtors, export_accruals, export_payments, export_registry
from apps.reports.reports import ReportQueries


class TestPeriodRange:

    def test_explicit_range(self):
        assert ReportQueries.period_range('2024-11', '2025-02') == ['2024-11', '2024-12', '2025-01', '2025-02']

    def test_inverted_range_is_swapped(self):
        assert ReportQueries.period_range('2024-03', '2024-01') == ['2024-01', '2024-02', '2024-03']

    def test_default_is_last_six_months(self):
        months = ReportQueries.period_range()

        assert len(months) == 6
        assert months[-1] == current_period()

    def test_invalid_period(self):
        with pytest.raises(InvalidReportPeriodError):
            ReportQueries.period_range('2024-13', '2024-12')


@pytest.mark.django_db
class TestMonthlyAggregates:

    def test_running_debt(self, billing_data):
        rows = ReportQueries.monthly_aggregates('2024-04', '2024-06')

        assert [row['period'] for row in rows] == ['2024-04', '2024-05', '2024-06']
        assert rows[0]['debt_end'] == Decimal('0')
        assert rows[1]['accrued'] == Decimal('2050.00')
        assert rows[1]['debt_end'] == Decimal('2050.00')
        assert rows[2]['paid'] == Decimal('1000.00')
        assert rows[2]['payments_count'] == 1
        assert rows[2]['debt_end'] == Decimal('1050.00')


@pytest.mark.django_db
class TestMonthlyReport:

    def test_totals_and_categories(self, billing_data):
        report = ReportQueries.monthly_report('2024-05')

        assert report['totals']['accrued'] == Decimal('2050.00')
        assert report['totals']['paid'] == Decimal('0')
        assert report['totals']['debt'] == Decimal('2050.00')
        assert report['totals']['penalty'] == Decimal('0')
        assert report['categories'] == [
            {'category': 'electricity', 'amount': Decimal('550.00')},
            {'category': 'membership', 'amount': Decimal('1500.00')},
        ]

    def test_appeals_of_the_month(self, db):
        Appeal.objects.create(title='Свет', body='Нет света на линии')
        Appeal.objects.create(title='Пропуск', body='Нужен пропуск', status=AppealStatus.CLOSED)

        report = ReportQueries.monthly_report()

        assert report['period'] == current_period()
        assert report['appeals'] == {'total': 2, 'new': 1, 'in_progress': 0, 'needs_info': 0, 'closed': 1}


@pytest.mark.django_db
class TestDashboard:

    def test_counters(self, billing_data):
        Appeal.objects.create(title='Свет', body='Нет света', due_at=timezone.now() - timedelta(hours=1))
        Appeal.objects.create(title='Шлагбаум', body='Сломан шлагбаум')
        NotificationDraft.objects.create(template_id='debt_notice', plot=billing_data)

        data = ReportQueries.office_dashboard()

        assert data['appeals'] == {'open': 2, 'overdue': 1}
        assert data['unallocated_payments']['count'] == 1
        assert data['unallocated_payments']['total'] == Decimal('1000.00')
        assert data['drafts_awaiting_approval'] == 1
        assert data['current_period']['period'] == current_period()


@pytest.mark.django_db
class TestExports:

    def test_format_money(self):
        assert format_money(Decimal('1500')) == '1500,00'

    def test_debtors(self, billing_data):
        content = export_debtors(period='2024-05')
        lines = content.split('\r\n')

        assert content.startswith('\ufeff')
        assert lines[0] == '\ufeffУчасток;Владелец;Начислено;Оплачено;Долг'
        assert lines[1] == 'Линия 2, участок 14;Сидорова Анна Петровна;2050,00;0,00;2050,00'

    def test_accruals_by_category(self, billing_data):
        lines = export_accruals(period='2024-05', category='electricity').strip().split('\r\n')

        assert len(lines) == 2
        assert lines[1] == '2024-05;Линия 2, участок 14;Электроэнергия;550,00;0,00;Не оплачено'

    def test_payments_range(self, billing_data):
        assert len(export_payments(date_from=date(2024, 6, 1)).strip().split('\r\n')) == 2
        assert len(export_payments(date_to=date(2024, 5, 31)).strip().split('\r\n')) == 1

    def test_registry(self, billing_data):
        lines = export_registry().strip().split('\r\n')

        assert lines[1] == '2;14;Сидорова Анна Петровна;+79123456789;sidorova@example.com;да'
        assert lines[2] == '3;1;;;;'
