from datetime import date
from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework import status

from apps.audit.models import AuditLog, AuditAction
from apps.billing.models import Accrual, Allocation, Payment, PenaltyAccrual, PaymentRequisites
from apps.billing.services import close_period, apply_penalties


# =============================================================================
# Access
# =============================================================================

@pytest.mark.django_db
class TestFinanceAccess:

    def test_anonymous_rejected(self, api_client):
        response = api_client.get(reverse('billing:accrual-list'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_secretary_has_no_finance(self, secretary_client):
        response = secretary_client.get(reverse('billing:payment-list'))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['detail'] == 'Финансовые разделы недоступны для вашей роли.'

    def test_resident_gets_office_message(self, resident_client):
        response = resident_client.get(reverse('billing:reconcile-summary'))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['detail'] == 'Офис правления недоступен жителям.'


# =============================================================================
# Periods
# =============================================================================

@pytest.mark.django_db
class TestPeriodEndpoints:

    def test_close_period(self, accountant_client, accrual):
        url = reverse('billing:period-close', kwargs={'period': '2024-05'})
        response = accountant_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'closed'
        assert response.data['snapshot']['debtors_count'] == 1

    def test_reopen_admin_only(self, accountant_client, admin_client, billing_admin):
        close_period(period='2024-05', user=billing_admin)
        url = reverse('billing:period-reopen', kwargs={'period': '2024-05'})

        response = accountant_client.post(url, {'reason': 'ошибка'})
        assert response.status_code == status.HTTP_403_FORBIDDEN

        response = admin_client.post(url, {})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        response = admin_client.post(url, {'reason': 'ошибка'})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'open'

    def test_list_periods(self, accountant_client, billing_accountant):
        close_period(period='2024-05', user=billing_accountant)

        response = accountant_client.get(reverse('billing:period-list'))

        assert response.status_code == status.HTTP_200_OK
        assert [row['period'] for row in response.data] == ['2024-05']


# =============================================================================
# Accruals
# =============================================================================

@pytest.mark.django_db
class TestAccrualEndpoints:

    def test_list_filtered(self, accountant_client, accrual):
        url = reverse('billing:accrual-list')
        response = accountant_client.get(url, {'period': '2024-05'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        row = response.data['results'][0]
        assert row['amount'] == '1500.00'
        assert row['status'] == 'open'
        assert row['plot_label'] == 'Линия 2, участок 14'

    def test_invalid_period_filter(self, accountant_client):
        response = accountant_client.get(reverse('billing:accrual-list'), {'period': '2024-13'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_preview(self, accountant_client, accrual, other_plot):
        url = reverse('billing:accrual-preview')
        response = accountant_client.post(
            url, {'period': '2024-05', 'category': 'membership', 'tariff': '1500'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['new_count'] == 1
        assert response.data['existing_count'] == 1

    def test_generate(self, accountant_client, plot, other_plot):
        url = reverse('billing:accrual-generate')
        response = accountant_client.post(
            url, {'period': '2024-06', 'category': 'electricity', 'tariff': '5.00'}, format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['created_count'] == 2
        assert Accrual.objects.filter(period='2024-06').count() == 2

    def test_generate_closed_period_conflict(self, accountant_client, plot, billing_accountant):
        close_period(period='2024-06', user=billing_accountant)
        url = reverse('billing:accrual-generate')

        response = accountant_client.post(url, {'period': '2024-06', 'category': 'membership'}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['detail'] == 'Период закрыт. Укажите причину изменения.'


# =============================================================================
# Payments
# =============================================================================

@pytest.mark.django_db
class TestPaymentEndpoints:

    def test_create_payment(self, accountant_client, plot):
        url = reverse('billing:payment-list')
        response = accountant_client.post(url, {
            'amount': '1200.00',
            'paid_at': '2024-06-10',
            'plot_id': str(plot.id),
            'payer_name': 'Сидорова',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['match_status'] == 'matched'
        assert response.data['allocation_status'] == 'unallocated'

    def test_create_payment_rejects_zero(self, accountant_client):
        url = reverse('billing:payment-list')
        response = accountant_client.post(url, {'amount': '0', 'paid_at': '2024-06-10'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_retrieve_with_allocations(self, accountant_client, accrual, payment):
        Allocation.objects.create(payment=payment, accrual=accrual, amount=Decimal('1000.00'))

        response = accountant_client.get(reverse('billing:payment-detail', kwargs={'pk': payment.id}))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['allocated_amount'] == '1000.00'
        assert response.data['allocations'][0]['period'] == '2024-05'

    def test_match(self, accountant_client, plot):
        payment = Payment.objects.create(amount=Decimal('100'), paid_at=date(2024, 6, 1))
        url = reverse('billing:payment-match', kwargs={'pk': payment.id})

        response = accountant_client.post(url, {'plot_id': str(plot.id)}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['plot'] == plot.id
        assert response.data['match_method'] == 'manual'

    def test_bulk_match(self, accountant_client, payment):
        url = reverse('billing:payment-bulk-match')
        response = accountant_client.post(
            url, {'payment_ids': [str(payment.id)], 'action': 'review'}, format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'updated': 1, 'skipped': 0}

    def test_unallocated_list(self, accountant_client, payment):
        response = accountant_client.get(reverse('billing:payment-unallocated'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1

    def test_import_statement(self, accountant_client, plot, owner):
        upload = SimpleUploadedFile(
            'june.csv',
            'Дата;Сумма;Плательщик;Назначение\n05.06.2024;1500;Сидорова Анна Петровна;участок 14\n'.encode('utf-8'),
            content_type='text/csv',
        )

        response = accountant_client.post(
            reverse('billing:payment-import-statement'), {'file': upload}, format='multipart'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['totals']['imported'] == 1
        assert response.data['totals']['matched'] == 1
        assert Payment.objects.get().plot == plot

    def test_import_unreadable_statement(self, accountant_client):
        upload = SimpleUploadedFile('bad.csv', b'hello\n', content_type='text/csv')

        response = accountant_client.post(
            reverse('billing:payment-import-statement'), {'file': upload}, format='multipart'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data


# =============================================================================
# Allocation & reconciliation
# =============================================================================

@pytest.mark.django_db
class TestAllocationEndpoints:

    def test_auto_allocate(self, accountant_client, accrual, payment):
        response = accountant_client.post(reverse('billing:allocate-auto'), {}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'created_count': 1, 'periods': ['2024-05']}

    def test_manual_allocate_over_remainder(self, accountant_client, accrual, payment):
        response = accountant_client.post(reverse('billing:allocate-manual'), {
            'payment_id': str(payment.id),
            'accrual_id': str(accrual.id),
            'amount': '1100.00',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Сумма превышает остаток'

    def test_delete_allocation(self, accountant_client, accrual, payment):
        allocation = Allocation.objects.create(payment=payment, accrual=accrual, amount=Decimal('500'))

        response = accountant_client.delete(reverse('billing:allocation-delete', kwargs={'pk': allocation.id}))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert AuditLog.objects.filter(action=AuditAction.ALLOCATION_UNAPPLY).exists()

    def test_summary_and_debtors(self, accountant_client, accrual, payment):
        Allocation.objects.create(payment=payment, accrual=accrual, amount=Decimal('1000.00'))

        summary = accountant_client.get(reverse('billing:reconcile-summary'), {'period': '2024-05'})
        debtors = accountant_client.get(reverse('billing:reconcile-debtors'), {'period': '2024-05'})

        assert summary.status_code == status.HTTP_200_OK
        assert summary.data['debt'] == '500.00'
        assert debtors.data[0]['debt'] == '500.00'

    def test_balances(self, accountant_client, accrual, payment):
        response = accountant_client.get(reverse('billing:reconcile-balances'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['balance'] == '-500.00'


# =============================================================================
# Penalties
# =============================================================================

@pytest.mark.django_db
class TestPenaltyEndpoints:

    def test_preview_and_apply(self, accountant_client, accrual):
        payload = {'as_of': '2024-07-30', 'rate': '0.1'}

        preview = accountant_client.post(reverse('billing:penalty-preview'), payload, format='json')
        applied = accountant_client.post(reverse('billing:penalty-apply'), payload, format='json')

        assert preview.status_code == status.HTTP_200_OK
        assert preview.data[0]['days_overdue'] == 60
        assert applied.data['created'] == 1
        assert PenaltyAccrual.objects.count() == 1

    def test_void_requires_reason(self, accountant_client, accrual, billing_accountant):
        apply_penalties(user=billing_accountant, as_of=date(2024, 7, 30))
        penalty = PenaltyAccrual.objects.get()
        url = reverse('billing:penalty-void', kwargs={'pk': penalty.id})

        response = accountant_client.post(url, {}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

        response = accountant_client.post(url, {'reason': 'льгота'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'voided'

        response = accountant_client.post(reverse('billing:penalty-freeze', kwargs={'pk': penalty.id}))
        assert response.status_code == status.HTTP_409_CONFLICT


# =============================================================================
# Requisites, QR and cabinet
# =============================================================================

@pytest.mark.django_db
class TestRequisitesEndpoints:

    def test_not_configured(self, accountant_client):
        response = accountant_client.get(reverse('billing:requisites'))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_save_new_version(self, accountant_client, requisites):
        response = accountant_client.post(
            reverse('billing:requisites'), {'bank_name': 'АО «Банк»'}, format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['version'] == 2
        assert PaymentRequisites.objects.count() == 2

    def test_invalid_bik(self, accountant_client, requisites):
        response = accountant_client.post(reverse('billing:requisites'), {'bik': '123'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'bik' in response.data

    def test_plot_qr(self, accountant_client, requisites, plot, accrual):
        response = accountant_client.get(reverse('billing:plot-qr', kwargs={'pk': plot.id}))

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'image/png'
        assert response.content.startswith(b'\x89PNG')


@pytest.mark.django_db
class TestCabinetEndpoints:

    def test_my_billing(self, resident_client, owner, accrual, payment):
        response = resident_client.get(reverse('billing:my-billing'))

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]['balance'] == '-500.00'
        assert response.data[0]['accruals'][0]['remaining'] == '1500.00'

    def test_my_qr(self, resident_client, owner, plot, requisites):
        response = resident_client.get(reverse('billing:my-qr'), {'plot': str(plot.id)})

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'image/png'

    def test_my_qr_foreign_plot(self, resident_client, owner, other_plot, requisites):
        response = resident_client.get(reverse('billing:my-qr'), {'plot': str(other_plot.id)})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_staff_without_registry_card(self, accountant_client):
        response = accountant_client.get(reverse('billing:my-billing'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []
