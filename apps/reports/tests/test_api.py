import pytest
from django.urls import reverse
from rest_framework import status


@pytest.mark.django_db
class TestReportAccess:

    def test_anonymous_rejected(self, api_client):
        response = api_client.get(reverse('reports:dashboard'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_resident_forbidden(self, resident_client):
        response = resident_client.get(reverse('reports:dashboard'))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['detail'] == 'Офис правления недоступен жителям.'

    def test_secretary_sees_dashboard_but_not_money(self, secretary_client):
        assert secretary_client.get(reverse('reports:dashboard')).status_code == status.HTTP_200_OK
        assert secretary_client.get(reverse('reports:monthly-report')).status_code == status.HTTP_403_FORBIDDEN
        assert secretary_client.get(reverse('reports:export-registry')).status_code == status.HTTP_200_OK


@pytest.mark.django_db
class TestReportEndpoints:

    def test_monthly_aggregates(self, accountant_client, billing_data):
        response = accountant_client.get(reverse('reports:monthly-aggregates'), {'from': '2024-06', 'to': '2024-05'})

        assert response.status_code == status.HTTP_200_OK
        assert [row['period'] for row in response.data] == ['2024-05', '2024-06']
        assert response.data[1]['debt_end'] == '1050.00'

    def test_monthly_aggregates_bad_period(self, accountant_client):
        response = accountant_client.get(reverse('reports:monthly-aggregates'), {'from': '2024-13'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_monthly_report(self, accountant_client, billing_data):
        response = accountant_client.get(reverse('reports:monthly-report'), {'period': '2024-05'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['totals']['accrued'] == '2050.00'
        assert response.data['appeals']['total'] == 0

    def test_dashboard(self, accountant_client, billing_data):
        response = accountant_client.get(reverse('reports:dashboard'))

        assert response.data['unallocated_payments'] == {'count': 1, 'total': '1000.00'}
        assert response.data['drafts_awaiting_approval'] == 0

    def test_debtors_csv(self, accountant_client, billing_data):
        response = accountant_client.get(reverse('reports:export-debtors'), {'period': '2024-05'})

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'text/csv; charset=utf-8'
        assert 'attachment; filename="debtors-' in response['Content-Disposition']
        assert response.content.startswith('\ufeff'.encode('utf-8'))

    def test_payments_csv_bad_range(self, accountant_client):
        response = accountant_client.get(reverse('reports:export-payments'), {
            'date_from': '2024-06-30',
            'date_to': '2024-06-01',
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
