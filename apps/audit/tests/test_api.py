import pytest
from django.urls import reverse
from rest_framework import status

from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event


@pytest.mark.django_db
class TestAuditLogEndpoints:
    """Tests for /api/audit/events/"""

    def test_admin_lists_events(self, admin_client, audit_chairman):
        log_audit_event(actor=audit_chairman, action=AuditAction.PERIOD_CLOSE, target_id='2024-05')

        url = reverse('audit:event-list')
        response = admin_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['actor_email'] == audit_chairman.email

    def test_filter_by_action(self, admin_client, audit_chairman):
        log_audit_event(actor=audit_chairman, action=AuditAction.PERIOD_CLOSE)
        log_audit_event(actor=audit_chairman, action=AuditAction.ALLOCATION_MANUAL)

        url = reverse('audit:event-list')
        response = admin_client.get(url, {'action': AuditAction.ALLOCATION_MANUAL})

        assert response.data['count'] == 1

    def test_invalid_date_range(self, admin_client):
        url = reverse('audit:event-list')
        response = admin_client.get(url, {'date_from': '2024-05-10', 'date_to': '2024-05-01'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_retrieve(self, admin_client, audit_admin):
        entry = log_audit_event(actor=audit_admin, action=AuditAction.USER_ROLE_CHANGE)

        url = reverse('audit:event-detail', kwargs={'pk': entry.id})
        response = admin_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['action'] == 'user.role_change'

    def test_chairman_forbidden(self, chairman_client):
        url = reverse('audit:event-list')
        response = chairman_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_rejected(self, api_client):
        url = reverse('audit:event-list')
        response = api_client.get(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_log_is_read_only(self, admin_client):
        url = reverse('audit:event-list')
        response = admin_client.post(url, {'action': 'period.close'})

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
