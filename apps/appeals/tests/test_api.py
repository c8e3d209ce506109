from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from apps.audit.models import AuditLog, AuditAction
from apps.appeals.models import Appeal, AppealStatus
from apps.appeals.services import add_comment


@pytest.mark.django_db
class TestAppealSubmission:

    def test_anonymous_rejected(self, api_client):
        response = api_client.get(reverse('appeals:appeal-list'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_resident_creates_appeal(self, resident_client, resident_plot):
        response = resident_client.post(reverse('appeals:appeal-list'), {
            'title': 'Вопрос по взносам',
            'body': 'Прошу пояснить начисление членского взноса за май.',
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['category'] == 'finance'
        assert response.data['assigned_role'] == 'accountant'
        assert response.data['plot_label'] == 'Линия 2, участок 14'
        assert response.data['is_due_soon'] is True
        assert response.data['allowed_statuses'] == ['in_progress', 'needs_info', 'closed']

    def test_title_required(self, resident_client):
        response = resident_client.post(reverse('appeals:appeal-list'), {'body': 'Без темы'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'title' in response.data

    def test_resident_lists_only_own(self, resident_client, other_resident_client, appeal):
        own = resident_client.get(reverse('appeals:appeal-list'))
        foreign = other_resident_client.get(reverse('appeals:appeal-list'))

        assert own.data['count'] == 1
        assert foreign.data['count'] == 0

    def test_foreign_appeal_is_404(self, other_resident_client, appeal):
        response = other_resident_client.get(reverse('appeals:appeal-detail', kwargs={'pk': appeal.id}))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestInbox:

    def test_office_list_filters(self, secretary_client, appeal):
        url = reverse('appeals:appeal-list')

        assert secretary_client.get(url, {'status': 'new'}).data['count'] == 1
        assert secretary_client.get(url, {'status': 'overdue'}).data['count'] == 0
        assert secretary_client.get(url, {'category': 'access'}).data['count'] == 0

    def test_unknown_status_filter(self, secretary_client):
        response = secretary_client.get(reverse('appeals:appeal-list'), {'status': 'lost'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_stats(self, accountant_client, appeal):
        response = accountant_client.get(reverse('appeals:appeal-stats'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_open'] == 1

    def test_stats_forbidden_for_resident(self, resident_client):
        response = resident_client.get(reverse('appeals:appeal-stats'))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_internal_comments_hidden(self, resident_client, appeal, appeals_secretary):
        add_comment(appeal_id=appeal.id, user=appeals_secretary, body='Внутренняя заметка', is_internal=True)

        response = resident_client.get(reverse('appeals:appeal-detail', kwargs={'pk': appeal.id}))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['comments'] == []


@pytest.mark.django_db
class TestAppealActions:

    def test_change_status(self, secretary_client, appeal):
        url = reverse('appeals:appeal-set-status', kwargs={'pk': appeal.id})
        response = secretary_client.post(url, {'status': 'in_progress', 'comment': 'Взяли в работу'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'in_progress'
        assert len(response.data['comments']) == 1

    def test_change_status_forbidden_for_accountant(self, accountant_client, appeal):
        url = reverse('appeals:appeal-set-status', kwargs={'pk': appeal.id})
        response = accountant_client.post(url, {'status': 'closed'})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_transition(self, secretary_client, appeal):
        Appeal.objects.filter(id=appeal.id).update(status=AppealStatus.CLOSED)
        url = reverse('appeals:appeal-set-status', kwargs={'pk': appeal.id})

        response = secretary_client.post(url, {'status': 'in_progress'})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'Недопустимый переход' in response.data['error']

    def test_resident_comments_own_appeal(self, resident_client, appeal):
        url = reverse('appeals:appeal-comments', kwargs={'pk': appeal.id})
        response = resident_client.post(url, {'body': 'Уточняю: участок 14'})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['is_internal'] is False

    def test_assign_self(self, secretary_client, appeal, appeals_secretary):
        url = reverse('appeals:appeal-assign', kwargs={'pk': appeal.id})
        response = secretary_client.post(url, {'assigned_to': str(appeals_secretary.id)})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['assigned_to'] == appeals_secretary.id
        assert response.data['assigned_to_name'] == 'Секретарь'

    def test_assign_other_forbidden(self, secretary_client, appeal, appeals_chairman):
        url = reverse('appeals:appeal-assign', kwargs={'pk': appeal.id})
        response = secretary_client.post(url, {'assigned_to': str(appeals_chairman.id)})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_assign_nothing(self, chairman_client, appeal):
        url = reverse('appeals:appeal-assign', kwargs={'pk': appeal.id})
        response = chairman_client.post(url, {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_change_category(self, chairman_client, appeal):
        url = reverse('appeals:appeal-category', kwargs={'pk': appeal.id})
        response = chairman_client.post(url, {'category': 'documents'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['category'] == 'documents'

    def test_activity_feed(self, accountant_client, appeal):
        response = accountant_client.get(reverse('appeals:appeal-activity', kwargs={'pk': appeal.id}))

        assert response.status_code == status.HTTP_200_OK
        assert 'created' in [entry['kind'] for entry in response.data]

    def test_remind_overdue(self, chairman_client, appeal):
        Appeal.objects.filter(id=appeal.id).update(due_at=timezone.now() - timedelta(hours=3))

        response = chairman_client.post(reverse('appeals:appeal-remind-overdue'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['overdue_count'] == 1
        assert AuditLog.objects.filter(action=AuditAction.APPEALS_REMIND_OVERDUE).count() == 1

    def test_triage_closed_appeal(self, chairman_client, appeal):
        Appeal.objects.filter(id=appeal.id).update(status=AppealStatus.CLOSED)

        response = chairman_client.post(reverse('appeals:appeal-triage', kwargs={'pk': appeal.id}))

        assert response.status_code == status.HTTP_409_CONFLICT
