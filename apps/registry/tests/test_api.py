import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework import status

from apps.registry.models import Plot, Person, InviteCode


# =============================================================================
# Plot Tests
# =============================================================================

@pytest.mark.django_db
class TestPlotEndpoints:
    """Tests for /api/registry/plots/"""

    def test_list_plots(self, accountant_client, plot, person):
        url = reverse('registry:plot-list')
        response = accountant_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        row = response.data['results'][0]
        assert row['label'] == 'Линия 2, участок 14'
        assert row['owners'][0]['full_name'] == person.full_name

    def test_resident_cannot_read_registry(self, resident_client, plot):
        url = reverse('registry:plot-list')
        response = resident_client.get(url)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_rejected(self, api_client):
        url = reverse('registry:plot-list')
        response = api_client.get(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_plot(self, chairman_client):
        url = reverse('registry:plot-list')
        response = chairman_client.post(url, {'street': '4', 'number': '9'})

        assert response.status_code == status.HTTP_201_CREATED
        assert Plot.objects.filter(street='4', number='9').exists()

    def test_create_duplicate_plot_conflict(self, chairman_client, plot):
        url = reverse('registry:plot-list')
        response = chairman_client.post(url, {'street': plot.street, 'number': plot.number})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert 'error' in response.data

    def test_accountant_cannot_create_plot(self, accountant_client):
        url = reverse('registry:plot-list')
        response = accountant_client.post(url, {'street': '4', 'number': '9'})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_partial_update(self, chairman_client, plot):
        url = reverse('registry:plot-detail', kwargs={'pk': plot.id})
        response = chairman_client.patch(url, {'notes': 'Скважина'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        plot.refresh_from_db()
        assert plot.notes == 'Скважина'
        assert plot.number == '14'

    def test_destroy_deactivates(self, chairman_client, plot):
        url = reverse('registry:plot-detail', kwargs={'pk': plot.id})
        response = chairman_client.delete(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        plot.refresh_from_db()
        assert plot.is_active is False

    def test_attach_and_detach_owner(self, chairman_client, other_plot, person):
        attach_url = reverse('registry:plot-attach-owner', kwargs={'pk': other_plot.id})
        response = chairman_client.post(attach_url, {'person_id': str(person.id), 'is_primary': True})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['owners'][0]['is_primary'] is True

        detach_url = reverse('registry:plot-detach-owner', kwargs={'pk': other_plot.id})
        response = chairman_client.post(detach_url, {'person_id': str(person.id)})

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not other_plot.ownerships.exists()


# =============================================================================
# Person Tests
# =============================================================================

@pytest.mark.django_db
class TestPersonEndpoints:
    """Tests for /api/registry/persons/"""

    def test_search(self, accountant_client, person, duplicate_person):
        url = reverse('registry:person-list')
        response = accountant_client.get(url, {'q': '2 14'})

        assert response.status_code == status.HTTP_200_OK
        assert [row['id'] for row in response.data['results']] == [str(person.id)]
        assert response.data['results'][0]['plots'][0]['label'] == 'Линия 2, участок 14'

    def test_search_invalid_status(self, accountant_client):
        url = reverse('registry:person-list')
        response = accountant_client.get(url, {'status': 'lost'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_create_person(self, chairman_client):
        url = reverse('registry:person-list')
        response = chairman_client.post(url, {'full_name': 'Новиков Н.Н.', 'phone': '+79000000000'})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['has_account'] is False

    def test_delete_not_allowed(self, chairman_client, person):
        url = reverse('registry:person-detail', kwargs={'pk': person.id})
        response = chairman_client.delete(url)

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_duplicates(self, accountant_client, person, duplicate_person):
        url = reverse('registry:person-duplicates')
        response = accountant_client.get(url, {'phone': '+7 912 345 67 89'})

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 2
        assert {row['match_type'] for row in response.data} == {'phone'}

    def test_duplicates_need_query(self, accountant_client):
        url = reverse('registry:person-duplicates')
        response = accountant_client.get(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_issues(self, accountant_client, person, duplicate_person):
        url = reverse('registry:person-issues')
        response = accountant_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['summary']['by_type']['duplicate_phone'] == 1

    def test_merge(self, chairman_client, person, duplicate_person):
        url = reverse('registry:person-merge')
        response = chairman_client.post(url, {
            'source_person_id': str(duplicate_person.id),
            'target_person_id': str(person.id),
            'reason': 'дубль',
        })

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['plots']) == 2

    def test_merge_requires_write(self, accountant_client, person, duplicate_person):
        url = reverse('registry:person-merge')
        response = accountant_client.post(url, {
            'source_person_id': str(duplicate_person.id),
            'target_person_id': str(person.id),
        })

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Invite Code Tests
# =============================================================================

@pytest.mark.django_db
class TestInviteCodeEndpoints:

    def test_issue_code(self, chairman_client, person):
        url = reverse('registry:person-invite-codes', kwargs={'pk': person.id})
        response = chairman_client.post(url)

        assert response.status_code == status.HTTP_201_CREATED
        assert len(response.data['code']) == 9
        assert response.data['invite']['status'] == 'active'

    def test_list_person_codes(self, chairman_client, person):
        url = reverse('registry:person-invite-codes', kwargs={'pk': person.id})
        chairman_client.post(url)

        response = chairman_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert 'code' not in response.data[0]

    def test_regenerate(self, chairman_client, person):
        issue_url = reverse('registry:person-invite-codes', kwargs={'pk': person.id})
        chairman_client.post(issue_url)

        url = reverse('registry:person-regenerate-invite', kwargs={'pk': person.id})
        response = chairman_client.post(url)

        assert response.status_code == status.HTTP_201_CREATED
        statuses = sorted(invite.status for invite in InviteCode.objects.filter(person=person))
        assert statuses == ['active', 'revoked']

    def test_global_list_filters(self, chairman_client, person):
        chairman_client.post(reverse('registry:person-invite-codes', kwargs={'pk': person.id}))

        url = reverse('registry:invite-code-list')
        response = chairman_client.get(url, {'used': 'true'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data == []

        response = chairman_client.get(url, {'person': str(person.id)})
        assert len(response.data) == 1


# =============================================================================
# Import Tests
# =============================================================================

@pytest.mark.django_db
class TestRegistryImportEndpoint:

    def test_import_csv(self, chairman_client):
        upload = SimpleUploadedFile(
            'registry.csv',
            'Линия;Участок;ФИО;Телефон\n1;1;Зайцев Захар;+79005556677\n'.encode('utf-8'),
            content_type='text/csv',
        )
        url = reverse('registry:import')
        response = chairman_client.post(url, {'file': upload}, format='multipart')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['created_plots'] == 1
        assert Person.objects.filter(full_name='Зайцев Захар').exists()

    def test_import_bad_file(self, chairman_client):
        upload = SimpleUploadedFile('registry.csv', b'only header\n', content_type='text/csv')
        url = reverse('registry:import')
        response = chairman_client.post(url, {'file': upload}, format='multipart')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
