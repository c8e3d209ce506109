import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Role
from apps.registry.models import Person, Plot, PlotOwnership, PersonStatus
from apps.registry.services import create_invite_code


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return a resident."""
    return User.objects.create_user(
        email='resident@example.com',
        password='TestPass123!',
        full_name='Иванов Иван Иванович',
        role=Role.RESIDENT,
    )


@pytest.fixture
def user_inactive(db):
    """Create and return an inactive user."""
    return User.objects.create_user(
        email='inactive@example.com',
        password='TestPass123!',
        full_name='Отключённый Пользователь',
        is_active=False,
    )


@pytest.fixture
def chairman(db):
    return User.objects.create_user(
        email='chairman@example.com',
        password='TestPass123!',
        full_name='Председатель',
        role=Role.CHAIRMAN,
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        full_name='Администратор',
        role=Role.ADMIN,
    )


@pytest.fixture
def authenticated_client(user):
    """Return an API client authenticated as the resident."""
    return _client_for(user)


@pytest.fixture
def chairman_client(chairman):
    return _client_for(chairman)


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def invited_person(db, chairman):
    """Registry person with a plot and a fresh invite code."""
    plot = Plot.objects.create(street='3', number='17')
    person = Person.objects.create(
        full_name='Петров Пётр Петрович',
        phone='+7 900 111-22-33',
        status=PersonStatus.VERIFIED,
    )
    PlotOwnership.objects.create(plot=plot, person=person, is_primary=True)
    invite, code = create_invite_code(person_id=person.id, created_by=chairman)
    return person, code
