import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Role
from apps.appeals.services import create_appeal
from apps.registry.models import Plot, Person, PlotOwnership, PersonStatus


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def appeals_resident(db):
    return User.objects.create_user(
        email='resident@example.com',
        password='TestPass123!',
        full_name='Сидорова Анна Петровна',
        phone='+79123456789',
        role=Role.RESIDENT,
    )


@pytest.fixture
def appeals_other_resident(db):
    return User.objects.create_user(
        email='neighbour@example.com',
        password='TestPass123!',
        full_name='Петров Пётр',
        role=Role.RESIDENT,
    )


@pytest.fixture
def appeals_secretary(db):
    return User.objects.create_user(
        email='secretary@example.com',
        password='TestPass123!',
        full_name='Секретарь',
        role=Role.SECRETARY,
    )


@pytest.fixture
def appeals_chairman(db):
    return User.objects.create_user(
        email='chairman@example.com',
        password='TestPass123!',
        full_name='Председатель',
        role=Role.CHAIRMAN,
    )


@pytest.fixture
def appeals_accountant(db):
    return User.objects.create_user(
        email='accountant@example.com',
        password='TestPass123!',
        role=Role.ACCOUNTANT,
    )


@pytest.fixture
def resident_client(appeals_resident):
    return _client_for(appeals_resident)


@pytest.fixture
def other_resident_client(appeals_other_resident):
    return _client_for(appeals_other_resident)


@pytest.fixture
def secretary_client(appeals_secretary):
    return _client_for(appeals_secretary)


@pytest.fixture
def chairman_client(appeals_chairman):
    return _client_for(appeals_chairman)


@pytest.fixture
def accountant_client(appeals_accountant):
    """Reads the inbox but may not change statuses."""
    return _client_for(appeals_accountant)


@pytest.fixture
def resident_plot(db, appeals_resident):
    """Plot 2/14 owned by the resident."""
    plot = Plot.objects.create(street='2', number='14')
    person = Person.objects.create(
        full_name=appeals_resident.full_name,
        phone=appeals_resident.phone,
        status=PersonStatus.VERIFIED,
        user=appeals_resident,
    )
    PlotOwnership.objects.create(plot=plot, person=person, is_primary=True)
    return plot


@pytest.fixture
def appeal(resident_plot, appeals_resident):
    """Finance appeal by the resident, routed to the accountant."""
    return create_appeal(
        author=appeals_resident,
        title='Вопрос по взносам',
        body='Прошу пояснить начисление членского взноса за май.',
    )
