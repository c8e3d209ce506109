import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Role
from apps.registry.models import Plot, Person, PlotOwnership, PersonStatus


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
def registry_chairman(db):
    return User.objects.create_user(
        email='chair@example.com',
        password='TestPass123!',
        full_name='Председатель',
        role=Role.CHAIRMAN,
    )


@pytest.fixture
def registry_accountant(db):
    return User.objects.create_user(
        email='accountant@example.com',
        password='TestPass123!',
        role=Role.ACCOUNTANT,
    )


@pytest.fixture
def registry_resident(db):
    return User.objects.create_user(
        email='resident@example.com',
        password='TestPass123!',
        role=Role.RESIDENT,
    )


@pytest.fixture
def chairman_client(registry_chairman):
    """Client with registry read/write."""
    return _client_for(registry_chairman)


@pytest.fixture
def accountant_client(registry_accountant):
    """Client with registry read only."""
    return _client_for(registry_accountant)


@pytest.fixture
def resident_client(registry_resident):
    return _client_for(registry_resident)


@pytest.fixture
def plot(db):
    return Plot.objects.create(street='2', number='14', area_sqm='600.00')


@pytest.fixture
def other_plot(db):
    return Plot.objects.create(street='5', number='3')


@pytest.fixture
def person(db, plot):
    """Verified owner of ``plot``."""
    person = Person.objects.create(
        full_name='Сидорова Анна Петровна',
        phone='+7 (912) 345-67-89',
        email='sidorova@example.com',
        status=PersonStatus.VERIFIED,
    )
    PlotOwnership.objects.create(plot=plot, person=person, is_primary=True)
    return person


@pytest.fixture
def duplicate_person(db, other_plot):
    """Same owner typed in a second time, different phone format."""
    person = Person.objects.create(
        full_name='Сидорова Анна Петровна',
        phone='89123456789',
        status=PersonStatus.DRAFT,
    )
    PlotOwnership.objects.create(plot=other_plot, person=person)
    return person
