from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Role
from apps.billing.models import Accrual, AccrualCategory, Payment, MatchStatus
from apps.billing.services import ensure_default_requisites
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
def billing_accountant(db):
    return User.objects.create_user(
        email='accountant@example.com',
        password='TestPass123!',
        full_name='Бухгалтер',
        role=Role.ACCOUNTANT,
    )


@pytest.fixture
def billing_secretary(db):
    return User.objects.create_user(
        email='secretary@example.com',
        password='TestPass123!',
        role=Role.SECRETARY,
    )


@pytest.fixture
def billing_admin(db):
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        role=Role.ADMIN,
    )


@pytest.fixture
def billing_resident(db):
    return User.objects.create_user(
        email='resident@example.com',
        password='TestPass123!',
        full_name='Сидорова Анна Петровна',
        role=Role.RESIDENT,
    )


@pytest.fixture
def accountant_client(billing_accountant):
    """Client with finance access."""
    return _client_for(billing_accountant)


@pytest.fixture
def secretary_client(billing_secretary):
    """Office client without finance access."""
    return _client_for(billing_secretary)


@pytest.fixture
def admin_client(billing_admin):
    return _client_for(billing_admin)


@pytest.fixture
def resident_client(billing_resident):
    return _client_for(billing_resident)


@pytest.fixture
def plot(db):
    return Plot.objects.create(street='2', number='14')


@pytest.fixture
def other_plot(db):
    return Plot.objects.create(street='5', number='3')


@pytest.fixture
def owner(db, plot, billing_resident):
    """Primary owner of ``plot`` linked to the resident account."""
    person = Person.objects.create(
        full_name='Сидорова Анна Петровна',
        phone='+7 (912) 345-67-89',
        status=PersonStatus.VERIFIED,
        user=billing_resident,
    )
    PlotOwnership.objects.create(plot=plot, person=person, is_primary=True)
    return person


@pytest.fixture
def other_owner(db, other_plot):
    person = Person.objects.create(full_name='Петров Пётр Ильич', phone='+79005554433')
    PlotOwnership.objects.create(plot=other_plot, person=person, is_primary=True)
    return person


@pytest.fixture
def accrual(db, plot, billing_accountant):
    """May 2024 membership fee of ``plot``."""
    return Accrual.objects.create(
        plot=plot,
        period='2024-05',
        category=AccrualCategory.MEMBERSHIP,
        amount=Decimal('1500.00'),
        created_by=billing_accountant,
    )


@pytest.fixture
def payment(db, plot, billing_accountant):
    """Matched 1000 roubles for ``plot``."""
    return Payment.objects.create(
        plot=plot,
        amount=Decimal('1000.00'),
        paid_at=date(2024, 6, 3),
        payer_name='Сидорова А.П.',
        purpose='Членский взнос участок 14',
        match_status=MatchStatus.MATCHED,
        created_by=billing_accountant,
    )


@pytest.fixture
def requisites(db):
    return ensure_default_requisites()
