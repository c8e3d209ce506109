from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Role
from apps.billing.models import Accrual, AccrualCategory, Payment, MatchStatus
from apps.registry.models import Plot, Person, PlotOwnership


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def reports_accountant(db):
    return User.objects.create_user(
        email='accountant@example.com',
        password='TestPass123!',
        role=Role.ACCOUNTANT,
    )


@pytest.fixture
def reports_secretary(db):
    return User.objects.create_user(
        email='secretary@example.com',
        password='TestPass123!',
        role=Role.SECRETARY,
    )


@pytest.fixture
def reports_resident(db):
    return User.objects.create_user(
        email='resident@example.com',
        password='TestPass123!',
        role=Role.RESIDENT,
    )


@pytest.fixture
def accountant_client(reports_accountant):
    return _client_for(reports_accountant)


@pytest.fixture
def secretary_client(reports_secretary):
    """Office access without finance."""
    return _client_for(reports_secretary)


@pytest.fixture
def resident_client(reports_resident):
    return _client_for(reports_resident)


@pytest.fixture
def billing_data(db, reports_accountant):
    """
    Plot 2/14 charged 2050 for May 2024 and paying 1000 on 3 June.

    The payment is not allocated yet.
    """
    plot = Plot.objects.create(street='2', number='14')
    Plot.objects.create(street='3', number='1')
    person = Person.objects.create(
        full_name='Сидорова Анна Петровна',
        phone='+79123456789',
        email='sidorova@example.com',
    )
    PlotOwnership.objects.create(plot=plot, person=person, is_primary=True)

    Accrual.objects.create(
        plot=plot,
        period='2024-05',
        category=AccrualCategory.MEMBERSHIP,
        amount=Decimal('1500.00'),
        created_by=reports_accountant,
    )
    Accrual.objects.create(
        plot=plot,
        period='2024-05',
        category=AccrualCategory.ELECTRICITY,
        amount=Decimal('550.00'),
        created_by=reports_accountant,
    )
    Payment.objects.create(
        plot=plot,
        amount=Decimal('1000.00'),
        paid_at=date(2024, 6, 3),
        payer_name='Сидорова А.П.',
        purpose='Членский взнос участок 14',
        match_status=MatchStatus.MATCHED,
        created_by=reports_accountant,
    )
    return plot
