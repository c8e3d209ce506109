from decimal import Decimal

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Role
from apps.billing.models import Accrual, AccrualCategory
from apps.notifications.models import Announcement, AnnouncementStatus, Audience
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
def notifications_secretary(db):
    return User.objects.create_user(
        email='secretary@example.com',
        password='TestPass123!',
        full_name='Секретарь',
        role=Role.SECRETARY,
    )


@pytest.fixture
def notifications_accountant(db):
    return User.objects.create_user(
        email='accountant@example.com',
        password='TestPass123!',
        full_name='Бухгалтер',
        role=Role.ACCOUNTANT,
    )


@pytest.fixture
def notifications_resident(db):
    return User.objects.create_user(
        email='resident@example.com',
        password='TestPass123!',
        role=Role.RESIDENT,
    )


@pytest.fixture
def secretary_client(notifications_secretary):
    return _client_for(notifications_secretary)


@pytest.fixture
def accountant_client(notifications_accountant):
    """Finance access, no announcement rights."""
    return _client_for(notifications_accountant)


@pytest.fixture
def resident_client(notifications_resident):
    return _client_for(notifications_resident)


@pytest.fixture
def announcements(notifications_secretary):
    """One published item per audience plus an unpublished draft."""
    published = {}
    for audience in Audience.values:
        published[audience] = Announcement.objects.create(
            title=f'Объявление {audience}',
            body='Текст объявления',
            audience=audience,
            status=AnnouncementStatus.PUBLISHED,
            published_at='2024-05-01T10:00:00Z',
            author=notifications_secretary,
        )
    published['draft'] = Announcement.objects.create(
        title='Черновик собрания',
        body='Повестка общего собрания',
        author=notifications_secretary,
    )
    return published


@pytest.fixture
def debtor_plots(db, notifications_accountant):
    """
    Two plots owing for May 2024.

    2/14 owes 1500 and its owner has an email; 5/3 owes 800 and its
    owner only has a phone.
    """
    first = Plot.objects.create(street='2', number='14')
    second = Plot.objects.create(street='5', number='3')

    with_email = Person.objects.create(
        full_name='Сидорова Анна Петровна',
        phone='+79123456789',
        email='sidorova@example.com',
    )
    phone_only = Person.objects.create(full_name='Петров Пётр Ильич', phone='+79005554433')
    PlotOwnership.objects.create(plot=first, person=with_email, is_primary=True)
    PlotOwnership.objects.create(plot=second, person=phone_only, is_primary=True)

    for plot, amount in ((first, '1500.00'), (second, '800.00')):
        Accrual.objects.create(
            plot=plot,
            period='2024-05',
            category=AccrualCategory.MEMBERSHIP,
            amount=Decimal(amount),
            created_by=notifications_accountant,
        )
    return first, second
