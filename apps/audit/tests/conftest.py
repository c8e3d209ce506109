import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Role


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def audit_admin(db):
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        role=Role.ADMIN,
    )


@pytest.fixture
def audit_chairman(db):
    return User.objects.create_user(
        email='chair@example.com',
        password='TestPass123!',
        role=Role.CHAIRMAN,
    )


@pytest.fixture
def admin_client(audit_admin):
    return _client_for(audit_admin)


@pytest.fixture
def chairman_client(audit_chairman):
    return _client_for(audit_chairman)
