"""Login service."""

import logging

from django.db import transaction
from django.contrib.auth import get_user_model
from django.utils import timezone

from .exceptions import InvalidCredentialsError, InactiveAccountError

User = get_user_model()
logger = logging.getLogger(__name__)


@transaction.atomic
def authenticate_user(*, email: str, password: str) -> User:
    """
    Check email/password and stamp last_login.

    The row is locked while last_login is written.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        InactiveAccountError: Account is deactivated
    """
    try:
        user = User.objects.select_for_update().get(email__iexact=email.strip())
    except User.DoesNotExist:
        raise InvalidCredentialsError("Неверный email или пароль")

    if not user.check_password(password):
        logger.warning("Failed login for %s", email)
        raise InvalidCredentialsError("Неверный email или пароль")

    if not user.is_active:
        raise InactiveAccountError("Учётная запись отключена")

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    return user
