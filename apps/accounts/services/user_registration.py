"""Resident registration service."""

import logging

from django.db import transaction, IntegrityError
from django.contrib.auth import get_user_model

from apps.accounts.models import Role
from apps.registry.services import redeem_invite_code, validate_invite_code, InviteCodeError

from .exceptions import UserRegistrationError

User = get_user_model()
logger = logging.getLogger(__name__)


@transaction.atomic
def register_user(
    *,
    email: str,
    password: str,
    invite_code: str,
    full_name: str = "",
    phone: str = ""
) -> User:
    """
    Register a resident account with a registry invite code.

    The code is validated before the user is created and consumed in the
    same transaction, so a failed registration leaves the code usable.

    Args:
        email: User's email address
        password: User's password (will be hashed)
        invite_code: ``XXXX-XXXX`` code issued by the board
        full_name: Optional name; defaults to the registry card's name
        phone: Optional phone; defaults to the registry card's phone

    Returns:
        Created User instance

    Raises:
        UserRegistrationError: If the code is invalid or the email is taken
    """
    try:
        invite = validate_invite_code(code=invite_code)
    except InviteCodeError as e:
        raise UserRegistrationError(str(e))

    person = invite.person
    if User.objects.filter(email__iexact=email).exists():
        raise UserRegistrationError("Пользователь с таким email уже зарегистрирован")

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            full_name=full_name or person.full_name,
            phone=phone or person.phone,
            role=Role.RESIDENT,
        )
    except IntegrityError:
        raise UserRegistrationError("Пользователь с таким email уже зарегистрирован")

    try:
        redeem_invite_code(code=invite_code, user=user)
    except InviteCodeError as e:
        raise UserRegistrationError(str(e))

    logger.info("Resident registered: %s (person %s)", user.email, person.id)
    return user
