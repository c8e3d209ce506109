"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    UserRegistrationError,
    InvalidCredentialsError,
    InactiveAccountError,
    UserNotFoundError,
    RoleChangeError,
)
from .user_registration import register_user
from .user_authentication import authenticate_user
from .account_management import update_profile, change_user_role

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'UserRegistrationError',
    'InvalidCredentialsError',
    'InactiveAccountError',
    'UserNotFoundError',
    'RoleChangeError',
    # Services
    'register_user',
    'authenticate_user',
    'update_profile',
    'change_user_role',
]
