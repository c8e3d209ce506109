"""Errors raised by account services. Views map them to HTTP statuses."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    pass


class UserRegistrationError(AccountsServiceError):
    """Invite code rejected or email already registered."""
    pass


class InvalidCredentialsError(AccountsServiceError):
    """Unknown email or wrong password."""
    pass


class InactiveAccountError(AccountsServiceError):
    """Account was switched off by the board."""
    pass


class UserNotFoundError(AccountsServiceError):
    pass


class RoleChangeError(AccountsServiceError):
    """Unknown role, or an administrator removing their own admin role."""
    pass
