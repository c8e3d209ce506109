"""
Domain-specific exceptions for registry app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class RegistryServiceError(Exception):
    """Base exception for all registry service errors."""
    pass


class PlotNotFoundError(RegistryServiceError):
    """Raised when a plot does not exist."""
    pass


class DuplicatePlotError(RegistryServiceError):
    """Raised when a plot with the same line and number already exists."""
    pass


class PersonNotFoundError(RegistryServiceError):
    """Raised when a registry person does not exist or was merged away."""
    pass


class OwnershipNotFoundError(RegistryServiceError):
    """Raised when detaching an owner who is not linked to the plot."""
    pass


class InvalidMergeError(RegistryServiceError):
    """Raised when merge parameters are invalid."""
    pass


class InviteCodeError(RegistryServiceError):
    """Base class for invite code problems."""
    pass


class InviteCodeNotFoundError(InviteCodeError):
    """Raised when an invite code is unknown or revoked."""
    pass


class InviteCodeUsedError(InviteCodeError):
    """Raised when an invite code has already been redeemed."""
    pass


class RegistryImportError(RegistryServiceError):
    """Raised when a registry file cannot be parsed at all."""
    pass
