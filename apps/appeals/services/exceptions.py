"""
Domain-specific exceptions for appeals app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class AppealServiceError(Exception):
    """Base exception for all appeal service errors."""
    pass


class AppealNotFoundError(AppealServiceError):
    """Raised when an appeal does not exist or is not visible to the caller."""
    pass


class InvalidTransitionError(AppealServiceError):
    """Raised when a status change is not allowed by the workflow."""
    pass


class AppealPermissionError(AppealServiceError):
    """Raised when the caller's role may not perform the action."""
    pass


class AppealValidationError(AppealServiceError):
    """Raised when appeal input is invalid (unknown assignee, empty comment)."""
    pass
