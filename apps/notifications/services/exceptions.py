"""Custom exceptions for notification services."""


class NotificationServiceError(Exception):
    """Base exception for notification service errors."""
    pass


class AnnouncementNotFoundError(NotificationServiceError):
    pass


class DraftNotFoundError(NotificationServiceError):
    pass


class DraftStateError(NotificationServiceError):
    """Operation not allowed in the draft's current status."""
    pass


class UnknownTemplateError(NotificationServiceError):
    pass


class NotificationPermissionError(NotificationServiceError):
    pass
