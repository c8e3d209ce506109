"""Allowed status transitions of an appeal."""

from apps.appeals.models import AppealStatus

from .exceptions import InvalidTransitionError

ALLOWED_TRANSITIONS = {
    AppealStatus.NEW: (AppealStatus.IN_PROGRESS, AppealStatus.NEEDS_INFO, AppealStatus.CLOSED),
    AppealStatus.IN_PROGRESS: (AppealStatus.NEEDS_INFO, AppealStatus.CLOSED),
    AppealStatus.NEEDS_INFO: (AppealStatus.IN_PROGRESS, AppealStatus.CLOSED),
    AppealStatus.CLOSED: (),
}


def allowed_next_statuses(current: str) -> tuple:
    return ALLOWED_TRANSITIONS.get(current, ())


def can_transition(current: str, new: str) -> bool:
    """Staying in the same status is always allowed."""
    if current == new:
        return True
    return new in allowed_next_statuses(current)


def validate_transition(current: str, new: str) -> None:
    """
    Raises:
        InvalidTransitionError: The workflow does not allow ``current`` -> ``new``
    """
    if new not in AppealStatus.values:
        raise InvalidTransitionError(f"Недопустимый переход: неизвестный статус {new}")
    if not can_transition(current, new):
        raise InvalidTransitionError(
            f"Недопустимый переход: {AppealStatus(current).label} → {AppealStatus(new).label}"
        )
