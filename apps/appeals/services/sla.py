"""Response deadlines (SLA) of appeals."""

from datetime import datetime, timedelta
from typing import Optional

from django.utils import timezone

from apps.appeals.models import AppealCategory, AppealStatus

SLA_HOURS = {
    AppealCategory.ACCESS: 12,
    AppealCategory.ELECTRICITY: 24,
    AppealCategory.INSUFFICIENT_DATA: 24,
    AppealCategory.FINANCE: 48,
    AppealCategory.DOCUMENTS: 72,
    AppealCategory.MEMBERSHIP: 72,
    AppealCategory.GENERAL: 72,
}
DEFAULT_SLA_HOURS = 72
DUE_SOON_HOURS = 48


def sla_hours(category: str) -> int:
    return SLA_HOURS.get(category, DEFAULT_SLA_HOURS)


def calculate_due_at(category: str, now: Optional[datetime] = None) -> datetime:
    """Deadline for a new (or re-categorized) appeal counted from ``now``."""
    now = now or timezone.now()
    return now + timedelta(hours=sla_hours(category))


def is_overdue(due_at: Optional[datetime], status: str, now: Optional[datetime] = None) -> bool:
    if due_at is None or status == AppealStatus.CLOSED:
        return False
    return due_at < (now or timezone.now())


def is_due_soon(due_at: Optional[datetime], status: str, now: Optional[datetime] = None) -> bool:
    """Not overdue yet, but due within the next 48 hours."""
    now = now or timezone.now()
    if due_at is None or status == AppealStatus.CLOSED or is_overdue(due_at, status, now):
        return False
    return due_at <= now + timedelta(hours=DUE_SOON_HOURS)
