"""Audit log writer and query helpers."""

import logging
from datetime import date
from typing import Iterable, Optional

from django.db.models import QuerySet

from .models import AuditLog

logger = logging.getLogger(__name__)


def request_id_from(request) -> str:
    """Correlation id supplied by the proxy, if any."""
    if request is None:
        return ''
    return request.headers.get('X-Request-ID', '')[:64]


def log_audit_event(
    *,
    actor,
    action: str,
    target_type: str = '',
    target_id='',
    target_ids: Optional[Iterable] = None,
    details: Optional[dict] = None,
    request_id: str = ''
) -> AuditLog:
    """
    Append an entry to the audit log.

    Args:
        actor: User performing the action (None for system jobs)
        action: One of AuditAction values
        target_type: Kind of object affected ('payment', 'accrual', ...)
        target_id: Primary object id
        target_ids: Ids of every affected object for bulk actions
        details: JSON-serialisable context
        request_id: Correlation id of the HTTP request

    Returns:
        Created AuditLog entry
    """
    entry = AuditLog.objects.create(
        actor=actor if actor is not None and actor.is_authenticated else None,
        actor_role=getattr(actor, 'role', '') or '',
        action=action,
        target_type=target_type,
        target_id=str(target_id) if target_id else '',
        target_ids=[str(i) for i in (target_ids or [])],
        details=details or {},
        request_id=request_id,
    )
    logger.info(
        "audit action=%s target=%s:%s actor=%s",
        action, target_type, entry.target_id, getattr(actor, 'email', 'system'),
    )
    return entry


def list_audit_events(
    *,
    action: Optional[str] = None,
    actor_id=None,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None
) -> QuerySet:
    """Filter the audit log; every argument is optional."""
    queryset = AuditLog.objects.select_related('actor')

    if action:
        queryset = queryset.filter(action=action)
    if actor_id:
        queryset = queryset.filter(actor_id=actor_id)
    if target_type:
        queryset = queryset.filter(target_type=target_type)
    if target_id:
        queryset = queryset.filter(target_id=str(target_id))
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    return queryset
