"""
Announcement service.

Staff with ``office.announcements.write`` create announcements and
those with ``office.announcements.edit`` change or publish them. Readers
only ever see published ones addressed to their audience.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.accounts import rbac
from apps.accounts.models import User
from apps.notifications.models import Announcement, AnnouncementStatus, Audience

from .exceptions import AnnouncementNotFoundError, NotificationPermissionError

logger = logging.getLogger(__name__)


def _require(user: User, capability: str) -> None:
    if not rbac.has_capability(rbac.role_of(user), capability):
        raise NotificationPermissionError(rbac.forbidden_message('forbidden'))


def audience_for(user: User) -> Optional[str]:
    """Audience the viewer belongs to besides ``all``."""
    if not user or not user.is_authenticated:
        return None
    return Audience.STAFF if user.is_office_staff else Audience.RESIDENTS


def _get(announcement_id: UUID) -> Announcement:
    try:
        return Announcement.objects.select_for_update().get(id=announcement_id)
    except Announcement.DoesNotExist:
        raise AnnouncementNotFoundError(f"Объявление {announcement_id} не найдено")


@transaction.atomic
def create_announcement(
    *,
    author: User,
    title: str,
    body: str,
    audience: str = Audience.ALL,
    publish: bool = False,
) -> Announcement:
    """
    Raises:
        NotificationPermissionError: Author cannot write announcements
    """
    _require(author, rbac.Capability.ANNOUNCEMENTS_WRITE)

    announcement = Announcement.objects.create(
        title=title.strip(),
        body=body,
        audience=audience,
        author=author,
        status=AnnouncementStatus.PUBLISHED if publish else AnnouncementStatus.DRAFT,
        published_at=timezone.now() if publish else None,
    )
    logger.info("Announcement %s created by %s", announcement.id, author.email)
    return announcement


@transaction.atomic
def update_announcement(*, announcement_id: UUID, user: User, **fields) -> Announcement:
    """
    Change title, body or audience.

    Raises:
        AnnouncementNotFoundError
        NotificationPermissionError
    """
    _require(user, rbac.Capability.ANNOUNCEMENTS_EDIT)
    announcement = _get(announcement_id)

    for field in ('title', 'body', 'audience'):
        if field in fields and fields[field] is not None:
            setattr(announcement, field, fields[field])
    announcement.save()
    return announcement


@transaction.atomic
def delete_announcement(*, announcement_id: UUID, user: User) -> None:
    _require(user, rbac.Capability.ANNOUNCEMENTS_EDIT)
    announcement = _get(announcement_id)
    announcement.delete()
    logger.info("Announcement %s deleted by %s", announcement_id, user.email)


@transaction.atomic
def toggle_publish(*, announcement_id: UUID, user: User) -> Announcement:
    """Publish a draft or take a published announcement back to draft."""
    _require(user, rbac.Capability.ANNOUNCEMENTS_EDIT)
    announcement = _get(announcement_id)

    if announcement.is_published:
        announcement.status = AnnouncementStatus.DRAFT
        announcement.published_at = None
    else:
        announcement.status = AnnouncementStatus.PUBLISHED
        announcement.published_at = timezone.now()
    announcement.save(update_fields=['status', 'published_at', 'updated_at'])

    logger.info("Announcement %s is now %s", announcement.id, announcement.status)
    return announcement


def list_announcements(*, status: Optional[str] = None, q: str = '') -> QuerySet:
    """Office view: every announcement, drafts included."""
    queryset = Announcement.objects.select_related('author')
    if status:
        queryset = queryset.filter(status=status)
    if q:
        queryset = queryset.filter(Q(title__icontains=q) | Q(body__icontains=q))
    return queryset


def list_visible(*, user: User, q: str = '') -> QuerySet:
    """Published announcements for ``all`` and the viewer's own audience."""
    audiences = [Audience.ALL]
    own = audience_for(user)
    if own:
        audiences.append(own)

    queryset = Announcement.objects.filter(
        status=AnnouncementStatus.PUBLISHED,
        audience__in=audiences,
    )
    if q:
        queryset = queryset.filter(Q(title__icontains=q) | Q(body__icontains=q))
    return queryset.order_by('-published_at')
