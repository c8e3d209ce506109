"""Appeal lifecycle: creation, status, comments, assignment and listing."""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from apps.accounts import rbac
from apps.accounts.models import User, Role
from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event
from apps.appeals.models import (
    Appeal,
    AppealActivity,
    AppealComment,
    ActivityKind,
    AppealCategory,
    AppealStatus,
    AssigneeRole,
    DueAtSource,
)
from apps.registry.models import Plot

from .exceptions import (
    AppealNotFoundError,
    AppealPermissionError,
    AppealServiceError,
    AppealValidationError,
)
from .rule_engine import apply_rules
from .sla import calculate_due_at, DUE_SOON_HOURS
from .triage import triage_appeal
from .workflow import validate_transition

logger = logging.getLogger(__name__)

STATUS_CHANGE_ROLES = (Role.CHAIRMAN, Role.SECRETARY, Role.ADMIN)
ASSIGN_OTHERS_ROLES = (Role.CHAIRMAN, Role.ADMIN)
PSEUDO_STATUSES = ('overdue', 'due_soon')
LIST_STATUSES = tuple(AppealStatus.values) + PSEUDO_STATUSES
SECONDS_PER_DAY = 24 * 60 * 60


def _log_activity(appeal: Appeal, kind: str, actor: Optional[User] = None, **payload) -> AppealActivity:
    return AppealActivity.objects.create(appeal=appeal, actor=actor, kind=kind, payload=payload)


def _can(user: User, capability: str) -> bool:
    return rbac.has_capability(rbac.role_of(user), capability)


def _require(user: User, capability: str, message: str) -> None:
    if not _can(user, capability):
        logger.warning("Appeal action denied for %s: %s", getattr(user, 'email', None), capability)
        raise AppealPermissionError(message)


def _visible_appeals(user: User) -> QuerySet:
    """Office readers see every appeal, everyone else only their own."""
    appeals = Appeal.objects.select_related('author', 'assigned_to', 'plot')
    if _can(user, rbac.Capability.APPEALS_READ):
        return appeals
    return appeals.filter(author=user)


def _locked_appeal(appeal_id: UUID) -> Appeal:
    try:
        return Appeal.objects.select_for_update().get(id=appeal_id)
    except Appeal.DoesNotExist:
        raise AppealNotFoundError(f"Обращение {appeal_id} не найдено")


def _resolve_plot(author: User, plot_id: Optional[UUID]) -> Optional[Plot]:
    if plot_id:
        try:
            return Plot.objects.get(id=plot_id, is_active=True)
        except Plot.DoesNotExist:
            raise AppealValidationError("Участок не найден")

    # A resident with a single plot does not have to pick it
    plots = list(Plot.objects.filter(ownerships__person__user=author, is_active=True).distinct()[:2])
    return plots[0] if len(plots) == 1 else None


@transaction.atomic
def create_appeal(
    *,
    author: User,
    title: str,
    body: str,
    plot_id: Optional[UUID] = None,
    plot_number: str = '',
    author_name: str = '',
    author_phone: str = ''
) -> Appeal:
    """
    Submit a new appeal.

    Triage picks category, role and priority; routing rules run next and
    the SLA deadline of the category applies when no rule set one.

    Args:
        author: Submitting user
        title: Subject line
        body: Appeal text
        plot_id: Plot the appeal is about (optional)
        plot_number: Plot number as typed by the author
        author_name: Contact name, defaults to the account's full name
        author_phone: Contact phone, defaults to the account's phone

    Returns:
        Created Appeal

    Raises:
        AppealValidationError: Unknown plot
    """
    plot = _resolve_plot(author, plot_id)
    plot_number = (plot_number or '').strip() or (plot.number if plot else '')
    author_name = (author_name or '').strip() or author.full_name
    author_phone = (author_phone or '').strip() or author.phone

    triage = triage_appeal(
        title=title,
        body=body,
        plot_number=plot_number,
        author_name=author_name,
        author_phone=author_phone,
    )

    now = timezone.now()
    appeal = Appeal.objects.create(
        author=author,
        plot=plot,
        plot_number=plot_number,
        author_name=author_name,
        author_phone=author_phone,
        title=title.strip(),
        body=body.strip(),
        category=triage['category'],
        priority=triage['priority'],
        assigned_role=triage['assigned_role'],
        due_at=calculate_due_at(triage['category'], now),
        due_at_source=DueAtSource.AUTO,
    )
    _log_activity(
        appeal,
        ActivityKind.CREATED,
        actor=author,
        category=appeal.category,
        priority=appeal.priority,
        assigned_role=appeal.assigned_role,
        needs_info=triage['needs_info'],
    )
    apply_rules(appeal, now=now)

    logger.info("Appeal %s created by %s (%s)", appeal.id, author.email, appeal.category)
    return appeal


def get_appeal(*, appeal_id: UUID, user: User) -> Appeal:
    """
    Raises:
        AppealNotFoundError: Missing, or another resident's appeal
    """
    try:
        return _visible_appeals(user).get(id=appeal_id)
    except Appeal.DoesNotExist:
        raise AppealNotFoundError(f"Обращение {appeal_id} не найдено")


@transaction.atomic
def change_status(*, appeal_id: UUID, new_status: str, user: User, comment: str = '') -> Appeal:
    """
    Move an appeal through the workflow.

    Only the chairman, the secretary and the administrator may change a
    status. The optional comment is stored as a public reply.

    Raises:
        AppealNotFoundError: Unknown appeal
        AppealPermissionError: Role may not change statuses
        InvalidTransitionError: Workflow forbids the change
    """
    if rbac.role_of(user) not in STATUS_CHANGE_ROLES:
        raise AppealPermissionError("Менять статус обращения могут председатель, секретарь и администратор")

    appeal = _locked_appeal(appeal_id)
    old_status = appeal.status
    validate_transition(old_status, new_status)

    comment = (comment or '').strip()
    if comment:
        AppealComment.objects.create(appeal=appeal, author=user, author_role=user.role, body=comment)

    if new_status == old_status:
        return appeal

    appeal.status = new_status
    appeal.closed_at = timezone.now() if new_status == AppealStatus.CLOSED else None
    appeal.save()

    _log_activity(
        appeal,
        ActivityKind.STATUS_CHANGED,
        actor=user,
        old_status=old_status,
        new_status=new_status,
        comment=comment or None,
    )
    logger.info("Appeal %s: %s -> %s by %s", appeal.id, old_status, new_status, user.email)
    return appeal


@transaction.atomic
def add_comment(*, appeal_id: UUID, user: User, body: str, is_internal: bool = False) -> AppealComment:
    """
    Reply to an appeal.

    Board members with ``office.appeals.comment`` may reply to any appeal and
    leave internal notes. The author may reply to their own appeal; such
    replies are always public.

    Raises:
        AppealNotFoundError: Unknown appeal
        AppealPermissionError: Caller may not comment here
        AppealValidationError: Empty text
    """
    body = (body or '').strip()
    if not body:
        raise AppealValidationError("Комментарий не может быть пустым")

    appeal = _locked_appeal(appeal_id)
    is_staff = _can(user, rbac.Capability.APPEALS_COMMENT)
    if not is_staff:
        if appeal.author_id != user.id:
            raise AppealPermissionError("Комментировать обращение может только его автор или правление")
        is_internal = False

    comment = AppealComment.objects.create(
        appeal=appeal,
        author=user,
        author_role=user.role,
        body=body,
        is_internal=is_internal,
    )
    # Touch updated_at so the inbox sorts the appeal up
    appeal.save(update_fields=['updated_at'])

    _log_activity(
        appeal,
        ActivityKind.COMMENT_ADDED,
        actor=user,
        comment_id=str(comment.id),
        is_internal=is_internal,
    )
    return comment


def list_comments(*, appeal: Appeal, user: User) -> QuerySet:
    """Comments of an appeal; internal notes only for office readers."""
    comments = appeal.comments.select_related('author')
    if not _can(user, rbac.Capability.APPEALS_READ):
        comments = comments.filter(is_internal=False)
    return comments


@transaction.atomic
def assign_appeal(
    *,
    appeal_id: UUID,
    user: User,
    role: Optional[str] = None,
    assigned_to_id: Optional[UUID] = None,
    due_at: Optional[datetime] = None
) -> Appeal:
    """
    Assign an appeal to a role and/or a board member.

    Only the chairman and the administrator may assign to someone else;
    other board members may take an appeal themselves. A deadline passed
    here becomes a manual deadline; otherwise the deadline is kept.

    Raises:
        AppealNotFoundError: Unknown appeal
        AppealPermissionError: Caller may not assign
        AppealValidationError: Nothing to assign, or the assignee is not a board member
    """
    _require(user, rbac.Capability.APPEALS_STATUS, "Назначение обращений недоступно для вашей роли")
    if not role and not assigned_to_id and due_at is None:
        raise AppealValidationError("Укажите роль, исполнителя или срок")
    if role and role not in AssigneeRole.values:
        raise AppealValidationError(f"Неизвестная роль: {role}")

    assignee = None
    if assigned_to_id:
        if str(assigned_to_id) != str(user.id) and rbac.role_of(user) not in ASSIGN_OTHERS_ROLES:
            raise AppealPermissionError("Назначать других исполнителей могут председатель и администратор")
        try:
            assignee = User.objects.get(id=assigned_to_id, is_active=True)
        except User.DoesNotExist:
            raise AppealValidationError("Исполнитель не найден")
        if not rbac.has_capability(assignee.role, rbac.Capability.OFFICE_ACCESS):
            raise AppealValidationError("Исполнителем может быть только член правления")

    appeal = _locked_appeal(appeal_id)
    previous = {
        'role': appeal.assigned_role,
        'user_id': str(appeal.assigned_to_id) if appeal.assigned_to_id else None,
    }

    if assignee is not None:
        appeal.assigned_to = assignee
        appeal.assigned_at = timezone.now()
        if not role and assignee.role in AssigneeRole.values:
            role = assignee.role
    if role:
        appeal.assigned_role = role
    if due_at is not None:
        appeal.due_at = due_at
        appeal.due_at_source = DueAtSource.MANUAL
    appeal.save()

    if role or assignee is not None:
        _log_activity(
            appeal,
            ActivityKind.ASSIGNED,
            actor=user,
            role=appeal.assigned_role,
            user_id=str(assignee.id) if assignee else None,
            previous=previous,
        )
    if due_at is not None:
        _log_activity(appeal, ActivityKind.DUE_AT_SET, actor=user, due_at=due_at.isoformat(), source='manual')

    logger.info("Appeal %s assigned by %s", appeal.id, user.email)
    return appeal


@transaction.atomic
def unassign_appeal(*, appeal_id: UUID, user: User) -> Appeal:
    """
    Drop the personal assignee; the role stays.

    Raises:
        AppealPermissionError: Someone else's appeal and the caller is not chairman/admin
    """
    _require(user, rbac.Capability.APPEALS_STATUS, "Назначение обращений недоступно для вашей роли")

    appeal = _locked_appeal(appeal_id)
    if appeal.assigned_to_id != user.id and rbac.role_of(user) not in ASSIGN_OTHERS_ROLES:
        raise AppealPermissionError("Снять чужое назначение могут председатель и администратор")

    previous_id = appeal.assigned_to_id
    appeal.assigned_to = None
    appeal.assigned_at = None
    appeal.save()

    _log_activity(
        appeal,
        ActivityKind.ASSIGNED,
        actor=user,
        role=appeal.assigned_role,
        user_id=None,
        previous={'user_id': str(previous_id) if previous_id else None},
    )
    return appeal


@transaction.atomic
def change_category(*, appeal_id: UUID, category: str, user: User) -> Appeal:
    """
    Re-categorize an appeal.

    An SLA deadline (source ``auto``) is recomputed from the creation time
    for the new category; rule and manual deadlines are kept.

    Raises:
        AppealNotFoundError: Unknown appeal
        AppealPermissionError: Role may not edit appeals
        AppealValidationError: Unknown category
    """
    _require(user, rbac.Capability.APPEALS_STATUS, "Изменение обращений недоступно для вашей роли")
    if category not in AppealCategory.values:
        raise AppealValidationError(f"Неизвестная категория: {category}")

    appeal = _locked_appeal(appeal_id)
    old_category = appeal.category
    if old_category == category:
        return appeal

    appeal.category = category
    if appeal.due_at_source == DueAtSource.AUTO:
        appeal.due_at = calculate_due_at(category, appeal.created_at)
    appeal.save()

    _log_activity(
        appeal,
        ActivityKind.CATEGORY_CHANGED,
        actor=user,
        old_category=old_category,
        new_category=category,
        due_at=appeal.due_at.isoformat() if appeal.due_at else None,
    )
    return appeal


@transaction.atomic
def reapply_rules(*, appeal_id: UUID, user: User) -> Optional[dict]:
    """
    Run the routing rules again on an open appeal.

    Returns:
        The applied rule, or None when nothing matched

    Raises:
        AppealServiceError: The appeal is closed
    """
    _require(user, rbac.Capability.APPEALS_STATUS, "Изменение обращений недоступно для вашей роли")

    appeal = _locked_appeal(appeal_id)
    if appeal.is_closed:
        raise AppealServiceError("Обращение закрыто")
    return apply_rules(appeal)


def list_appeals(
    *,
    user: User,
    status: Optional[str] = None,
    q: str = '',
    assigned_to: Optional[str] = None,
    category: Optional[str] = None,
    now: Optional[datetime] = None
) -> QuerySet:
    """
    Appeals visible to ``user``.

    Args:
        status: A workflow status, or ``overdue`` / ``due_soon``
        q: Search in title, text, author name, phone and plot number
        assigned_to: ``me``, a role name or a user id
        category: Exact category
    """
    now = now or timezone.now()
    appeals = _visible_appeals(user)

    if status == 'overdue':
        appeals = appeals.exclude(status=AppealStatus.CLOSED).filter(due_at__lt=now)
    elif status == 'due_soon':
        appeals = appeals.exclude(status=AppealStatus.CLOSED).filter(
            due_at__gte=now,
            due_at__lte=now + timedelta(hours=DUE_SOON_HOURS),
        )
    elif status:
        appeals = appeals.filter(status=status)

    q = (q or '').strip()
    if q:
        appeals = appeals.filter(
            Q(title__icontains=q)
            | Q(body__icontains=q)
            | Q(author_name__icontains=q)
            | Q(author_phone__icontains=q)
            | Q(plot_number__icontains=q)
        )

    if assigned_to == 'me':
        appeals = appeals.filter(assigned_to=user)
    elif assigned_to in AssigneeRole.values:
        appeals = appeals.filter(assigned_role=assigned_to)
    elif assigned_to:
        appeals = appeals.filter(assigned_to_id=assigned_to)

    if category:
        appeals = appeals.filter(category=category)

    return appeals


def inbox_stats(*, user: User, now: Optional[datetime] = None) -> dict:
    """Counters for the office inbox header."""
    now = now or timezone.now()
    open_appeals = Appeal.objects.exclude(status=AppealStatus.CLOSED)
    return {
        'total_open': open_appeals.count(),
        'my_open': open_appeals.filter(assigned_to=user).count(),
        'overdue': open_appeals.filter(due_at__lt=now).count(),
        'due_soon': open_appeals.filter(
            due_at__gte=now,
            due_at__lte=now + timedelta(hours=DUE_SOON_HOURS),
        ).count(),
    }


def days_word(days: int) -> str:
    """Russian plural of "день"."""
    if 11 <= days % 100 <= 19:
        return 'дней'
    if days % 10 == 1:
        return 'день'
    if 2 <= days % 10 <= 4:
        return 'дня'
    return 'дней'


@transaction.atomic
def remind_overdue(*, user: User, request_id: str = '', now: Optional[datetime] = None) -> dict:
    """
    Record a reminder on every overdue appeal.

    The reminder goes to the personal assignee, or to the assigned role
    (secretary when none). The run is written to the audit log.

    Returns:
        {'overdue_count', 'appeal_ids'}
    """
    _require(user, rbac.Capability.APPEALS_STATUS, "Запуск напоминаний недоступен для вашей роли")
    now = now or timezone.now()

    overdue = list(
        Appeal.objects
        .select_for_update()
        .exclude(status=AppealStatus.CLOSED)
        .filter(due_at__lt=now)
        .order_by('due_at')
    )
    for appeal in overdue:
        days = max(1, math.ceil((now - appeal.due_at).total_seconds() / SECONDS_PER_DAY))
        _log_activity(
            appeal,
            ActivityKind.REMINDER_SENT,
            actor=user,
            message=f"Обращение «{appeal.title}» просрочено на {days} {days_word(days)}",
            overdue_days=days,
            target_user_id=str(appeal.assigned_to_id) if appeal.assigned_to_id else None,
            target_role=None if appeal.assigned_to_id else (appeal.assigned_role or AssigneeRole.SECRETARY.value),
        )

    appeal_ids = [str(appeal.id) for appeal in overdue]
    log_audit_event(
        actor=user,
        action=AuditAction.APPEALS_REMIND_OVERDUE,
        target_type='appeals',
        target_id='bulk',
        target_ids=appeal_ids,
        details={'total_overdue': len(overdue)},
        request_id=request_id,
    )
    logger.info("Overdue reminders: %d appeals", len(overdue))
    return {'overdue_count': len(overdue), 'appeal_ids': appeal_ids}
