from django.db import models
import uuid


class AppealCategory(models.TextChoices):
    ELECTRICITY = 'electricity', 'Электроэнергия'
    FINANCE = 'finance', 'Взносы и оплата'
    DOCUMENTS = 'documents', 'Документы'
    ACCESS = 'access', 'Доступ'
    MEMBERSHIP = 'membership', 'Членство'
    INSUFFICIENT_DATA = 'insufficient_data', 'Недостаточно данных'
    GENERAL = 'general', 'Общее'


class AppealPriority(models.TextChoices):
    LOW = 'low', 'Низкий'
    MEDIUM = 'medium', 'Средний'
    HIGH = 'high', 'Высокий'


class AppealStatus(models.TextChoices):
    NEW = 'new', 'Новое'
    IN_PROGRESS = 'in_progress', 'В работе'
    NEEDS_INFO = 'needs_info', 'Требуются данные'
    CLOSED = 'closed', 'Закрыто'


class AssigneeRole(models.TextChoices):
    CHAIRMAN = 'chairman', 'Председатель'
    SECRETARY = 'secretary', 'Секретарь'
    ACCOUNTANT = 'accountant', 'Бухгалтер'
    ADMIN = 'admin', 'Администратор'


class DueAtSource(models.TextChoices):
    AUTO = 'auto', 'По SLA'
    RULE = 'rule', 'По правилу'
    MANUAL = 'manual', 'Вручную'


class ActivityKind(models.TextChoices):
    CREATED = 'created', 'Создано'
    RULE_APPLIED = 'rule_applied', 'Применено правило'
    ASSIGNED = 'assigned', 'Назначено'
    STATUS_CHANGED = 'status_changed', 'Смена статуса'
    DUE_AT_SET = 'due_at_set', 'Установлен срок'
    COMMENT_ADDED = 'comment_added', 'Комментарий'
    CATEGORY_CHANGED = 'category_changed', 'Смена категории'
    REMINDER_SENT = 'reminder_sent', 'Напоминание'


class Appeal(models.Model):
    """
    A request submitted by a resident and routed to a board role.

    Category, priority and assignee role come from triage and the rule
    engine on creation; the office can change them afterwards.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    author = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='appeals'
    )
    plot = models.ForeignKey(
        'registry.Plot',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='appeals'
    )
    # Free-text copies of what the author typed
    plot_number = models.CharField(max_length=50, blank=True)
    author_name = models.CharField(max_length=200, blank=True)
    author_phone = models.CharField(max_length=32, blank=True)

    title = models.CharField(max_length=200)
    body = models.TextField()

    category = models.CharField(
        max_length=30,
        choices=AppealCategory.choices,
        default=AppealCategory.GENERAL,
        db_index=True
    )
    priority = models.CharField(max_length=10, choices=AppealPriority.choices, default=AppealPriority.MEDIUM)
    status = models.CharField(
        max_length=20,
        choices=AppealStatus.choices,
        default=AppealStatus.NEW,
        db_index=True
    )

    assigned_role = models.CharField(max_length=20, choices=AssigneeRole.choices, blank=True)
    assigned_to = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_appeals'
    )
    assigned_at = models.DateTimeField(null=True, blank=True)
    due_at = models.DateTimeField(null=True, blank=True, db_index=True)
    due_at_source = models.CharField(max_length=10, choices=DueAtSource.choices, default=DueAtSource.AUTO)

    closed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appeals'
        indexes = [
            models.Index(fields=['status', 'due_at'], name='appeals_status_due_idx'),
            models.Index(fields=['assigned_role', 'status'], name='appeals_role_status_idx'),
            models.Index(fields=['-updated_at'], name='appeals_updated_idx'),
        ]
        ordering = ['-updated_at']

    def __str__(self):
        return f"{self.title} ({self.get_status_display()})"

    @property
    def is_closed(self):
        return self.status == AppealStatus.CLOSED


class AppealComment(models.Model):
    """Reply on an appeal. Internal comments are hidden from the author."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appeal = models.ForeignKey(Appeal, on_delete=models.CASCADE, related_name='comments')
    author = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='appeal_comments'
    )
    author_role = models.CharField(max_length=20, blank=True)
    body = models.TextField()
    is_internal = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'appeal_comments'
        ordering = ['-created_at']

    def __str__(self):
        return f"Comment on {self.appeal_id}"


class AppealActivity(models.Model):
    """History entry of an appeal. ``actor`` is empty for automatic rules."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    appeal = models.ForeignKey(Appeal, on_delete=models.CASCADE, related_name='activity')
    actor = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    kind = models.CharField(max_length=30, choices=ActivityKind.choices)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'appeal_activity'
        indexes = [
            models.Index(fields=['appeal', 'created_at'], name='appeal_activity_appeal_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.kind} on {self.appeal_id}"
