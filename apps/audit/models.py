from django.db import models
import uuid


class AuditAction(models.TextChoices):
    PENALTY_APPLY = 'penalty.apply', 'Начисление пени'
    PENALTY_RECALC = 'penalty.recalc', 'Пересчёт пени'
    PENALTY_VOID = 'penalty.void', 'Аннулирование пени'
    PENALTY_UNVOID = 'penalty.unvoid', 'Восстановление пени'
    PENALTY_FREEZE = 'penalty.freeze', 'Заморозка пени'
    PENALTY_UNFREEZE = 'penalty.unfreeze', 'Разморозка пени'
    ALLOCATION_MANUAL = 'allocation.manual', 'Ручное разнесение'
    ALLOCATION_UNAPPLY = 'allocation.unapply', 'Отмена разнесения'
    IMPORT_PAYMENTS = 'import.payments', 'Импорт выписки'
    APPEALS_REMIND_OVERDUE = 'appeals.remindOverdue', 'Напоминание о просроченных обращениях'
    PERIOD_CLOSE = 'period.close', 'Закрытие периода'
    PERIOD_REOPEN = 'period.reopen', 'Открытие периода'
    PERIOD_CLOSED_CHANGE = 'period.closed_change', 'Изменение закрытого периода'
    USER_ROLE_CHANGE = 'user.role_change', 'Смена роли'
    REGISTRY_MERGE = 'registry.merge', 'Объединение карточек'


class AuditLog(models.Model):
    """Append-only record of a sensitive office action."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_events'
    )
    # Role is copied so the record survives later role changes
    actor_role = models.CharField(max_length=20, blank=True)
    action = models.CharField(max_length=50, choices=AuditAction.choices, db_index=True)
    target_type = models.CharField(max_length=50, blank=True)
    target_id = models.CharField(max_length=64, blank=True)
    target_ids = models.JSONField(default=list, blank=True)
    details = models.JSONField(default=dict, blank=True)
    request_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_log'
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['target_type', 'target_id'], name='audit_target_idx'),
            models.Index(fields=['created_at'], name='audit_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.action} ({self.target_type}:{self.target_id})"
