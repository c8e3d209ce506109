from django.db import models
from decimal import Decimal
import uuid


class AnnouncementStatus(models.TextChoices):
    DRAFT = 'draft', 'Черновик'
    PUBLISHED = 'published', 'Опубликовано'


class Audience(models.TextChoices):
    ALL = 'all', 'Все'
    RESIDENTS = 'residents', 'Жители'
    STAFF = 'staff', 'Правление'


class Channel(models.TextChoices):
    EMAIL = 'email', 'Email'
    TELEGRAM = 'telegram', 'Telegram'
    SMS = 'sms', 'SMS'
    PRINT = 'print', 'Печать'


class DraftStatus(models.TextChoices):
    DRAFT = 'draft', 'Черновик'
    APPROVED = 'approved', 'Одобрено'
    SENDING = 'sending', 'Отправляется'
    SENT = 'sent', 'Отправлено'
    FAILED = 'failed', 'Ошибка'
    SKIPPED = 'skipped', 'Пропущено'
    CANCELLED = 'cancelled', 'Отменено'


# Drafts in these statuses no longer block generating a new one
FINAL_DRAFT_STATUSES = (DraftStatus.SENT, DraftStatus.SKIPPED, DraftStatus.CANCELLED)


class Announcement(models.Model):
    """Board announcement shown in the cabinet and the office."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    body = models.TextField()
    status = models.CharField(
        max_length=20,
        choices=AnnouncementStatus.choices,
        default=AnnouncementStatus.DRAFT,
        db_index=True
    )
    audience = models.CharField(max_length=20, choices=Audience.choices, default=Audience.ALL)
    author = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='announcements'
    )
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'announcements'
        indexes = [
            models.Index(fields=['status', '-published_at'], name='announcements_status_idx'),
        ]
        ordering = ['-published_at', '-created_at']

    def __str__(self):
        return self.title

    @property
    def is_published(self):
        return self.status == AnnouncementStatus.PUBLISHED


class NotificationDraft(models.Model):
    """
    A rendered message waiting for approval and sending.

    Plot label and resident name are copied at generation time so the
    journal still reads correctly after the registry changes.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plot = models.ForeignKey(
        'registry.Plot',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notification_drafts'
    )
    person = models.ForeignKey(
        'registry.Person',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notification_drafts'
    )
    plot_label = models.CharField(max_length=200, blank=True)
    resident_name = models.CharField(max_length=200, blank=True)

    channel = models.CharField(max_length=20, choices=Channel.choices, default=Channel.EMAIL)
    recipient = models.CharField(max_length=254, blank=True)
    template_id = models.CharField(max_length=50)
    subject = models.CharField(max_length=255, blank=True)
    body = models.TextField(blank=True)
    period = models.CharField(max_length=7, blank=True, db_index=True)
    debt_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    status = models.CharField(
        max_length=20,
        choices=DraftStatus.choices,
        default=DraftStatus.DRAFT,
        db_index=True
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)
    skip_reason = models.CharField(max_length=50, blank=True)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    approved_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'notification_drafts'
        indexes = [
            models.Index(fields=['status', 'created_at'], name='drafts_status_created_idx'),
            models.Index(fields=['plot', 'period', 'template_id'], name='drafts_plot_period_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.template_id} → {self.plot_label or self.recipient}"
