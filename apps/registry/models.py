from django.db import models
from django.utils import timezone
import hashlib
import uuid


class PersonStatus(models.TextChoices):
    VERIFIED = 'verified', 'Подтверждён'
    PENDING = 'pending', 'На проверке'
    DRAFT = 'draft', 'Черновик'


class Plot(models.Model):
    """A land plot of the community, addressed by line (street) and number."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    street = models.CharField(max_length=50, blank=True, db_index=True)
    number = models.CharField(max_length=20, db_index=True)
    city_address = models.CharField(max_length=255, blank=True)
    cadastral_number = models.CharField(max_length=50, blank=True)
    area_sqm = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'plots'
        unique_together = [['street', 'number']]
        indexes = [
            models.Index(fields=['street', 'number'], name='plots_street_number_idx'),
        ]
        ordering = ['street', 'number']

    def __str__(self):
        return self.label

    @property
    def label(self):
        if self.street and self.number:
            return f"Линия {self.street}, участок {self.number}"
        if self.number:
            return f"Участок {self.number}"
        if self.city_address:
            return self.city_address
        return "—"

    def get_primary_owner(self):
        ownership = (
            self.ownerships
            .select_related('person')
            .filter(person__is_active=True)
            .order_by('-is_primary', 'created_at')
            .first()
        )
        return ownership.person if ownership else None


class Person(models.Model):
    """Owner or resident record in the registry."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    full_name = models.CharField(max_length=200, blank=True, db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    status = models.CharField(max_length=20, choices=PersonStatus.choices, default=PersonStatus.DRAFT)
    user = models.OneToOneField(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='person'
    )
    plots = models.ManyToManyField(Plot, through='PlotOwnership', related_name='owners')
    is_active = models.BooleanField(default=True)
    merged_into = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='merged_from'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'persons'
        indexes = [
            models.Index(fields=['status'], name='persons_status_idx'),
            models.Index(fields=['phone'], name='persons_phone_idx'),
        ]
        ordering = ['full_name']

    def __str__(self):
        return self.full_name or str(self.id)


class PlotOwnership(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plot = models.ForeignKey(Plot, on_delete=models.CASCADE, related_name='ownerships')
    person = models.ForeignKey(Person, on_delete=models.CASCADE, related_name='ownerships')
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'plot_ownerships'
        unique_together = [['plot', 'person']]
        ordering = ['-is_primary', 'created_at']

    def __str__(self):
        return f"{self.person} — {self.plot}"


def hash_invite_code(code: str) -> str:
    """Invite codes are stored hashed; compare on the normalised form."""
    normalized = (code or '').strip().upper()
    return hashlib.sha256(normalized.encode('utf-8')).hexdigest()


class InviteCode(models.Model):
    """Single-use code that lets an owner register a cabinet account."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    person = models.ForeignKey(Person, on_delete=models.CASCADE, related_name='invite_codes')
    code_hash = models.CharField(max_length=64, unique=True, editable=False)
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='issued_invite_codes'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    used_at = models.DateTimeField(null=True, blank=True)
    used_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='redeemed_invite_codes'
    )
    revoked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'invite_codes'
        indexes = [
            models.Index(fields=['person', 'created_at'], name='invite_codes_person_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Invite for {self.person} ({self.status})"

    @property
    def status(self):
        if self.used_at:
            return 'used'
        if self.revoked_at:
            return 'revoked'
        return 'active'

    def mark_used(self, user):
        self.used_at = timezone.now()
        self.used_by = user
        self.save(update_fields=['used_at', 'used_by'])


class PersonMergeHistory(models.Model):
    """Trace of registry cards merged into one."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    source_person_id = models.UUIDField()
    source_full_name = models.CharField(max_length=200, blank=True)
    target_person = models.ForeignKey(Person, on_delete=models.CASCADE, related_name='merge_history')
    merged_by = models.ForeignKey('accounts.User', on_delete=models.SET_NULL, null=True, related_name='person_merges')
    reason = models.TextField(blank=True)
    moved_ownerships = models.PositiveIntegerField(default=0)
    merged_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'person_merge_history'
        ordering = ['-merged_at']

    def __str__(self):
        return f"{self.source_full_name} → {self.target_person}"
