from django.db import models
from django.db.models import Sum, Value, DecimalField
from django.db.models.functions import Coalesce
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


ZERO = Decimal('0.00')


def sum_amount(queryset):
    return queryset.aggregate(total=Sum('amount'))['total'] or ZERO


def _coalesced_sum(path):
    return Coalesce(Sum(path), Value(ZERO), output_field=DecimalField(max_digits=12, decimal_places=2))


class PeriodStatus(models.TextChoices):
    OPEN = 'open', 'Открыт'
    CLOSED = 'closed', 'Закрыт'


class AccrualCategory(models.TextChoices):
    MEMBERSHIP = 'membership', 'Членский взнос'
    ELECTRICITY = 'electricity', 'Электроэнергия'
    TARGET = 'target', 'Целевой взнос'


class AccrualStatus(models.TextChoices):
    OPEN = 'open', 'Не оплачено'
    PARTIALLY_PAID = 'partially_paid', 'Частично оплачено'
    PAID = 'paid', 'Оплачено'


class PaymentSource(models.TextChoices):
    MANUAL = 'manual', 'Вручную'
    IMPORT = 'import', 'Выписка'


class MatchStatus(models.TextChoices):
    MATCHED = 'matched', 'Сопоставлен'
    AMBIGUOUS = 'ambiguous', 'Несколько вариантов'
    UNMATCHED = 'unmatched', 'Не сопоставлен'
    NEEDS_REVIEW = 'needs_review', 'Требует проверки'


class AllocationStatus(models.TextChoices):
    ALLOCATED = 'allocated', 'Разнесён'
    PARTIALLY_ALLOCATED = 'partially_allocated', 'Разнесён частично'
    UNALLOCATED = 'unallocated', 'Не разнесён'


class AllocationKind(models.TextChoices):
    AUTO = 'auto', 'Автоматически'
    MANUAL = 'manual', 'Вручную'


class PenaltyStatus(models.TextChoices):
    ACTIVE = 'active', 'Действует'
    FROZEN = 'frozen', 'Заморожена'
    VOIDED = 'voided', 'Аннулирована'


class BillingPeriod(models.Model):
    """Accounting month. Closing it freezes a snapshot of the totals."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    period = models.CharField(max_length=7, unique=True)
    status = models.CharField(max_length=10, choices=PeriodStatus.choices, default=PeriodStatus.OPEN)
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='closed_periods'
    )
    snapshot = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'billing_periods'
        ordering = ['-period']

    def __str__(self):
        return f"{self.period} ({self.status})"

    @property
    def is_closed(self):
        return self.status == PeriodStatus.CLOSED


class AccrualQuerySet(models.QuerySet):

    def with_paid_amount(self):
        return self.annotate(paid_total=_coalesced_sum('allocations__amount'))


class Accrual(models.Model):
    """Charge of one category for one plot and month."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plot = models.ForeignKey('registry.Plot', on_delete=models.PROTECT, related_name='accruals')
    period = models.CharField(max_length=7, db_index=True)
    category = models.CharField(max_length=20, choices=AccrualCategory.choices)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(ZERO)]
    )
    tariff = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    note = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_accruals'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AccrualQuerySet.as_manager()

    class Meta:
        db_table = 'billing_accruals'
        unique_together = [['plot', 'period', 'category']]
        indexes = [
            models.Index(fields=['plot', 'period'], name='accruals_plot_period_idx'),
            models.Index(fields=['period', 'category'], name='accruals_period_cat_idx'),
        ]
        ordering = ['period', 'created_at']

    def __str__(self):
        return f"{self.plot} {self.period} {self.category}: {self.amount}"

    @property
    def paid_amount(self):
        paid = getattr(self, 'paid_total', None)
        if paid is None:
            paid = sum_amount(self.allocations.all())
        return paid

    @property
    def remaining(self):
        return max(ZERO, self.amount - self.paid_amount)

    @property
    def status(self):
        paid = self.paid_amount
        if paid <= ZERO:
            return AccrualStatus.OPEN
        if paid < self.amount:
            return AccrualStatus.PARTIALLY_PAID
        return AccrualStatus.PAID


class StatementImport(models.Model):
    """One uploaded bank statement."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    file_name = models.CharField(max_length=255)
    uploaded_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='statement_imports'
    )
    totals = models.JSONField(default=dict, blank=True)
    errors = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'billing_statement_imports'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.file_name} ({self.created_at:%Y-%m-%d})"


class PaymentQuerySet(models.QuerySet):

    def with_allocated_amount(self):
        return self.annotate(allocated_total=_coalesced_sum('allocations__amount'))


class Payment(models.Model):
    """Incoming money, entered by hand or imported from a statement."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plot = models.ForeignKey(
        'registry.Plot',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments'
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    paid_at = models.DateField(db_index=True)
    payer_name = models.CharField(max_length=255, blank=True)
    purpose = models.TextField(blank=True)
    external_ref = models.CharField(max_length=100, blank=True)
    source = models.CharField(max_length=10, choices=PaymentSource.choices, default=PaymentSource.MANUAL)

    # Statement matching
    match_status = models.CharField(max_length=20, choices=MatchStatus.choices, default=MatchStatus.UNMATCHED)
    match_method = models.CharField(max_length=30, blank=True)
    match_confidence = models.DecimalField(max_digits=3, decimal_places=2, null=True, blank=True)
    match_candidates = models.JSONField(default=list, blank=True)

    fingerprint = models.CharField(max_length=64, unique=True, null=True, blank=True, editable=False)
    statement_import = models.ForeignKey(
        StatementImport,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments'
    )
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='recorded_payments'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PaymentQuerySet.as_manager()

    class Meta:
        db_table = 'billing_payments'
        indexes = [
            models.Index(fields=['plot', 'paid_at'], name='payments_plot_paid_idx'),
            models.Index(fields=['match_status'], name='payments_match_idx'),
        ]
        ordering = ['-paid_at', '-created_at']

    def __str__(self):
        return f"{self.paid_at} {self.amount} ({self.payer_name or '—'})"

    @property
    def allocated_amount(self):
        allocated = getattr(self, 'allocated_total', None)
        if allocated is None:
            allocated = sum_amount(self.allocations.all())
        return allocated

    @property
    def remaining(self):
        return max(ZERO, self.amount - self.allocated_amount)

    @property
    def allocation_status(self):
        allocated = self.allocated_amount
        if allocated >= self.amount:
            return AllocationStatus.ALLOCATED
        if allocated > ZERO:
            return AllocationStatus.PARTIALLY_ALLOCATED
        return AllocationStatus.UNALLOCATED


class Allocation(models.Model):
    """Part of a payment applied to an accrual."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name='allocations')
    accrual = models.ForeignKey(Accrual, on_delete=models.CASCADE, related_name='allocations')
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    kind = models.CharField(max_length=10, choices=AllocationKind.choices, default=AllocationKind.AUTO)
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='allocations'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'billing_allocations'
        indexes = [
            models.Index(fields=['payment'], name='allocations_payment_idx'),
            models.Index(fields=['accrual'], name='allocations_accrual_idx'),
        ]
        ordering = ['created_at']

    def __str__(self):
        return f"{self.amount} → {self.accrual_id}"


class PenaltyAccrual(models.Model):
    """Late-payment penalty for one accrual, recomputed on every run."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    accrual = models.OneToOneField(Accrual, on_delete=models.CASCADE, related_name='penalty')
    plot = models.ForeignKey('registry.Plot', on_delete=models.CASCADE, related_name='penalties')
    period = models.CharField(max_length=7, db_index=True)
    as_of = models.DateField()
    days_overdue = models.PositiveIntegerField(default=0)
    rate = models.DecimalField(max_digits=6, decimal_places=4)
    base_amount = models.DecimalField(max_digits=12, decimal_places=2)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=10, choices=PenaltyStatus.choices, default=PenaltyStatus.ACTIVE)
    status_reason = models.TextField(blank=True)
    status_changed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='penalty_status_changes'
    )
    status_changed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_penalties'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'billing_penalty_accruals'
        indexes = [
            models.Index(fields=['plot', 'period'], name='penalties_plot_period_idx'),
            models.Index(fields=['status'], name='penalties_status_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Пеня {self.amount} ({self.period}, {self.status})"


class PaymentRequisites(models.Model):
    """
    Bank requisites printed on receipts and encoded in payment QR codes.

    Edits create a new version; the latest active version is in use.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    version = models.PositiveIntegerField(unique=True)
    recipient_name = models.CharField(max_length=255)
    bank_name = models.CharField(max_length=255)
    bik = models.CharField(max_length=9)
    account = models.CharField(max_length=20)
    corr_account = models.CharField(max_length=20)
    inn = models.CharField(max_length=12, blank=True)
    kpp = models.CharField(max_length=9, blank=True)
    purpose_template = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='requisites_versions'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'billing_payment_requisites'
        ordering = ['-version']

    def __str__(self):
        return f"{self.recipient_name} v{self.version}"
