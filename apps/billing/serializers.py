from decimal import Decimal

from rest_framework import serializers

from .models import (
    BillingPeriod,
    Accrual,
    AccrualCategory,
    Payment,
    MatchStatus,
    Allocation,
    PenaltyAccrual,
    PenaltyStatus,
    PaymentRequisites,
    StatementImport,
)
from .services.period_dates import parse_period
from .services.exceptions import InvalidPeriodError
from .services.reconciliation import BULK_MATCH_ACTIONS


def _validate_period(value):
    try:
        parse_period(value)
    except InvalidPeriodError as e:
        raise serializers.ValidationError(str(e))
    return value


# =============================================================================
# Input Serializers
# =============================================================================

class PeriodField(serializers.CharField):
    """``YYYY-MM`` period."""

    def __init__(self, **kwargs):
        kwargs.setdefault('max_length', 7)
        super().__init__(**kwargs)
        self.validators.append(_validate_period)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class RequiredReasonSerializer(serializers.Serializer):
    reason = serializers.CharField()


class AccrualRunSerializer(serializers.Serializer):
    period = PeriodField()
    category = serializers.ChoiceField(choices=AccrualCategory.choices)
    tariff = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0)
    fixed_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0
    )
    plot_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)
    plot_query = serializers.CharField(required=False, allow_blank=True, default='')


class AccrualGenerateSerializer(AccrualRunSerializer):
    note = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class AccrualFilterSerializer(serializers.Serializer):
    period = PeriodField(required=False)
    plot = serializers.UUIDField(required=False)
    category = serializers.ChoiceField(choices=AccrualCategory.choices, required=False)


class PaymentInputSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    paid_at = serializers.DateField()
    plot_id = serializers.UUIDField(required=False, allow_null=True)
    payer_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    purpose = serializers.CharField(required=False, allow_blank=True, default='')
    external_ref = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class PaymentFilterSerializer(serializers.Serializer):
    plot = serializers.UUIDField(required=False)
    match_status = serializers.ChoiceField(choices=MatchStatus.choices, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    q = serializers.CharField(required=False, allow_blank=True, default='')


class ManualMatchSerializer(serializers.Serializer):
    plot_id = serializers.UUIDField()


class BulkMatchSerializer(serializers.Serializer):
    payment_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    action = serializers.ChoiceField(choices=[(a, a) for a in BULK_MATCH_ACTIONS])


class StatementUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class AutoAllocateSerializer(serializers.Serializer):
    plot_id = serializers.UUIDField(required=False, allow_null=True)


class ManualAllocateSerializer(serializers.Serializer):
    payment_id = serializers.UUIDField()
    accrual_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ReconcileQuerySerializer(serializers.Serializer):
    period = PeriodField(required=False)
    min_debt = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)


class PenaltyRunSerializer(serializers.Serializer):
    as_of = serializers.DateField(required=False)
    rate = serializers.DecimalField(max_digits=6, decimal_places=4, required=False, min_value=0)
    min_penalty = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)


class PenaltyFilterSerializer(serializers.Serializer):
    period = PeriodField(required=False)
    plot = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=PenaltyStatus.choices, required=False)


class RequisitesInputSerializer(serializers.ModelSerializer):

    class Meta:
        model = PaymentRequisites
        fields = [
            'recipient_name',
            'bank_name',
            'bik',
            'account',
            'corr_account',
            'inn',
            'kpp',
            'purpose_template',
        ]

    def validate_bik(self, value):
        if not value.isdigit() or len(value) != 9:
            raise serializers.ValidationError('БИК состоит из 9 цифр')
        return value

    def validate_account(self, value):
        if not value.isdigit() or len(value) != 20:
            raise serializers.ValidationError('Счёт состоит из 20 цифр')
        return value


# =============================================================================
# Output Serializers
# =============================================================================

class BillingPeriodSerializer(serializers.ModelSerializer):
    closed_by_email = serializers.EmailField(source='closed_by.email', read_only=True, default=None)

    class Meta:
        model = BillingPeriod
        fields = ['id', 'period', 'status', 'closed_at', 'closed_by_email', 'snapshot', 'updated_at']
        read_only_fields = fields


class AccrualSerializer(serializers.ModelSerializer):
    plot_label = serializers.CharField(source='plot.label', read_only=True)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    remaining = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    status = serializers.CharField(read_only=True)

    class Meta:
        model = Accrual
        fields = [
            'id',
            'plot',
            'plot_label',
            'period',
            'category',
            'amount',
            'tariff',
            'note',
            'paid_amount',
            'remaining',
            'status',
            'created_at',
        ]
        read_only_fields = fields


class AccrualPreviewRowSerializer(serializers.Serializer):
    plot_id = serializers.UUIDField()
    plot_label = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    exists = serializers.BooleanField()


class AllocationSerializer(serializers.ModelSerializer):
    period = serializers.CharField(source='accrual.period', read_only=True)
    category = serializers.CharField(source='accrual.category', read_only=True)

    class Meta:
        model = Allocation
        fields = ['id', 'payment', 'accrual', 'period', 'category', 'amount', 'kind', 'created_at']
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    plot_label = serializers.CharField(source='plot.label', read_only=True, default=None)
    allocated_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    remaining = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    allocation_status = serializers.CharField(read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id',
            'plot',
            'plot_label',
            'amount',
            'paid_at',
            'payer_name',
            'purpose',
            'external_ref',
            'source',
            'match_status',
            'match_method',
            'match_confidence',
            'match_candidates',
            'allocated_amount',
            'remaining',
            'allocation_status',
            'created_at',
        ]
        read_only_fields = fields


class PaymentDetailSerializer(PaymentSerializer):
    allocations = AllocationSerializer(many=True, read_only=True)

    class Meta(PaymentSerializer.Meta):
        fields = PaymentSerializer.Meta.fields + ['allocations']
        read_only_fields = fields


class StatementImportSerializer(serializers.ModelSerializer):

    class Meta:
        model = StatementImport
        fields = ['id', 'file_name', 'totals', 'errors', 'created_at']
        read_only_fields = fields


class SummarySerializer(serializers.Serializer):
    period = serializers.CharField()
    accrued = serializers.DecimalField(max_digits=14, decimal_places=2)
    paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    debt = serializers.DecimalField(max_digits=14, decimal_places=2)
    payments_count = serializers.IntegerField()
    payments_total = serializers.DecimalField(max_digits=14, decimal_places=2)
    debtors_count = serializers.IntegerField()


class DebtorSerializer(serializers.Serializer):
    plot_id = serializers.UUIDField()
    plot_label = serializers.CharField()
    owner_name = serializers.CharField()
    accrued = serializers.DecimalField(max_digits=14, decimal_places=2)
    paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    debt = serializers.DecimalField(max_digits=14, decimal_places=2)


class BalanceSerializer(DebtorSerializer):
    credit = serializers.DecimalField(max_digits=14, decimal_places=2)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class PenaltyPreviewRowSerializer(serializers.Serializer):
    accrual_id = serializers.UUIDField()
    plot_id = serializers.UUIDField()
    plot_label = serializers.CharField()
    period = serializers.CharField()
    remaining = serializers.DecimalField(max_digits=12, decimal_places=2)
    days_overdue = serializers.IntegerField()
    rate = serializers.DecimalField(max_digits=6, decimal_places=4)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class PenaltySerializer(serializers.ModelSerializer):
    plot_label = serializers.CharField(source='plot.label', read_only=True)

    class Meta:
        model = PenaltyAccrual
        fields = [
            'id',
            'accrual',
            'plot',
            'plot_label',
            'period',
            'as_of',
            'days_overdue',
            'rate',
            'base_amount',
            'amount',
            'status',
            'status_reason',
            'status_changed_at',
            'created_at',
        ]
        read_only_fields = fields


class RequisitesSerializer(serializers.ModelSerializer):

    class Meta:
        model = PaymentRequisites
        fields = [
            'id',
            'version',
            'recipient_name',
            'bank_name',
            'bik',
            'account',
            'corr_account',
            'inn',
            'kpp',
            'purpose_template',
            'created_at',
        ]
        read_only_fields = fields


class CabinetAccrualSerializer(AccrualSerializer):

    class Meta(AccrualSerializer.Meta):
        fields = ['id', 'period', 'category', 'amount', 'paid_amount', 'remaining', 'status']
        read_only_fields = fields


class CabinetPaymentSerializer(PaymentSerializer):

    class Meta(PaymentSerializer.Meta):
        fields = ['id', 'amount', 'paid_at', 'purpose', 'allocation_status']
        read_only_fields = fields


class CabinetPlotSerializer(serializers.Serializer):
    plot_id = serializers.UUIDField(source='plot.id')
    plot_label = serializers.CharField(source='plot.label')
    accruals = CabinetAccrualSerializer(many=True)
    payments = CabinetPaymentSerializer(many=True)
    accrued = serializers.DecimalField(max_digits=14, decimal_places=2)
    paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    penalties = serializers.DecimalField(max_digits=14, decimal_places=2)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class CabinetQRQuerySerializer(serializers.Serializer):
    plot = serializers.UUIDField()
