from rest_framework import serializers

from apps.billing.models import AccrualCategory


def _money():
    return serializers.DecimalField(max_digits=14, decimal_places=2)


# =============================================================================
# Input Serializers (Query Parameter Validation)
# =============================================================================

PERIOD_REGEX = r'^\d{4}-(0[1-9]|1[0-2])$'


class PeriodRangeQuerySerializer(serializers.Serializer):
    """
    Query Parameters:
        from (str): First month, YYYY-MM
        to (str): Last month, YYYY-MM
    """

    period_from = serializers.RegexField(PERIOD_REGEX, required=False)
    period_to = serializers.RegexField(PERIOD_REGEX, required=False)

    def to_internal_value(self, data):
        # ``from`` is a keyword, so the query names are mapped by hand
        data = {
            key: value for key, value in (
                ('period_from', data.get('from')),
                ('period_to', data.get('to')),
            ) if value
        }
        return super().to_internal_value(data)


class PeriodQuerySerializer(serializers.Serializer):
    period = serializers.RegexField(PERIOD_REGEX, required=False)


class AccrualExportQuerySerializer(PeriodQuerySerializer):
    category = serializers.ChoiceField(choices=AccrualCategory.choices, required=False)


class DateRangeQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        start = attrs.get('date_from')
        end = attrs.get('date_to')
        if start and end and start > end:
            raise serializers.ValidationError({
                'date_from': 'Начальная дата позже конечной'
            })
        return attrs


# =============================================================================
# Response Serializers
# =============================================================================

class MonthlyAggregateSerializer(serializers.Serializer):
    period = serializers.CharField()
    accrued = _money()
    paid = _money()
    debt_end = _money()
    payments_count = serializers.IntegerField()


class ReportTotalsSerializer(serializers.Serializer):
    accrued = _money()
    paid = _money()
    debt = _money()
    penalty = _money()


class CategoryAmountSerializer(serializers.Serializer):
    category = serializers.CharField()
    amount = _money()


class AppealCountsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    new = serializers.IntegerField()
    in_progress = serializers.IntegerField()
    needs_info = serializers.IntegerField()
    closed = serializers.IntegerField()


class MonthlyReportSerializer(serializers.Serializer):
    period = serializers.CharField()
    totals = ReportTotalsSerializer()
    categories = CategoryAmountSerializer(many=True)
    appeals = AppealCountsSerializer()


class DashboardAppealsSerializer(serializers.Serializer):
    open = serializers.IntegerField()
    overdue = serializers.IntegerField()


class UnallocatedSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    total = _money()


class PeriodSummarySerializer(serializers.Serializer):
    period = serializers.CharField()
    accrued = _money()
    paid = _money()
    debt = _money()
    payments_count = serializers.IntegerField()
    payments_total = _money()
    debtors_count = serializers.IntegerField()


class DashboardSerializer(serializers.Serializer):
    appeals = DashboardAppealsSerializer()
    unallocated_payments = UnallocatedSerializer()
    current_period = PeriodSummarySerializer()
    drafts_awaiting_approval = serializers.IntegerField()


class ErrorSerializer(serializers.Serializer):
    error = serializers.CharField()
