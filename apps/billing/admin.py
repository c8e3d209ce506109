from django.contrib import admin

from .models import (
    BillingPeriod,
    Accrual,
    Payment,
    Allocation,
    PenaltyAccrual,
    StatementImport,
    PaymentRequisites,
)


@admin.register(BillingPeriod)
class BillingPeriodAdmin(admin.ModelAdmin):
    """Periods are closed through the API so the snapshot and audit entry are written."""

    list_display = ['period', 'status', 'closed_at', 'closed_by']
    list_filter = ['status']
    readonly_fields = ['period', 'status', 'closed_at', 'closed_by', 'snapshot', 'created_at', 'updated_at']

    def has_add_permission(self, request):
        return False


@admin.register(Accrual)
class AccrualAdmin(admin.ModelAdmin):
    list_display = ['plot', 'period', 'category', 'amount', 'created_at']
    list_filter = ['category', 'period']
    search_fields = ['plot__number', 'plot__street', 'note']
    raw_id_fields = ['plot', 'created_by']


class AllocationInline(admin.TabularInline):
    model = Allocation
    extra = 0
    raw_id_fields = ['accrual', 'created_by']
    readonly_fields = ['kind', 'created_at']


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['paid_at', 'amount', 'plot', 'payer_name', 'source', 'match_status']
    list_filter = ['source', 'match_status', 'paid_at']
    search_fields = ['payer_name', 'purpose', 'external_ref']
    raw_id_fields = ['plot', 'statement_import', 'created_by']
    readonly_fields = ['fingerprint', 'match_candidates', 'created_at', 'updated_at']
    date_hierarchy = 'paid_at'
    inlines = [AllocationInline]


@admin.register(PenaltyAccrual)
class PenaltyAccrualAdmin(admin.ModelAdmin):
    list_display = ['plot', 'period', 'days_overdue', 'amount', 'status', 'as_of']
    list_filter = ['status', 'period']
    raw_id_fields = ['accrual', 'plot', 'created_by', 'status_changed_by']


@admin.register(StatementImport)
class StatementImportAdmin(admin.ModelAdmin):
    list_display = ['file_name', 'uploaded_by', 'created_at']
    readonly_fields = ['file_name', 'uploaded_by', 'totals', 'errors', 'created_at']


@admin.register(PaymentRequisites)
class PaymentRequisitesAdmin(admin.ModelAdmin):
    list_display = ['version', 'recipient_name', 'bank_name', 'account', 'is_active', 'created_at']
    list_filter = ['is_active']
    readonly_fields = ['version', 'created_by', 'created_at']
