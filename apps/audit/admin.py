from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Audit entries are written by services only."""

    list_display = ['created_at', 'action', 'actor', 'actor_role', 'target_type', 'target_id']
    list_filter = ['action', 'actor_role', 'created_at']
    search_fields = ['target_id', 'actor__email', 'request_id']
    date_hierarchy = 'created_at'
    readonly_fields = [f.name for f in AuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
