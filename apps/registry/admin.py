from django.contrib import admin

from .models import Plot, Person, PlotOwnership, InviteCode, PersonMergeHistory


class PlotOwnershipInline(admin.TabularInline):
    model = PlotOwnership
    extra = 0
    autocomplete_fields = ['person']


@admin.register(Plot)
class PlotAdmin(admin.ModelAdmin):
    list_display = ['label', 'street', 'number', 'area_sqm', 'is_active']
    list_filter = ['is_active', 'street']
    search_fields = ['number', 'street', 'cadastral_number', 'city_address']
    inlines = [PlotOwnershipInline]


@admin.register(Person)
class PersonAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'phone', 'email', 'status', 'user', 'is_active']
    list_filter = ['status', 'is_active']
    search_fields = ['full_name', 'phone', 'email']
    raw_id_fields = ['user', 'merged_into']


@admin.register(InviteCode)
class InviteCodeAdmin(admin.ModelAdmin):
    """Codes are issued through the API; the raw code is never stored."""

    list_display = ['person', 'status', 'created_at', 'used_at', 'used_by', 'revoked_at']
    list_filter = ['used_at', 'revoked_at']
    search_fields = ['person__full_name']
    readonly_fields = ['code_hash', 'created_at', 'used_at', 'used_by', 'revoked_at']

    def has_add_permission(self, request):
        return False


@admin.register(PersonMergeHistory)
class PersonMergeHistoryAdmin(admin.ModelAdmin):
    list_display = ['source_full_name', 'target_person', 'merged_by', 'moved_ownerships', 'merged_at']
    readonly_fields = ['source_person_id', 'source_full_name', 'target_person', 'merged_by', 'reason', 'moved_ownerships', 'merged_at']
