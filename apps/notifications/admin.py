from django.contrib import admin

from .models import Announcement, NotificationDraft


@admin.register(Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ['title', 'status', 'audience', 'author', 'published_at']
    list_filter = ['status', 'audience']
    search_fields = ['title', 'body']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(NotificationDraft)
class NotificationDraftAdmin(admin.ModelAdmin):
    list_display = ['plot_label', 'resident_name', 'template_id', 'channel', 'status', 'period', 'debt_amount', 'created_at']
    list_filter = ['status', 'channel', 'template_id', 'period']
    search_fields = ['plot_label', 'resident_name', 'recipient']
    readonly_fields = ['id', 'attempts', 'last_error', 'skip_reason', 'approved_by', 'approved_at', 'sent_at', 'created_at']
    raw_id_fields = ['plot', 'person']
