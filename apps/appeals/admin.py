from django.contrib import admin

from .models import Appeal, AppealComment, AppealActivity


class AppealCommentInline(admin.TabularInline):
    model = AppealComment
    extra = 0
    readonly_fields = ['author', 'author_role', 'created_at']


@admin.register(Appeal)
class AppealAdmin(admin.ModelAdmin):
    list_display = ['title', 'category', 'priority', 'status', 'assigned_role', 'assigned_to', 'due_at', 'created_at']
    list_filter = ['status', 'category', 'priority', 'assigned_role']
    search_fields = ['title', 'body', 'author_name', 'author_phone', 'plot_number']
    readonly_fields = ['id', 'created_at', 'updated_at', 'closed_at']
    raw_id_fields = ['author', 'assigned_to', 'plot']
    inlines = [AppealCommentInline]


@admin.register(AppealActivity)
class AppealActivityAdmin(admin.ModelAdmin):
    list_display = ['appeal', 'kind', 'actor', 'created_at']
    list_filter = ['kind']
    readonly_fields = ['appeal', 'actor', 'kind', 'payload', 'created_at']
