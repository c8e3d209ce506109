from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html

from .models import User, Role


ROLE_COLORS = {
    Role.RESIDENT: '#6B8E5E',
    Role.CHAIRMAN: '#A47449',
    Role.SECRETARY: '#5E7C8E',
    Role.ACCOUNTANT: '#8E5E7C',
    Role.ADMIN: '#B85C5C',
}


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Portal accounts.

    Role changes made here bypass the audit log; use the API endpoint
    when the change has to be traceable.
    """

    list_display = [
        'email',
        'full_name',
        'role_badge',
        'is_active',
        'created_at',
        'last_login',
    ]

    list_filter = [
        'role',
        'is_active',
        'is_staff',
        'created_at',
    ]

    search_fields = [
        'email',
        'full_name',
        'phone',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Основное', {
            'fields': ('email', 'full_name', 'phone', 'password')
        }),
        ('Роль и доступ', {
            'fields': ('role', 'is_active', 'is_staff', 'is_superuser'),
        }),
        ('Даты', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        ('Новый пользователь', {
            'classes': ('wide',),
            'fields': ('email', 'full_name', 'role', 'password1', 'password2'),
        }),
    )

    readonly_fields = ['created_at', 'last_login']
    filter_horizontal = []

    def role_badge(self, obj):
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            ROLE_COLORS.get(obj.role, '#999'),
            obj.get_role_display(),
        )
    role_badge.short_description = 'Роль'
    role_badge.admin_order_field = 'role'

    actions = ['activate_users', 'deactivate_users']

    @admin.action(description='Включить выбранные учётные записи')
    def activate_users(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f'Включено: {count}.')

    @admin.action(description='Отключить выбранные учётные записи')
    def deactivate_users(self, request, queryset):
        """Deactivate selected accounts, superusers are skipped."""
        safe_queryset = queryset.filter(is_superuser=False)
        count = safe_queryset.update(is_active=False)
        skipped = queryset.count() - count
        msg = f'Отключено: {count}.'
        if skipped:
            msg += f' Пропущено суперпользователей: {skipped}.'
        self.message_user(request, msg)
