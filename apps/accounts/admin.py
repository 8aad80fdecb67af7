# ==========================================
# apps/accounts/admin.py
# ==========================================

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Provides member management including:
    - Listing with plan tier and free quota state
    - Filtering by status and tier
    - Search by email, handle and full name
    - Bulk actions for the free league quota
    """

    list_display = [
        'email',
        'username',
        'full_name',
        'plan_tier_badge',
        'free_league_used',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'is_active',
        'is_staff',
        'plan_tier',
        'free_league_used',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'full_name',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'username', 'full_name', 'password')
        }),
        ('Plan', {
            'fields': ('plan_tier', 'free_league_used'),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'username', 'password1', 'password2'),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser'),
        }),
    )

    readonly_fields = [
        'created_at',
        'last_login',
    ]

    filter_horizontal = ['groups', 'user_permissions']

    def plan_tier_badge(self, obj):
        """Display plan tier as colored badge."""
        if obj.plan_tier == 'free':
            return format_html(
                '<span style="background: #29D0AB; color: #0B0F14; padding: 3px 8px; '
                'border-radius: 10px; font-size: 11px;">Free</span>'
            )
        return format_html(
            '<span style="background: #7C3AED; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">Tier {}</span>',
            obj.plan_tier,
        )
    plan_tier_badge.short_description = 'Plan'
    plan_tier_badge.admin_order_field = 'plan_tier'

    actions = ['reset_free_quota']

    @admin.action(description='Reset free league quota')
    def reset_free_quota(self, request, queryset):
        """Allow selected members to create another free league."""
        count = queryset.update(free_league_used=False)
        self.message_user(request, f'Reset free league quota for {count} user(s).')
