# ==========================================
# apps/leagues/admin.py
# ==========================================

from django.contrib import admin
from apps.leagues.models import League, LeagueMembership, DailyLogEntry


class LeagueMembershipInline(admin.TabularInline):
    """Inline admin for league memberships."""
    model = LeagueMembership
    extra = 0
    fields = ['user', 'role', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(League)
class LeagueAdmin(admin.ModelAdmin):
    """Admin interface for Leagues."""

    list_display = [
        'name',
        'activity',
        'owner',
        'member_count',
        'is_free',
        'plan_tier',
        'status',
        'month_key',
        'invite_code',
        'created_at'
    ]
    list_filter = ['is_free', 'plan_tier', 'status', 'month_key']
    search_fields = ['name', 'activity', 'owner__email', 'invite_code']
    readonly_fields = ['invite_code', 'creation_key', 'created_at', 'updated_at']
    inlines = [LeagueMembershipInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'activity', 'owner', 'month_key')
        }),
        ('Plan', {
            'fields': ('is_free', 'plan_tier', 'status')
        }),
        ('Invitation', {
            'fields': ('invite_code',)
        }),
        ('Metadata', {
            'fields': ('creation_key', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of members."""
        return obj.memberships.count()
    member_count.short_description = 'Members'


@admin.register(DailyLogEntry)
class DailyLogEntryAdmin(admin.ModelAdmin):
    list_display = ['league', 'user', 'date', 'completed', 'written_at']
    list_filter = ['completed', 'date']
    search_fields = ['league__name', 'user__email']
    date_hierarchy = 'date'
    ordering = ['-date']
