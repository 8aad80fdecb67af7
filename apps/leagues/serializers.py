from rest_framework import serializers
from .choices import PlanTier
from .models import League, LeagueMembership, DailyLogEntry
from apps.accounts.models import User


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class LeagueSerializer(serializers.ModelSerializer):
    """Main serializer for leagues."""

    owner = UserMinimalSerializer(read_only=True)
    member_count = serializers.SerializerMethodField()
    user_role = serializers.SerializerMethodField()
    required_tier = serializers.SerializerMethodField()

    class Meta:
        model = League
        fields = [
            'id',
            'name',
            'activity',
            'plan_tier',
            'required_tier',
            'month_key',
            'is_free',
            'status',
            'invite_code',
            'owner',
            'member_count',
            'user_role',
            'created_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        return obj.memberships.count()

    def get_user_role(self, obj):
        """Get current user's role in the league."""
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            return obj.get_user_role(request.user)
        return None

    def get_required_tier(self, obj):
        return obj.required_tier.value


class LeagueListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    class Meta:
        model = League
        fields = ['id', 'name', 'activity', 'month_key', 'is_free', 'status', 'created_at']
        read_only_fields = fields


class LeagueCreateSerializer(serializers.Serializer):
    """Serializer for creating leagues."""

    name = serializers.CharField(max_length=200)
    activity = serializers.CharField(max_length=200)
    is_free = serializers.BooleanField(default=True)
    plan_tier = serializers.ChoiceField(
        choices=[t.value for t in PlanTier.paid()],
        required=False,
        allow_null=True,
    )
    month_key = serializers.RegexField(r'^\d{4}-(0[1-9]|1[0-2])$', required=False)
    creation_key = serializers.CharField(max_length=64, required=False)


class LeagueMemberSerializer(serializers.ModelSerializer):
    """Roster entry with resolved display name."""

    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = LeagueMembership
        fields = ['id', 'user', 'role', 'joined_at']
        read_only_fields = fields


class JoinLeagueSerializer(serializers.Serializer):
    """Serializer for joining a league with invite code."""

    invite_code = serializers.CharField(max_length=16, required=True)


class DailyLogEntrySerializer(serializers.ModelSerializer):
    member_id = serializers.UUIDField(source='user_id', read_only=True)

    class Meta:
        model = DailyLogEntry
        fields = ['member_id', 'date', 'completed', 'written_at']
        read_only_fields = fields


class UpsertDailyLogSerializer(serializers.Serializer):
    """Serializer for writing the caller's own log entry."""

    date = serializers.DateField()
    completed = serializers.BooleanField()
    written_at = serializers.DateTimeField(required=False)
