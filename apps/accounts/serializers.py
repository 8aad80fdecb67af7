from rest_framework import serializers

from apps.leagues.choices import PlanTier
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Basic user serializer for profile display."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'username',
            'full_name',
            'display_name',
            'plan_tier',
            'free_league_used',
            'created_at',
        ]
        read_only_fields = [
            'id',
            'email',
            'plan_tier',
            'free_league_used',
            'created_at',
        ]

    def get_display_name(self, obj):
        return obj.get_display_name()


class AcceptPlanTierSerializer(serializers.Serializer):
    """Serializer for accepting a plan tier."""

    tier = serializers.ChoiceField(choices=PlanTier.choices, required=True)
