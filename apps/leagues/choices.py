# ==========================================
# apps/leagues/choices.py
# ==========================================

from django.db import models


class PlanTier(models.TextChoices):
    """Capability level gating league creation and joining."""

    FREE = 'free', 'Free'
    A = 'A', 'Plus'
    B = 'B', 'Circle'
    C = 'C', 'Team'

    @classmethod
    def parse(cls, value):
        """
        Convert a raw tier value into a PlanTier.

        None and empty strings map to FREE. Unknown values raise ValueError
        so that invalid tier states never reach the domain.
        """
        if value is None or value == '':
            return cls.FREE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            raise ValueError(f"Unknown plan tier: {value!r}")

    @classmethod
    def paid(cls):
        return [cls.A, cls.B, cls.C]


class MemberRole(models.TextChoices):
    OWNER = 'owner', 'Owner'
    ADMIN = 'admin', 'Admin'
    MEMBER = 'member', 'Member'

    @property
    def rank(self):
        """Roster ordering rank: owner first, then admins, then members."""
        return {
            MemberRole.OWNER: 0,
            MemberRole.ADMIN: 1,
            MemberRole.MEMBER: 2,
        }[self]


class LeagueStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    PAYMENT_REQUIRED = 'payment_required', 'Payment required'
    COMPLETED = 'completed', 'Completed'
