# ==========================================
# apps/leagues/models.py
# ==========================================

from django.db import models
import uuid
import secrets

from .choices import PlanTier, MemberRole, LeagueStatus

# Unambiguous upper-case alphabet (no 0/O, 1/I)
INVITE_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
INVITE_CODE_LENGTH = 6


def generate_invite_code(length=INVITE_CODE_LENGTH):
    return ''.join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def normalize_invite_code(code):
    """Trim and upper-case a user-entered invite code."""
    return (code or '').strip().upper()


def month_key_for(day):
    """Return the 'YYYY-MM' tracking period key for a date."""
    return f"{day.year}-{day.month:02d}"


class League(models.Model):
    """Group tracking one shared activity for one tracking period."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    activity = models.CharField(max_length=40)
    plan_tier = models.CharField(
        max_length=10,
        choices=[(t.value, t.label) for t in PlanTier.paid()],
        null=True,
        blank=True,
    )
    month_key = models.CharField(max_length=7)
    is_free = models.BooleanField(default=True)
    status = models.CharField(
        max_length=20,
        choices=LeagueStatus.choices,
        default=LeagueStatus.ACTIVE,
    )
    invite_code = models.CharField(max_length=16, unique=True, db_index=True, editable=False)
    owner = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='owned_leagues')
    # Client supplied idempotency key for create_league_and_join
    creation_key = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'leagues'
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='leagues_owner_i_3c1d2a_idx'),
            models.Index(fields=['invite_code'], name='leagues_invite__8e5b71_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'creation_key'],
                name='unique_league_creation_key_per_owner',
            ),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.invite_code:
            self.invite_code = generate_invite_code()
        else:
            self.invite_code = normalize_invite_code(self.invite_code)
        super().save(*args, **kwargs)

    @property
    def required_tier(self):
        """Tier a member must hold to enter; FREE when no tier is required."""
        if self.is_free:
            return PlanTier.FREE
        return PlanTier.parse(self.plan_tier)

    def has_member(self, user):
        return self.memberships.filter(user=user).exists()

    def get_user_role(self, user):
        try:
            return self.memberships.get(user=user).role
        except LeagueMembership.DoesNotExist:
            return None

    def is_admin(self, user):
        role = self.get_user_role(user)
        return role in [MemberRole.OWNER, MemberRole.ADMIN]


class LeagueMembership(models.Model):
    """Member of a league with role."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='league_memberships')
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=MemberRole.choices, default=MemberRole.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'league_memberships'
        unique_together = [['user', 'league']]
        constraints = [
            models.UniqueConstraint(
                fields=['league'],
                condition=models.Q(role='owner'),
                name='one_owner_per_league',
            ),
        ]
        indexes = [
            models.Index(fields=['league', 'role'], name='league_memb_league__0a7f4e_idx'),
            models.Index(fields=['user', 'joined_at'], name='league_memb_user_id_5d92c8_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user.get_display_name()} in {self.league.name} ({self.role})"


class DailyLogEntry(models.Model):
    """One member's completion flag for one calendar day in a league."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    league = models.ForeignKey(League, on_delete=models.CASCADE, related_name='daily_logs')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='daily_logs')
    date = models.DateField()
    completed = models.BooleanField(default=False)
    written_at = models.DateTimeField()

    class Meta:
        db_table = 'daily_log_entries'
        constraints = [
            models.UniqueConstraint(
                fields=['league', 'user', 'date'],
                name='one_log_per_member_per_day',
            ),
        ]
        indexes = [
            models.Index(fields=['league', 'date'], name='daily_log_e_league__2b6e90_idx'),
        ]
        ordering = ['date']

    def __str__(self):
        mark = 'done' if self.completed else 'open'
        return f"{self.user_id} {self.date} {mark}"
