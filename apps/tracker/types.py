"""
Value types exchanged between the tracker engine and its gateway.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from apps.leagues.choices import PlanTier, MemberRole, LeagueStatus


@dataclass(frozen=True)
class LeagueInfo:
    id: str
    name: str
    activity: str
    plan_tier: Optional[PlanTier]
    month_key: str
    is_free: bool
    status: LeagueStatus
    invite_code: str

    @property
    def required_tier(self) -> PlanTier:
        """FREE for free leagues, otherwise the league's configured tier."""
        if self.is_free or self.plan_tier is None:
            return PlanTier.FREE
        return self.plan_tier


@dataclass(frozen=True)
class MemberInfo:
    member_id: str
    role: MemberRole
    display_name: str
    joined_at: Optional[datetime] = None


@dataclass(frozen=True)
class LogRecord:
    member_id: str
    date: date
    completed: bool
    written_at: Optional[datetime] = None


@dataclass(frozen=True)
class MemberRow:
    """One rendered row: a member and their completion flags for the month."""

    member_id: str
    display_name: str
    role: MemberRole
    days: Tuple[bool, ...]


@dataclass(frozen=True)
class AdmissionResult:
    league: LeagueInfo
    caller_tier: PlanTier
    required_tier: PlanTier
    needs_acceptance: bool

    @classmethod
    def evaluate(cls, league: LeagueInfo, caller_tier: PlanTier) -> 'AdmissionResult':
        required = league.required_tier
        return cls(
            league=league,
            caller_tier=caller_tier,
            required_tier=required,
            needs_acceptance=(required != PlanTier.FREE and caller_tier != required),
        )
