"""
Daily log service.

Idempotent upserts of per-member, per-day completion flags with
last-writer-wins on the write timestamp.
"""

import logging
from datetime import date, datetime
from typing import Optional, Tuple
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.leagues.models import DailyLogEntry, LeagueMembership

from .exceptions import NotMemberError

logger = logging.getLogger(__name__)


@transaction.atomic
def upsert_daily_log(
    *,
    league_id: UUID,
    user_id: UUID,
    date: date,
    completed: bool,
    written_at: Optional[datetime] = None
) -> Tuple[DailyLogEntry, bool]:
    """
    Insert or update the log entry keyed on (league, member, date).

    Repeating the same write leaves exactly one entry. A write whose
    timestamp is older than the stored one is ignored (last writer wins).
    Un-completing a day stores completed=False; entries are never deleted.

    Args:
        league_id: UUID of the league
        user_id: UUID of the member writing their own entry
        date: Calendar day
        completed: New completion flag
        written_at: Client write timestamp (defaults to now)

    Returns:
        (entry, applied) where applied is False for a stale write

    Raises:
        NotMemberError: If the user is not a member of the league
    """
    if not LeagueMembership.objects.filter(league_id=league_id, user_id=user_id).exists():
        raise NotMemberError("User is not a member of this league")

    written_at = written_at or timezone.now()

    entry = (
        DailyLogEntry.objects
        .select_for_update()
        .filter(league_id=league_id, user_id=user_id, date=date)
        .first()
    )

    if entry is None:
        try:
            with transaction.atomic():
                entry = DailyLogEntry.objects.create(
                    league_id=league_id,
                    user_id=user_id,
                    date=date,
                    completed=completed,
                    written_at=written_at,
                )
            return entry, True
        except IntegrityError:
            # A concurrent writer created the row first
            entry = (
                DailyLogEntry.objects
                .select_for_update()
                .get(league_id=league_id, user_id=user_id, date=date)
            )

    if entry.written_at > written_at:
        logger.debug(
            "Ignoring stale log write for %s/%s/%s (%s < %s)",
            league_id, user_id, date, written_at, entry.written_at,
        )
        return entry, False

    entry.completed = completed
    entry.written_at = written_at
    entry.save(update_fields=['completed', 'written_at'])

    return entry, True


def fetch_month_logs(
    *,
    league_id: UUID,
    from_date: date,
    to_date: date
) -> QuerySet[DailyLogEntry]:
    """Return log entries of a league within [from_date, to_date]."""
    return (
        DailyLogEntry.objects
        .filter(league_id=league_id, date__gte=from_date, date__lte=to_date)
        .order_by('date', 'user_id')
    )
