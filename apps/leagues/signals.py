import logging

from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .events import LedgerChange, RosterChange
from .models import DailyLogEntry, LeagueMembership
from .realtime import feed, LEDGER, ROSTER

logger = logging.getLogger(__name__)


@receiver(post_save, sender=DailyLogEntry)
def publish_ledger_change(sender, instance, created, **kwargs):
    """Announce a daily log write once its transaction commits."""
    event = LedgerChange(
        league_id=str(instance.league_id),
        member_id=str(instance.user_id),
        date=instance.date,
        completed=instance.completed,
        written_at=instance.written_at,
    )
    transaction.on_commit(lambda: feed.publish(LEDGER, event.league_id, event))


@receiver(post_save, sender=LeagueMembership)
def publish_member_saved(sender, instance, created, **kwargs):
    """Announce a new or changed membership once committed."""
    event = RosterChange(
        league_id=str(instance.league_id),
        member_id=str(instance.user_id),
        kind=RosterChange.JOINED if created else RosterChange.UPDATED,
    )
    transaction.on_commit(lambda: feed.publish(ROSTER, event.league_id, event))


@receiver(post_delete, sender=LeagueMembership)
def publish_member_removed(sender, instance, **kwargs):
    event = RosterChange(
        league_id=str(instance.league_id),
        member_id=str(instance.user_id),
        kind=RosterChange.LEFT,
    )
    transaction.on_commit(lambda: feed.publish(ROSTER, event.league_id, event))
    logger.info("Member %s left league %s", event.member_id, event.league_id)
