"""
Change events published by the leagues app.

Events are facts about committed writes. They are immutable and carry
only identifiers and values, never model instances, so they can cross
thread boundaries safely.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class LedgerChange:
    """A daily log entry was created or updated."""

    league_id: str
    member_id: str
    date: date
    completed: bool
    written_at: Optional[datetime] = None


@dataclass(frozen=True)
class RosterChange:
    """A membership row was added, changed or removed."""

    JOINED = 'joined'
    UPDATED = 'updated'
    LEFT = 'left'

    league_id: str
    member_id: str
    kind: str
