"""
Ledger Store.

In-memory completion state of one league for one displayed month: for each
member an array of booleans indexed by day-of-month minus one.

The store is the only owner of that state. It is rebuilt wholesale when a
league is loaded and then patched slot by slot, by the Mutation
Coordinator (optimistic writes) and by the Reconciliation Channel (remote
facts). Every slot remembers the timestamp of the write that set it so
that older facts never overwrite newer ones.

``version`` counts effective mutations. A write that leaves a slot
unchanged does not bump it and does not notify listeners.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from apps.accounts.display import DEFAULT_DISPLAY_NAME
from apps.leagues.choices import MemberRole
from apps.leagues.events import LedgerChange

from .types import LogRecord, MemberInfo, MemberRow

logger = logging.getLogger(__name__)

Listener = Callable[['LedgerSnapshot'], None]


@dataclass(frozen=True)
class LedgerSnapshot:
    """Immutable view of the store at one version."""

    league_id: str
    first_day: date
    month_length: int
    version: int
    members: Tuple[MemberInfo, ...]
    days: Mapping[str, Tuple[bool, ...]]

    def days_for(self, member_id) -> Tuple[bool, ...]:
        return self.days.get(str(member_id), (False,) * self.month_length)

    def index_for(self, day: date) -> Optional[int]:
        return _index_for(self.first_day, self.month_length, day)

    def rows(self) -> List[MemberRow]:
        """Rows in roster order."""
        return [
            MemberRow(
                member_id=m.member_id,
                display_name=m.display_name,
                role=m.role,
                days=self.days[str(m.member_id)],
            )
            for m in self.members
        ]


def _index_for(first_day, month_length, day):
    if day is None or day.year != first_day.year or day.month != first_day.month:
        return None
    index = day.day - 1
    return index if 0 <= index < month_length else None


class LedgerStore:

    def __init__(self, *, league_id, year: int, month: int):
        self.league_id = str(league_id)
        self.first_day = date(year, month, 1)
        self.month_length = calendar.monthrange(year, month)[1]
        self.version = 0
        self._members: Dict[str, MemberInfo] = {}
        self._days: Dict[str, List[bool]] = {}
        self._stamps: Dict[Tuple[str, int], datetime] = {}
        self._listeners: List[Listener] = []

    @classmethod
    def for_month(cls, league_id, day: date) -> 'LedgerStore':
        """Create an empty store for the month containing ``day``."""
        return cls(league_id=league_id, year=day.year, month=day.month)

    # ------------------------------------------------------------------
    # Calendar helpers
    # ------------------------------------------------------------------

    @property
    def last_day(self) -> date:
        return self.first_day + timedelta(days=self.month_length - 1)

    def index_for(self, day: date) -> Optional[int]:
        """0-based slot index of a date, or None outside the month."""
        return _index_for(self.first_day, self.month_length, day)

    def date_for(self, day_index: int) -> date:
        if not 0 <= day_index < self.month_length:
            raise IndexError(f"Day index {day_index} outside month of {self.month_length} days")
        return self.first_day + timedelta(days=day_index)

    # ------------------------------------------------------------------
    # Wholesale rebuilds
    # ------------------------------------------------------------------

    def load(self, members: Iterable[MemberInfo], logs: Iterable[LogRecord]) -> None:
        """Replace all state with a freshly fetched roster and month logs."""
        self._members = {}
        self._days = {}
        self._stamps = {}
        for member in members:
            self._add_member(member)

        for record in logs:
            index = self.index_for(record.date)
            member_id = str(record.member_id)
            if index is None or member_id not in self._days:
                continue
            self._days[member_id][index] = bool(record.completed)
            if record.written_at is not None:
                self._stamps[(member_id, index)] = record.written_at

        self._changed()

    def replace_roster(self, members: Iterable[MemberInfo]) -> None:
        """
        Swap in a new roster.

        Day data of members still present is kept; new members start with
        an empty month; departed members are dropped.
        """
        previous_days = self._days
        self._members = {}
        self._days = {}
        for member in members:
            member_id = str(member.member_id)
            self._members[member_id] = member
            self._days[member_id] = previous_days.get(member_id) or [False] * self.month_length

        self._stamps = {
            slot: stamp for slot, stamp in self._stamps.items() if slot[0] in self._days
        }
        self._changed()

    # ------------------------------------------------------------------
    # Slot access
    # ------------------------------------------------------------------

    def has_member(self, member_id) -> bool:
        return str(member_id) in self._days

    def ensure_member(self, member_id, display_name: str = DEFAULT_DISPLAY_NAME) -> bool:
        """Add an empty row for an unknown member. Returns True if added."""
        if self.has_member(member_id):
            return False
        self._add_member(MemberInfo(
            member_id=str(member_id),
            role=MemberRole.MEMBER,
            display_name=display_name,
        ))
        self._changed()
        return True

    def get(self, member_id, day_index: int) -> bool:
        return self._days[str(member_id)][day_index]

    def stamp(self, member_id, day_index: int) -> Optional[datetime]:
        return self._stamps.get((str(member_id), day_index))

    def set(
        self,
        member_id,
        day_index: int,
        value: bool,
        written_at: Optional[datetime] = None,
    ) -> bool:
        """
        Write one slot.

        Returns True when the stored value changed. Writing the value the
        slot already holds only refreshes its timestamp.
        """
        member_id = str(member_id)
        row = self._days[member_id]
        slot = (member_id, day_index)

        if written_at is not None:
            self._stamps[slot] = written_at
        else:
            self._stamps.pop(slot, None)

        if row[day_index] == value:
            return False

        row[day_index] = value
        self._changed()
        return True

    def restore(self, member_id, day_index: int, value: bool, written_at: Optional[datetime]) -> bool:
        """Put back a slot's previous value and timestamp (rollback)."""
        return self.set(member_id, day_index, value, written_at=written_at)

    def apply(self, change: LedgerChange) -> bool:
        """
        Apply one remote fact.

        Discards facts for another league, outside the month, for unknown
        members, older than the slot's last write, or identical to the
        current value. Returns True when the store was mutated.
        """
        if str(change.league_id) != self.league_id:
            return False
        index = self.index_for(change.date)
        member_id = str(change.member_id)
        if index is None or member_id not in self._days:
            return False

        current_stamp = self._stamps.get((member_id, index))
        if (
            change.written_at is not None
            and current_stamp is not None
            and change.written_at < current_stamp
        ):
            logger.debug("Discarding stale change for %s day %s", member_id, index + 1)
            return False

        if self._days[member_id][index] == bool(change.completed):
            if change.written_at is not None:
                self._stamps[(member_id, index)] = change.written_at
            return False

        return self.set(member_id, index, bool(change.completed), written_at=change.written_at)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            league_id=self.league_id,
            first_day=self.first_day,
            month_length=self.month_length,
            version=self.version,
            members=tuple(self._members.values()),
            days=MappingProxyType({
                member_id: tuple(days) for member_id, days in self._days.items()
            }),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every mutation."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _add_member(self, member: MemberInfo):
        member_id = str(member.member_id)
        self._members[member_id] = member
        self._days[member_id] = [False] * self.month_length

    def _changed(self):
        self.version += 1
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Ledger listener failed")
