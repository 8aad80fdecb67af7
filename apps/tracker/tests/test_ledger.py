"""
Ledger Store tests.

Tests cover:
- Month sizing and day indexes
- Mutation counter only moves on effective changes
- Remote fact application (no-op guard, last writer wins)
- Roster replacement keeps day data
"""

import uuid
from datetime import date

import pytest

from apps.leagues.choices import MemberRole
from apps.tracker.ledger import LedgerStore
from apps.tracker.types import LogRecord, MemberInfo

from .fakes import ME, ALICE, BOB, LEAGUE_ID, ROSTER, at, ledger_change


class TestCalendar:

    @pytest.mark.parametrize('year,month,length', [
        (2026, 9, 30), (2026, 10, 31), (2026, 2, 28), (2024, 2, 29),
    ])
    def test_month_length(self, year, month, length):
        store = LedgerStore(league_id=LEAGUE_ID, year=year, month=month)
        store.load(ROSTER, [])

        assert store.month_length == length
        assert len(store.snapshot().days_for(ME)) == length

    def test_index_for(self, store):
        assert store.index_for(date(2026, 9, 1)) == 0
        assert store.index_for(date(2026, 9, 30)) == 29
        assert store.index_for(date(2026, 10, 1)) is None
        assert store.index_for(date(2025, 9, 14)) is None

    def test_date_for(self, store):
        assert store.date_for(13) == date(2026, 9, 14)
        assert store.last_day == date(2026, 9, 30)
        with pytest.raises(IndexError):
            store.date_for(30)

    def test_for_month(self):
        store = LedgerStore.for_month(LEAGUE_ID, date(2026, 9, 14))

        assert store.first_day == date(2026, 9, 1)


class TestLoad:

    def test_load_places_logs(self):
        store = LedgerStore(league_id=LEAGUE_ID, year=2026, month=9)
        store.load(ROSTER, [
            LogRecord(ME, date(2026, 9, 1), True, at(8, day=1)),
            LogRecord(ALICE, date(2026, 9, 30), True),
            LogRecord(BOB, date(2026, 8, 31), True),
            LogRecord('stranger', date(2026, 9, 2), True),
        ])

        snapshot = store.snapshot()
        assert snapshot.days_for(ME)[0] is True
        assert snapshot.days_for(ALICE)[29] is True
        assert not any(snapshot.days_for(BOB))
        assert 'stranger' not in snapshot.days
        assert store.stamp(ME, 0) == at(8, day=1)

    def test_rows_in_roster_order(self, store):
        rows = store.snapshot().rows()

        assert [row.member_id for row in rows] == [ALICE, ME, BOB]
        assert rows[0].role == MemberRole.OWNER


class TestSet:

    def test_set_bumps_version(self, store):
        version = store.version

        assert store.set(ME, 13, True, written_at=at(8)) is True
        assert store.version == version + 1
        assert store.get(ME, 13) is True

    def test_same_value_does_not_bump_version(self, store):
        version = store.version

        assert store.set(ME, 13, False, written_at=at(8)) is False
        assert store.version == version
        # Timestamp still recorded
        assert store.stamp(ME, 13) == at(8)

    def test_listeners_get_snapshots(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.set(ME, 13, True)
        store.set(ME, 13, True)
        unsubscribe()
        store.set(ME, 13, False)

        assert len(seen) == 1
        assert seen[0].days_for(ME)[13] is True

    def test_failing_listener_does_not_break_store(self, store):
        def broken(snapshot):
            raise RuntimeError('render failed')

        store.subscribe(broken)

        assert store.set(ME, 13, True) is True
        assert store.get(ME, 13) is True

    def test_snapshot_is_frozen(self, store):
        snapshot = store.snapshot()
        store.set(ME, 13, True)

        assert snapshot.days_for(ME)[13] is False
        with pytest.raises(TypeError):
            snapshot.days[ME] = ()


class TestApply:

    def test_identical_value_never_mutates(self, store):
        """No-op guard: same value as the slot holds leaves the version alone."""
        store.set(ME, 13, True, written_at=at(8))
        version = store.version

        assert store.apply(ledger_change(ME, date(2026, 9, 14), True, at(8))) is False
        assert store.apply(ledger_change(ME, date(2026, 9, 14), True, at(9))) is False
        assert store.version == version

    def test_different_value_applied(self, store):
        version = store.version

        assert store.apply(ledger_change(ALICE, date(2026, 9, 3), True, at(8, day=3))) is True
        assert store.get(ALICE, 2) is True
        assert store.version == version + 1

    def test_stale_fact_discarded(self, store):
        store.set(ME, 13, True, written_at=at(9))

        assert store.apply(ledger_change(ME, date(2026, 9, 14), False, at(8))) is False
        assert store.get(ME, 13) is True

    @pytest.mark.parametrize('change', [
        ledger_change(ME, date(2026, 10, 1), True),
        ledger_change(ME, date(2026, 8, 31), True),
        ledger_change(ME, date(2026, 9, 14), True, league_id='league-other'),
        ledger_change('stranger', date(2026, 9, 14), True),
    ])
    def test_out_of_scope_facts_discarded(self, store, change):
        before = store.snapshot()

        assert store.apply(change) is False
        assert store.snapshot() == before


class TestRoster:

    def test_replace_roster_keeps_days(self, store):
        store.set(ME, 13, True)
        store.set(BOB, 12, True)

        store.replace_roster([
            MemberInfo(ALICE, MemberRole.OWNER, 'alice'),
            MemberInfo(ME, MemberRole.ADMIN, 'Me'),
            MemberInfo('member-new', MemberRole.MEMBER, 'Newcomer'),
        ])

        snapshot = store.snapshot()
        assert snapshot.days_for(ME)[13] is True
        assert not any(snapshot.days_for('member-new'))
        assert BOB not in snapshot.days
        assert [m.display_name for m in snapshot.members] == ['alice', 'Me', 'Newcomer']

    def test_ensure_member(self, store):
        assert store.ensure_member('member-new') is True
        assert store.ensure_member('member-new') is False

        row = store.snapshot().rows()[-1]
        assert row.member_id == 'member-new'
        assert row.display_name == 'User'
        assert len(row.days) == 30

    def test_rows_with_uuid_member_ids(self):
        member_id = uuid.uuid4()
        store = LedgerStore(league_id=LEAGUE_ID, year=2026, month=9)
        store.load(
            [MemberInfo(member_id, MemberRole.OWNER, 'Olga')],
            [LogRecord(member_id, date(2026, 9, 2), True)],
        )

        rows = store.snapshot().rows()

        assert [row.display_name for row in rows] == ['Olga']
        assert rows[0].days[1] is True
