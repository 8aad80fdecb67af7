import pytest

from apps.leagues.choices import MemberRole
from apps.tracker.ledger import LedgerStore
from apps.tracker.types import MemberInfo

from .fakes import (
    ALICE,
    LEAGUE_ID,
    ROSTER,
    Clock,
    FakeGateway,
    free_league_info,
    paid_league_info,
)


@pytest.fixture
def gateway():
    """Fake backend with a free league (three members) and a paid tier B league."""
    gateway = FakeGateway()
    gateway.add_league(free_league_info(), members=list(ROSTER))
    gateway.add_league(paid_league_info(), members=[MemberInfo(ALICE, MemberRole.OWNER, 'alice')])
    return gateway


@pytest.fixture
def store():
    """Loaded September 2026 ledger (30 days) with three members."""
    store = LedgerStore(league_id=LEAGUE_ID, year=2026, month=9)
    store.load(list(ROSTER), [])
    return store


@pytest.fixture
def clock():
    return Clock()
