"""
View Projector.

Pure functions deriving render-ready data from ledger rows: ranking order,
streak length and per-day edit eligibility. Nothing here reads or writes
shared state.
"""

import enum
from typing import List, Optional, Sequence, Tuple

from apps.leagues.choices import MemberRole

from .types import MemberRow

# Days a member may still correct: today and the day before
EDITABLE_LAG_DAYS = 1


class RankMode(enum.Enum):
    SELF_PINNED = 'self_pinned'
    RANKED = 'ranked'


def completed_count(days: Sequence[bool]) -> int:
    return sum(1 for done in days if done)


def _run_ending_at(days, anchor):
    count = 0
    for index in range(anchor, -1, -1):
        if not days[index]:
            break
        count += 1
    return count


def streak(days: Sequence[bool], today_index: Optional[int]) -> int:
    """
    Count consecutive completed days ending today.

    An incomplete today invalidates the anchor, so the result is 0 until
    today is logged even when yesterday and earlier days are done.
    """
    if today_index is None or not 0 <= today_index < len(days):
        return 0
    if not days[today_index]:
        return 0
    return _run_ending_at(days, today_index)


def pending_streak(days: Sequence[bool], today_index: Optional[int]) -> int:
    """
    Length of the run ending yesterday that logging today would extend.

    Returns 0 once today is completed (``streak`` covers it then) and
    when yesterday is not completed.
    """
    if today_index is None or not 0 <= today_index < len(days):
        return 0
    if days[today_index] or today_index == 0:
        return 0
    return _run_ending_at(days, today_index - 1)


def is_today_streak(days: Sequence[bool], today_index: Optional[int]) -> bool:
    """True when both today and yesterday are completed."""
    if today_index is None or today_index <= 0 or today_index >= len(days):
        return False
    return bool(days[today_index]) and bool(days[today_index - 1])


def editable_window(today_index: Optional[int], month_length: int) -> Tuple[int, ...]:
    """Day indexes that may still be toggled: yesterday and today."""
    if today_index is None:
        return ()
    return tuple(
        index
        for index in range(today_index - EDITABLE_LAG_DAYS, today_index + 1)
        if 0 <= index < month_length
    )


def is_editable(
    *,
    viewer_id,
    member_id,
    day_index: int,
    today_index: Optional[int],
    month_length: int,
) -> bool:
    """
    True when ``viewer_id`` may toggle ``member_id``'s day.

    Only a member's own days inside the editable window qualify.
    """
    if viewer_id is None or str(viewer_id) != str(member_id):
        return False
    return day_index in editable_window(today_index, month_length)


def rank_members(rows: Sequence[MemberRow], viewer_id, mode: RankMode) -> List[MemberRow]:
    """
    Order rows for display.

    SELF_PINNED keeps the existing order and moves the viewer's row first.
    RANKED sorts by completed days (most first), then display name
    (case-insensitive), then member id, which makes the order total.
    """
    if mode is RankMode.SELF_PINNED:
        viewer = str(viewer_id) if viewer_id is not None else None
        for index, row in enumerate(rows):
            if str(row.member_id) == viewer:
                return [row] + list(rows[:index]) + list(rows[index + 1:])
        return list(rows)

    return sorted(
        rows,
        key=lambda row: (
            -completed_count(row.days),
            row.display_name.casefold(),
            str(row.member_id),
        ),
    )


def roster_order(rows: Sequence[MemberRow]) -> List[MemberRow]:
    """Owner first, then admins, then members; by name within a role."""
    return sorted(
        rows,
        key=lambda row: (
            MemberRole(row.role).rank,
            row.display_name.casefold(),
            str(row.member_id),
        ),
    )
