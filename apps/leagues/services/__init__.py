"""
Leagues app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
"""

from .exceptions import (
    LeaguesServiceError,
    LeagueNotFoundError,
    InvalidInviteCodeError,
    NotMemberError,
    FreeQuotaExhaustedError,
    PaymentRequiredError,
    InvalidLeagueDataError,
)

from .league_management import (
    create_league_and_join,
    get_league_by_id,
    get_my_leagues,
    month_bounds,
)

from .membership_management import (
    resolve_invite_code,
    get_league_members,
    get_membership,
)

from .daily_log import (
    upsert_daily_log,
    fetch_month_logs,
)


__all__ = [
    # Exceptions
    'LeaguesServiceError',
    'LeagueNotFoundError',
    'InvalidInviteCodeError',
    'NotMemberError',
    'FreeQuotaExhaustedError',
    'PaymentRequiredError',
    'InvalidLeagueDataError',

    # League Management
    'create_league_and_join',
    'get_league_by_id',
    'get_my_leagues',
    'month_bounds',

    # Membership Management
    'resolve_invite_code',
    'get_league_members',
    'get_membership',

    # Daily Log
    'upsert_daily_log',
    'fetch_month_logs',
]
