"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    UserNotFoundError,
    InvalidPlanTierError,
)
from .plan_management import get_plan_tier, accept_plan_tier

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'UserNotFoundError',
    'InvalidPlanTierError',
    # Services
    'get_plan_tier',
    'accept_plan_tier',
]
