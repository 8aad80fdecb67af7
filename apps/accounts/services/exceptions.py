"""Domain-specific exceptions for accounts services."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    pass


class UserNotFoundError(AccountsServiceError):
    """Raised when user does not exist."""
    pass


class InvalidPlanTierError(AccountsServiceError):
    """Raised when a plan tier value is not one of the known tiers."""
    pass
