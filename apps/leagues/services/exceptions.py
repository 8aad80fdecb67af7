"""
Domain-specific exceptions for leagues app.

These exceptions represent business rule violations and should be
caught in views (or the tracker gateway) and converted to the
caller's error vocabulary.
"""


class LeaguesServiceError(Exception):
    """Base exception for all leagues service errors."""
    pass


class LeagueNotFoundError(LeaguesServiceError):
    """Raised when a league does not exist or is inaccessible."""
    pass


class InvalidInviteCodeError(LeaguesServiceError):
    """Raised when an invite code does not match any league."""
    pass


class NotMemberError(LeaguesServiceError):
    """Raised when a user tries to perform an action requiring membership."""
    pass


class FreeQuotaExhaustedError(LeaguesServiceError):
    """Raised when a user who already created a free league tries again."""
    pass


class PaymentRequiredError(LeaguesServiceError):
    """Raised when a paid league is requested while payments are unavailable."""
    pass


class InvalidLeagueDataError(LeaguesServiceError):
    """Raised when league creation input is missing or inconsistent."""
    pass

