"""
Error taxonomy of the tracker engine.

Admission and creation failures are raised to the caller as these typed
errors so the caller can choose between an upgrade flow
(PaymentRequiredError, FreeQuotaExhaustedError) and a retry affordance
(NetworkFailureError, RequestTimeoutError).
"""


class TrackerError(Exception):
    """Base exception for all tracker engine errors."""
    pass


class NotAuthenticatedError(TrackerError):
    """Raised when an operation needs a caller identity and there is none."""
    pass


class InvalidCodeError(TrackerError):
    """Raised when an invite code is empty or matches no league."""
    pass


class FreeQuotaExhaustedError(TrackerError):
    """Raised when the caller already used their one free league."""
    pass


class PaymentRequiredError(TrackerError):
    """Raised when entry or creation needs a plan tier the caller lacks."""

    def __init__(self, message, required_tier=None):
        super().__init__(message)
        self.required_tier = required_tier


class NetworkFailureError(TrackerError):
    """Raised for transient backend failures. Safe to retry."""
    pass


class RequestTimeoutError(TrackerError):
    """Raised when a request exceeds the client-side ceiling."""
    pass


class WriteRejectedError(TrackerError):
    """Raised when a durable write failed after an optimistic apply."""
    pass


class AcceptanceFailedError(TrackerError):
    """Raised when recording plan tier acceptance failed."""
    pass


class AdmissionIncompleteError(TrackerError):
    """Raised when continuing before admission has succeeded."""
    pass


class RequestRejectedError(TrackerError):
    """Raised when the backend refuses a request for a non-transient reason."""
    pass
