"""
Admission Controller.

Turns an invite code into a league the caller may enter, gating entry on
the league's plan tier, and creates leagues under the free league quota.

Every backend round trip is raced against the request ceiling
(LEAGUE_REQUEST_TIMEOUT_SECONDS). A timed out admission resets the
controller; a timed out creation keeps its creation key so that retrying
the same request cannot create a second league.
"""

import asyncio
import logging
import uuid
from typing import Optional

from django.conf import settings

from apps.leagues.choices import PlanTier
from apps.leagues.models import normalize_invite_code

from .exceptions import (
    TrackerError,
    NotAuthenticatedError,
    InvalidCodeError,
    PaymentRequiredError,
    RequestTimeoutError,
    NetworkFailureError,
    AcceptanceFailedError,
    AdmissionIncompleteError,
    RequestRejectedError,
)
from .gateway import LeagueGateway
from .types import AdmissionResult

logger = logging.getLogger(__name__)


class AdmissionController:

    def __init__(self, gateway: LeagueGateway, *, timeout: Optional[float] = None):
        self.gateway = gateway
        self.timeout = settings.LEAGUE_REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
        self.result: Optional[AdmissionResult] = None
        self._pending_creation = None

    @property
    def needs_acceptance(self) -> bool:
        return self.result is not None and self.result.needs_acceptance

    def reset(self):
        """Forget any admission in progress."""
        self.result = None

    def _require_caller(self):
        if self.gateway.caller_id is None:
            raise NotAuthenticatedError("Sign in to join a league")

    async def _bounded(self, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(f"No response within {self.timeout} seconds")

    # ------------------------------------------------------------------
    # Joining
    # ------------------------------------------------------------------

    async def admit(self, invite_code: str) -> AdmissionResult:
        """
        Resolve an invite code and evaluate the tier the league requires.

        The caller becomes a member as part of resolving the code; doing
        it again for a league they already joined changes nothing.

        Raises:
            InvalidCodeError: If the code is empty or matches no league
            NotAuthenticatedError: If the gateway has no caller
            NetworkFailureError: On a transient backend failure
            RequestTimeoutError: If the ceiling was exceeded
        """
        self.reset()
        self._require_caller()
        code = normalize_invite_code(invite_code)
        if not code:
            raise InvalidCodeError("Enter an invite code")

        try:
            result = await self._bounded(self._evaluate(code))
        except TrackerError:
            self.reset()
            raise

        self.result = result
        logger.info(
            "Admitted to league %s (required tier %s, caller tier %s)",
            result.league.id, result.required_tier, result.caller_tier,
        )
        return result

    async def _evaluate(self, code):
        league_id = await self.gateway.resolve_invite_code(code)
        league = await self.gateway.fetch_league(league_id)
        caller_tier = await self.gateway.fetch_plan_tier()
        return AdmissionResult.evaluate(league, caller_tier)

    async def accept_tier(self, tier) -> AdmissionResult:
        """
        Record the caller's acceptance of a plan tier and re-evaluate.

        Accepting the tier the caller already holds is a no-op.

        Raises:
            AdmissionIncompleteError: If no admission succeeded yet
            AcceptanceFailedError: If the tier could not be recorded
        """
        if self.result is None:
            raise AdmissionIncompleteError("Resolve an invite code first")

        try:
            tier = PlanTier.parse(tier)
        except ValueError as e:
            raise AcceptanceFailedError(str(e)) from e

        if tier == self.result.caller_tier:
            return self.result

        try:
            accepted = await self._bounded(self.gateway.accept_plan_tier(tier))
        except TrackerError as e:
            logger.warning("Plan tier acceptance failed: %s", e)
            raise AcceptanceFailedError(f"Could not accept plan {tier}") from e

        self.result = AdmissionResult.evaluate(self.result.league, accepted)
        return self.result

    def continue_(self) -> str:
        """
        Return the admitted league's id once entry is allowed.

        Raises:
            AdmissionIncompleteError: If no admission succeeded
            PaymentRequiredError: If a plan tier is still to be accepted
        """
        if self.result is None:
            raise AdmissionIncompleteError("No league admitted")
        if self.result.needs_acceptance:
            raise PaymentRequiredError(
                f"Plan {self.result.required_tier} required",
                required_tier=self.result.required_tier,
            )
        return self.result.league.id

    # ------------------------------------------------------------------
    # Creating
    # ------------------------------------------------------------------

    async def create_league(
        self,
        name: str,
        activity: str,
        is_free: bool,
        plan_tier=None,
        month_key: Optional[str] = None,
        creation_key: Optional[str] = None,
    ) -> str:
        """
        Create a league owned by the caller and return its id.

        Retrying the same request after a timeout or network failure
        reuses the previous creation key, so a slow first attempt that
        did succeed is returned instead of duplicated.

        Raises:
            NotAuthenticatedError: If the gateway has no caller
            RequestRejectedError: If name, activity or tier are invalid
            PaymentRequiredError: For paid leagues while the paywall is on
            FreeQuotaExhaustedError: If the caller already used their free league
            NetworkFailureError: On a transient backend failure
            RequestTimeoutError: If the ceiling was exceeded
        """
        name = (name or '').strip()
        activity = (activity or '').strip()[:settings.ACTIVITY_MAX_LENGTH]
        if not name:
            raise RequestRejectedError("League name is required")
        if not activity:
            raise RequestRejectedError("Activity is required")
        self._require_caller()

        tier = None
        if not is_free:
            try:
                tier = PlanTier.parse(plan_tier)
            except ValueError as e:
                raise RequestRejectedError(str(e)) from e
            if tier == PlanTier.FREE:
                raise RequestRejectedError("A paid league needs a paid plan tier")
            if settings.PAYWALL_ENABLED:
                raise PaymentRequiredError(
                    "Paid leagues are not available yet", required_tier=tier,
                )

        request = (name, activity, is_free, tier, month_key)
        if creation_key is None:
            if self._pending_creation is not None and self._pending_creation[0] == request:
                creation_key = self._pending_creation[1]
            else:
                creation_key = uuid.uuid4().hex
        self._pending_creation = (request, creation_key)

        try:
            league_id = await self._bounded(self.gateway.create_league_and_join(
                name=name,
                activity=activity,
                month_key=month_key,
                is_free=is_free,
                plan_tier=tier,
                creation_key=creation_key,
            ))
        except (RequestTimeoutError, NetworkFailureError):
            raise
        except TrackerError:
            self._pending_creation = None
            raise

        self._pending_creation = None
        logger.info("Created league %s (free=%s)", league_id, is_free)
        return league_id
