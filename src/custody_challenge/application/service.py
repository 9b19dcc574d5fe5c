"""
Challenge-Response Service.

The two operations exposed to the surrounding application layer,
plus status lookup and housekeeping.
"""

import asyncio
import logging
from typing import Optional

from custody_challenge.application.generator import ChallengeGenerator
from custody_challenge.application.results import (
    ChallengeStatus,
    IssuedChallenge,
    ValidationOutcome,
)
from custody_challenge.application.validator import ResponseValidator
from custody_challenge.domain.errors import ContractViolationError, ValidationTimeoutError
from custody_challenge.infrastructure.adapters.challenge_store import Clock, utc_now
from custody_challenge.infrastructure.ports.challenge_store import ChallengeStore


logger = logging.getLogger("custody_challenge.application.service")


class ChallengeResponseService:
    """
    Facade over the generator and the validator.

    Usage:
        service = create_challenge_service(secret_provider)

        issued = await service.issue_challenge("tx-42", "cfo-1")
        outcome = await service.validate_response(
            issued.challenge_id, response, timeout=2.0
        )
    """

    def __init__(
        self,
        generator: ChallengeGenerator,
        validator: ResponseValidator,
        store: ChallengeStore,
        clock: Optional[Clock] = None,
    ):
        self.generator = generator
        self.validator = validator
        self.store = store
        self._clock = clock or utc_now

    async def issue_challenge(
        self, transaction_id: str, guardian_id: str
    ) -> IssuedChallenge:
        return await self.generator.issue(transaction_id, guardian_id)

    async def validate_response(
        self,
        challenge_id: str,
        submitted_response: str,
        *,
        transaction_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ValidationOutcome:
        """
        Validate a response, optionally bounded by ``timeout`` seconds.

        The deadline covers the checks up to the consume. A timed-out
        call raises ValidationTimeoutError and an attempt the store
        already committed stays counted. A call that reached the consume
        always reports its outcome, so an accepted key release is never
        lost to the deadline.
        """
        if not challenge_id:
            raise ContractViolationError("challenge_id is required")
        if timeout is not None and timeout <= 0:
            raise ContractViolationError("timeout must be positive")

        try:
            return await self.validator.validate(
                challenge_id,
                submitted_response,
                transaction_id=transaction_id,
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Validation of challenge {challenge_id} timed out after {timeout}s")
            raise ValidationTimeoutError(
                details={"challenge_id": challenge_id, "timeout": timeout}
            ) from e

    async def get_challenge_status(self, challenge_id: str) -> ChallengeStatus:
        """Internal status snapshot. Not for caller-facing responses."""
        challenge = await self.store.get(challenge_id)
        if challenge is None:
            return ChallengeStatus.missing(challenge_id)

        return ChallengeStatus(
            challenge_id=challenge.challenge_id,
            exists=True,
            state=challenge.state(self._clock()),
            transaction_id=challenge.transaction_id,
            guardian_id=challenge.guardian_id,
            attempts_remaining=challenge.attempts_remaining,
            expires_at=challenge.expires_at,
        )

    async def cleanup_expired(self) -> int:
        """Remove challenges past their TTL. Returns count removed."""
        removed = await self.store.delete_expired()
        if removed:
            logger.info(f"Cleaned {removed} expired challenges")
        return removed
