"""
Response Validator.

The central state machine of the challenge-response core:

    PENDING ──match──────────────▶ ACCEPTED            (terminal)
       │ ──now > expires_at──────▶ REJECTED_EXPIRED    (terminal)
       │ ──attempts > max────────▶ REJECTED_EXHAUSTED  (terminal)
       └ ──mismatch──────────────▶ PENDING, attempt counted

Replay protection comes from two store primitives: the atomic attempt
counter and the conditional consumed flip. Of two concurrent correct
submissions only the one that flips ``consumed`` is accepted.
"""

import asyncio
import logging
import secrets
from datetime import datetime
from typing import Optional, Tuple, Union

from custody_challenge.application.ocra import (
    compute_response,
    matches_any,
    normalize_response,
)
from custody_challenge.application.results import RejectionReason, ValidationOutcome
from custody_challenge.config import ChallengeSettings
from custody_challenge.domain.aggregates import Challenge
from custody_challenge.domain.errors import SecretNotFoundError
from custody_challenge.domain.events import ChallengeRejected, ChallengeValidated
from custody_challenge.infrastructure.adapters.challenge_store import Clock, utc_now
from custody_challenge.infrastructure.ports.audit import AuditSink
from custody_challenge.infrastructure.ports.challenge_store import ChallengeStore
from custody_challenge.infrastructure.ports.secrets import SecretProvider


logger = logging.getLogger("custody_challenge.application.validator")


def new_key_release_id() -> str:
    return f"release_{secrets.token_hex(12)}"


class ResponseValidator:
    """
    Validates guardian responses against stored challenges.

    Usage:
        validator = ResponseValidator(store, secret_provider)
        outcome = await validator.validate(challenge_id, "12345678")
        if outcome.accepted:
            ...
    """

    def __init__(
        self,
        store: ChallengeStore,
        secret_provider: SecretProvider,
        settings: Optional[ChallengeSettings] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.secrets = secret_provider
        self.settings = settings or ChallengeSettings()
        self.audit_sink = audit_sink
        self._clock = clock or utc_now

    async def validate(
        self,
        challenge_id: str,
        submitted_response: str,
        transaction_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ValidationOutcome:
        """
        Validate a submitted response.

        Args:
            challenge_id: Identifier returned at issuance
            submitted_response: Code computed by the guardian
            transaction_id: Optional binding check against the record
            timeout: Deadline in seconds for the checks before the
                consume. The consume and its audit record always finish.

        Returns:
            ValidationOutcome (never raises for a rejection)

        Raises:
            StorageUnavailableError / SecretProviderUnavailableError:
                infrastructure failures, retryable
            asyncio.TimeoutError: the checks ran past ``timeout``
        """
        checks = self._check(challenge_id, submitted_response, transaction_id)
        if timeout is None:
            verdict = await checks
        else:
            verdict = await asyncio.wait_for(checks, timeout=timeout)

        if isinstance(verdict, ValidationOutcome):
            return verdict

        challenge, attempt, now = verdict
        # Once the consumed flag may flip, the key release must be reported
        return await asyncio.shield(self._consume(challenge, attempt, now))

    async def _check(
        self,
        challenge_id: str,
        submitted_response: str,
        transaction_id: Optional[str],
    ) -> Union[ValidationOutcome, Tuple[Challenge, int, datetime]]:
        # 1. Fetch. Unknown and TTL-evicted look the same.
        challenge = await self.store.get(challenge_id)
        if challenge is None:
            return await self._reject(challenge_id, RejectionReason.CHALLENGE_NOT_FOUND)

        if transaction_id is not None and transaction_id != challenge.transaction_id:
            logger.warning(
                f"Challenge {challenge_id} presented for foreign transaction"
            )
            return await self._reject(
                challenge_id, RejectionReason.CHALLENGE_NOT_FOUND, challenge
            )

        # 2. Authoritative expiry check; store TTL is only a backstop
        now = self._clock()
        if challenge.is_expired(now):
            await self.store.delete(challenge_id)
            return await self._reject(challenge_id, RejectionReason.EXPIRED, challenge)

        # 3. Replay
        if challenge.consumed:
            return await self._reject(
                challenge_id, RejectionReason.ALREADY_CONSUMED, challenge
            )

        # 4. Count the attempt before any comparison
        attempt = await self.store.increment_attempt(challenge_id)
        if attempt is None:
            return await self._reject(
                challenge_id, RejectionReason.CHALLENGE_NOT_FOUND, challenge
            )
        if attempt > challenge.max_attempts:
            await self.store.delete(challenge_id)
            return await self._reject(
                challenge_id, RejectionReason.ATTEMPTS_EXHAUSTED, challenge, attempt
            )

        # 5. Expected responses across the TOTP tolerance window
        try:
            candidates = await self._expected_responses(challenge, now)
        except SecretNotFoundError:
            return await self._reject(
                challenge_id, RejectionReason.SECRET_NOT_FOUND, challenge, attempt
            )

        # 6. Constant-time comparison
        submitted = normalize_response(
            submitted_response, self.settings.response_digits
        )
        if not matches_any(submitted, candidates):
            return await self._reject(
                challenge_id, RejectionReason.INVALID_RESPONSE, challenge, attempt
            )

        return challenge, attempt, now

    async def _consume(
        self, challenge: Challenge, attempt: int, now: datetime
    ) -> ValidationOutcome:
        # 7. Conditional consume
        challenge_id = challenge.challenge_id
        consumed = await self.store.mark_consumed(
            challenge_id,
            consumed_at=now,
            retain_seconds=self.settings.consumed_retention_seconds,
        )
        if consumed:
            return await self._accept(challenge, attempt)

        # Lost to a concurrent consume (replay) or the record vanished
        if await self.store.get(challenge_id) is None:
            return await self._reject(
                challenge_id, RejectionReason.CHALLENGE_NOT_FOUND, challenge, attempt
            )
        return await self._reject(
            challenge_id, RejectionReason.ALREADY_CONSUMED, challenge, attempt
        )

    async def _expected_responses(self, challenge: Challenge, now) -> list[str]:
        contextual_secret = await self.secrets.get_contextual_secret(
            challenge.transaction_id
        )
        window = self.settings.valid_window
        expected = []
        for offset in range(-window, window + 1):
            code = await self.secrets.get_totp_code(
                challenge.guardian_id, time_window_offset=offset, for_time=now
            )
            expected.append(
                compute_response(
                    code,
                    contextual_secret,
                    challenge.nonce,
                    digits=self.settings.response_digits,
                )
            )
        return expected

    async def _accept(self, challenge: Challenge, attempt: int) -> ValidationOutcome:
        outcome = ValidationOutcome.accept(
            challenge.challenge_id,
            key_release_id=new_key_release_id(),
            attempt=attempt,
        )
        logger.info(
            f"Challenge {challenge.challenge_id} accepted for transaction "
            f"{challenge.transaction_id} (attempt {attempt})"
        )
        if self.audit_sink:
            await self.audit_sink.record(
                ChallengeValidated(
                    challenge_id=challenge.challenge_id,
                    transaction_id=challenge.transaction_id,
                    guardian_id=challenge.guardian_id,
                    attempt=attempt,
                    key_release_id=outcome.key_release_id,
                )
            )
        return outcome

    async def _reject(
        self,
        challenge_id: str,
        reason: RejectionReason,
        challenge: Optional[Challenge] = None,
        attempt: Optional[int] = None,
    ) -> ValidationOutcome:
        logger.warning(f"Challenge {challenge_id} rejected: {reason.value}")
        if self.audit_sink:
            await self.audit_sink.record(
                ChallengeRejected(
                    challenge_id=challenge_id,
                    reason=reason.value,
                    transaction_id=challenge.transaction_id if challenge else None,
                    guardian_id=challenge.guardian_id if challenge else None,
                    attempt=attempt,
                )
            )
        return ValidationOutcome.reject(challenge_id, reason, attempt=attempt)
