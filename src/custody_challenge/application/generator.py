"""
Challenge Generator.

Mints a fresh challenge for a (transaction, guardian) pair and writes it
through the challenge store.
"""

import logging
import secrets
import uuid
from typing import Optional, Callable

from custody_challenge.application.results import IssuedChallenge
from custody_challenge.config import ChallengeSettings
from custody_challenge.domain.aggregates import Challenge
from custody_challenge.domain.errors import ContractViolationError
from custody_challenge.domain.events import ChallengeIssued
from custody_challenge.infrastructure.adapters.challenge_store import Clock, utc_now
from custody_challenge.infrastructure.ports.audit import AuditSink
from custody_challenge.infrastructure.ports.challenge_store import ChallengeStore


logger = logging.getLogger("custody_challenge.application.generator")


def default_challenge_id() -> str:
    # uuid4 draws from os.urandom
    return str(uuid.uuid4())


class ChallengeGenerator:
    """
    Issues challenges.

    Issuing a new challenge for a pair never invalidates an earlier,
    unexpired one; every challenge id is independent. A failed store
    write leaves nothing behind: callers retry with a fresh ``issue``.
    """

    def __init__(
        self,
        store: ChallengeStore,
        settings: Optional[ChallengeSettings] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self.settings = settings or ChallengeSettings()
        self.audit_sink = audit_sink
        self._clock = clock or utc_now
        self._id_factory = id_factory or default_challenge_id

    async def issue(self, transaction_id: str, guardian_id: str) -> IssuedChallenge:
        if not transaction_id:
            raise ContractViolationError("transaction_id is required")
        if not guardian_id:
            raise ContractViolationError("guardian_id is required")

        challenge = Challenge.create(
            challenge_id=self._id_factory(),
            transaction_id=transaction_id,
            guardian_id=guardian_id,
            nonce=secrets.token_bytes(self.settings.nonce_bytes),
            now=self._clock(),
            ttl_seconds=self.settings.ttl_seconds,
            max_attempts=self.settings.max_attempts,
        )

        await self.store.put(challenge, ttl_seconds=self.settings.ttl_seconds)

        logger.info(
            f"Issued challenge {challenge.challenge_id} for transaction "
            f"{transaction_id} / guardian {guardian_id}"
        )
        if self.audit_sink:
            await self.audit_sink.record(
                ChallengeIssued(
                    challenge_id=challenge.challenge_id,
                    transaction_id=transaction_id,
                    guardian_id=guardian_id,
                    expires_at=challenge.expires_at,
                )
            )

        return IssuedChallenge(
            challenge_id=challenge.challenge_id,
            transaction_id=challenge.transaction_id,
            guardian_id=challenge.guardian_id,
            nonce=challenge.nonce.hex(),
            display_code=challenge.display_code,
            issued_at=challenge.issued_at,
            expires_at=challenge.expires_at,
            response_digits=self.settings.response_digits,
        )
