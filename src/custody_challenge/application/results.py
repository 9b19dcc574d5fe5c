"""
Challenge result types.

These represent the outcomes of issuance and validation. Rejections are
values, not exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Any

from custody_challenge.domain.aggregates import ChallengeState
from custody_challenge.domain.errors import VerificationFailedError


class RejectionReason(str, Enum):
    """Internal rejection subtypes. Kept distinct for audit only."""

    CHALLENGE_NOT_FOUND = "challenge_not_found"
    EXPIRED = "expired"
    ALREADY_CONSUMED = "already_consumed"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    INVALID_RESPONSE = "invalid_response"
    SECRET_NOT_FOUND = "secret_not_found"


GENERIC_FAILURE_MESSAGE = "Verification failed"


@dataclass
class IssuedChallenge:
    """
    View of a freshly issued challenge, returned to the caller.

    Contains what the guardian needs to compute a response (nonce,
    display code, digit count) and nothing secret.
    """

    challenge_id: str
    transaction_id: str
    guardian_id: str
    nonce: str  # hex
    display_code: str
    issued_at: datetime
    expires_at: datetime
    response_digits: int

    @property
    def expires_in(self) -> int:
        return max(0, int((self.expires_at - self.issued_at).total_seconds()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "challenge_id": self.challenge_id,
            "transaction_id": self.transaction_id,
            "guardian_id": self.guardian_id,
            "nonce": self.nonce,
            "display_code": self.display_code,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "expires_in": self.expires_in,
            "response_digits": self.response_digits,
        }


@dataclass
class ValidationOutcome:
    """
    Result of a validation attempt.

    Use factory methods to create instances.
    """

    accepted: bool
    challenge_id: str
    reason: Optional[RejectionReason] = None
    key_release_id: Optional[str] = None
    attempt: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def accept(
        cls,
        challenge_id: str,
        key_release_id: str,
        attempt: Optional[int] = None,
    ) -> "ValidationOutcome":
        """Create an accepted outcome."""
        return cls(
            accepted=True,
            challenge_id=challenge_id,
            key_release_id=key_release_id,
            attempt=attempt,
        )

    @classmethod
    def reject(
        cls,
        challenge_id: str,
        reason: RejectionReason,
        attempt: Optional[int] = None,
    ) -> "ValidationOutcome":
        """Create a rejected outcome."""
        return cls(
            accepted=False,
            challenge_id=challenge_id,
            reason=reason,
            attempt=attempt,
        )

    @property
    def is_terminal(self) -> bool:
        """False only for an invalid response that still has attempts left."""
        return self.accepted or self.reason != RejectionReason.INVALID_RESPONSE

    def to_dict(self) -> dict[str, Any]:
        """Internal view, with the specific rejection reason."""
        data: dict[str, Any] = {"accepted": self.accepted}
        if self.reason is not None:
            data["reason"] = self.reason.value
        if self.key_release_id is not None:
            data["key_release_id"] = self.key_release_id
        return data

    def to_public_dict(self) -> dict[str, Any]:
        """Caller-facing view. Rejection subtypes are not distinguishable."""
        if self.accepted:
            return {"accepted": True, "key_release_id": self.key_release_id}
        return {"accepted": False, "reason": GENERIC_FAILURE_MESSAGE}

    def raise_for_status(self) -> "ValidationOutcome":
        """Raise VerificationFailedError unless accepted."""
        if not self.accepted:
            raise VerificationFailedError(
                reason=self.reason.value if self.reason else None
            )
        return self


@dataclass
class ChallengeStatus:
    """Internal status snapshot of a challenge (audit/operations)."""

    challenge_id: str
    exists: bool
    state: Optional[ChallengeState] = None
    transaction_id: Optional[str] = None
    guardian_id: Optional[str] = None
    attempts_remaining: Optional[int] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def missing(cls, challenge_id: str) -> "ChallengeStatus":
        return cls(challenge_id=challenge_id, exists=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "challenge_id": self.challenge_id,
            "exists": self.exists,
            "state": self.state.value if self.state else None,
            "transaction_id": self.transaction_id,
            "guardian_id": self.guardian_id,
            "attempts_remaining": self.attempts_remaining,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
