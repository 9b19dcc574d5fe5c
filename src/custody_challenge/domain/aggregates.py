"""
Domain aggregates for challenge-response authentication.

A Challenge is issued to one guardian for one pending transaction and
may be consumed at most once. It is mutated only through the store's
atomic operations (attempt counter, consumed flag).
"""

import hashlib
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Optional, Any


class ChallengeState(str, Enum):
    """Lifecycle state of a challenge at a given instant."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"


# ═══════════════════════════════════════════════════════════════
# CHALLENGE AGGREGATE ROOT
# ═══════════════════════════════════════════════════════════════


class Challenge:
    """
    Aggregate root for a single OCRA-like challenge.

    Usage:
        challenge = Challenge.create(
            challenge_id="c-1",
            transaction_id="tx-42",
            guardian_id="cfo-1",
            nonce=secrets.token_bytes(16),
            now=datetime.now(timezone.utc),
        )
        challenge.state(now)  # ChallengeState.PENDING
    """

    DEFAULT_TTL_SECONDS = 300
    MAX_ATTEMPTS = 5

    def __init__(
        self,
        challenge_id: str,
        transaction_id: str,
        guardian_id: str,
        nonce: bytes,
        issued_at: datetime,
        expires_at: datetime,
        attempt_count: int = 0,
        max_attempts: int = MAX_ATTEMPTS,
        consumed: bool = False,
        consumed_at: Optional[datetime] = None,
    ):
        self.challenge_id = challenge_id
        self.transaction_id = transaction_id
        self.guardian_id = guardian_id
        self.nonce = nonce
        self.issued_at = issued_at
        self.expires_at = expires_at
        self.attempt_count = attempt_count
        self.max_attempts = max_attempts
        self.consumed = consumed
        self.consumed_at = consumed_at

    @classmethod
    def create(
        cls,
        challenge_id: str,
        transaction_id: str,
        guardian_id: str,
        nonce: bytes,
        now: datetime,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
    ) -> "Challenge":
        """Factory method for a fresh, unconsumed challenge."""
        return cls(
            challenge_id=challenge_id,
            transaction_id=transaction_id,
            guardian_id=guardian_id,
            nonce=nonce,
            issued_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
            attempt_count=0,
            max_attempts=max_attempts,
            consumed=False,
        )

    # ───────────────────────────────────────────────────────────
    # Queries
    # ───────────────────────────────────────────────────────────

    @property
    def display_code(self) -> str:
        """Short code shown to the guardian alongside the transaction."""
        return hashlib.sha256(self.nonce).hexdigest()[:16].upper()

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempt_count)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now > self.expires_at

    def is_exhausted(self) -> bool:
        return self.attempt_count >= self.max_attempts

    def state(self, now: Optional[datetime] = None) -> ChallengeState:
        if self.consumed:
            return ChallengeState.ACCEPTED
        if self.is_expired(now):
            return ChallengeState.EXPIRED
        if self.is_exhausted():
            return ChallengeState.EXHAUSTED
        return ChallengeState.PENDING

    def seconds_until_expiry(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        return max(0, int((self.expires_at - now).total_seconds()))

    # ───────────────────────────────────────────────────────────
    # Serialization
    # ───────────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Serialize challenge to dictionary for storage."""
        return {
            "challenge_id": self.challenge_id,
            "transaction_id": self.transaction_id,
            "guardian_id": self.guardian_id,
            "nonce": self.nonce.hex(),
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "attempt_count": self.attempt_count,
            "max_attempts": self.max_attempts,
            "consumed": self.consumed,
            "consumed_at": self.consumed_at.isoformat() if self.consumed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Challenge":
        """Deserialize challenge from dictionary."""
        nonce = data["nonce"]
        if isinstance(nonce, str):
            nonce = bytes.fromhex(nonce)

        consumed = data.get("consumed", False)
        if isinstance(consumed, str):
            consumed = consumed in ("1", "true", "True")

        consumed_at = data.get("consumed_at")
        if isinstance(consumed_at, str) and consumed_at:
            consumed_at = _parse_datetime(consumed_at)
        elif not consumed_at:
            consumed_at = None

        return cls(
            challenge_id=data["challenge_id"],
            transaction_id=data["transaction_id"],
            guardian_id=data["guardian_id"],
            nonce=nonce,
            issued_at=_parse_datetime(data["issued_at"]),
            expires_at=_parse_datetime(data["expires_at"]),
            attempt_count=int(data.get("attempt_count", 0)),
            max_attempts=int(data.get("max_attempts", cls.MAX_ATTEMPTS)),
            consumed=bool(consumed),
            consumed_at=consumed_at,
        )

    def __repr__(self) -> str:
        return (
            f"Challenge(challenge_id={self.challenge_id!r}, "
            f"transaction_id={self.transaction_id!r}, "
            f"guardian_id={self.guardian_id!r}, "
            f"attempt_count={self.attempt_count}, consumed={self.consumed})"
        )


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        # Naive timestamps from storage are UTC
        value = value.replace(tzinfo=timezone.utc)
    return value
