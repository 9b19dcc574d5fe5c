"""
Audit events for the challenge-response core.

Events are immutable records of security-relevant facts. They carry
identifiers and reasons only, never nonces, secrets or submitted codes.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional, Any


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _event_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ChallengeAuditEvent:
    """Base class for challenge audit events."""

    challenge_id: str
    event_id: str = field(default_factory=_event_id, kw_only=True)
    occurred_at: datetime = field(default_factory=_now, kw_only=True)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        data["occurred_at"] = self.occurred_at.isoformat()
        return data


@dataclass(frozen=True)
class ChallengeIssued(ChallengeAuditEvent):
    """Raised when a challenge is minted for a guardian."""

    transaction_id: str
    guardian_id: str
    expires_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return data


@dataclass(frozen=True)
class ChallengeValidated(ChallengeAuditEvent):
    """Raised when a response is accepted and the challenge consumed."""

    transaction_id: str
    guardian_id: str
    attempt: int
    key_release_id: str


@dataclass(frozen=True)
class ChallengeRejected(ChallengeAuditEvent):
    """Raised for every rejected validation, with the internal reason."""

    reason: str
    transaction_id: Optional[str] = None
    guardian_id: Optional[str] = None
    attempt: Optional[int] = None
