from typing import Protocol, runtime_checkable

from custody_challenge.domain.events import ChallengeAuditEvent


@runtime_checkable
class AuditSink(Protocol):
    """
    Protocol for recording security-relevant challenge events.

    Rejections are audit events, not errors.
    """

    async def record(self, event: ChallengeAuditEvent) -> None:
        """Record an audit event."""
        ...
