import logging
from typing import List, Optional

from custody_challenge.domain.events import (
    ChallengeAuditEvent,
    ChallengeRejected,
)
from custody_challenge.infrastructure.ports.audit import AuditSink

logger = logging.getLogger("custody_challenge.audit")


class LoggingAuditSink(AuditSink):
    """Writes audit events to the ``custody_challenge.audit`` logger."""

    def __init__(self, audit_logger: Optional[logging.Logger] = None):
        self._logger = audit_logger or logger

    async def record(self, event: ChallengeAuditEvent) -> None:
        # Rejections are expected outcomes: warning, never error
        level = logging.WARNING if isinstance(event, ChallengeRejected) else logging.INFO
        self._logger.log(
            level,
            f"{event.event_type} challenge={event.challenge_id}",
            extra={"audit": event.to_dict()},
        )


class InMemoryAuditSink(AuditSink):
    """In-memory implementation of AuditSink for development and testing."""

    def __init__(self):
        self.events: List[ChallengeAuditEvent] = []

    async def record(self, event: ChallengeAuditEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> List[ChallengeAuditEvent]:
        return [e for e in self.events if isinstance(e, event_type)]

    def clear(self) -> None:
        """Clear all events (for testing)."""
        self.events.clear()
