"""Port interfaces (Protocols) for infrastructure adapters."""

from custody_challenge.infrastructure.ports.challenge_store import (
    ChallengeStore,
)
from custody_challenge.infrastructure.ports.secrets import (
    SecretProvider,
    GuardianSeedRepository,
    ContextualSecretRepository,
)
from custody_challenge.infrastructure.ports.audit import (
    AuditSink,
)

__all__ = [
    # Store
    "ChallengeStore",
    # Secrets
    "SecretProvider",
    "GuardianSeedRepository",
    "ContextualSecretRepository",
    # Audit
    "AuditSink",
]
