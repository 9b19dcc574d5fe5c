"""Domain layer for challenge-response authentication."""

from custody_challenge.domain.aggregates import (
    Challenge,
    ChallengeState,
)
from custody_challenge.domain.value_objects import (
    GuardianSeed,
    ContextualSecret,
)
from custody_challenge.domain.events import (
    ChallengeAuditEvent,
    ChallengeIssued,
    ChallengeValidated,
    ChallengeRejected,
)
from custody_challenge.domain.errors import (
    ChallengeDomainError,
    InfrastructureError,
    StorageUnavailableError,
    SecretProviderUnavailableError,
    ValidationTimeoutError,
    SecretNotFoundError,
    ContractViolationError,
    VerificationFailedError,
)

__all__ = [
    # Aggregates
    "Challenge",
    "ChallengeState",
    # Value Objects
    "GuardianSeed",
    "ContextualSecret",
    # Events
    "ChallengeAuditEvent",
    "ChallengeIssued",
    "ChallengeValidated",
    "ChallengeRejected",
    # Errors
    "ChallengeDomainError",
    "InfrastructureError",
    "StorageUnavailableError",
    "SecretProviderUnavailableError",
    "ValidationTimeoutError",
    "SecretNotFoundError",
    "ContractViolationError",
    "VerificationFailedError",
]
