"""
py-custody-challenge: OCRA-like challenge-response authentication for
multi-signature custody approvals.

Issues single-use, time-bound challenges bound to a transaction and a
guardian, and validates responses mixing the guardian's TOTP code, a
transaction secret and the challenge nonce.
"""

__version__ = "0.1.0"

from custody_challenge.config import ChallengeSettings
from custody_challenge.domain import (
    Challenge,
    ChallengeState,
    GuardianSeed,
    ChallengeDomainError,
    InfrastructureError,
    StorageUnavailableError,
    SecretProviderUnavailableError,
    ValidationTimeoutError,
    SecretNotFoundError,
    ContractViolationError,
    VerificationFailedError,
)
from custody_challenge.application import (
    compute_response,
    RejectionReason,
    IssuedChallenge,
    ValidationOutcome,
    ChallengeStatus,
    ChallengeGenerator,
    ResponseValidator,
    ChallengeResponseService,
)
from custody_challenge.factory import (
    create_default_store,
    create_challenge_service,
    create_secret_provider,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "ChallengeSettings",
    # Domain
    "Challenge",
    "ChallengeState",
    "GuardianSeed",
    # Errors
    "ChallengeDomainError",
    "InfrastructureError",
    "StorageUnavailableError",
    "SecretProviderUnavailableError",
    "ValidationTimeoutError",
    "SecretNotFoundError",
    "ContractViolationError",
    "VerificationFailedError",
    # Application
    "compute_response",
    "RejectionReason",
    "IssuedChallenge",
    "ValidationOutcome",
    "ChallengeStatus",
    "ChallengeGenerator",
    "ResponseValidator",
    "ChallengeResponseService",
    # Factory
    "create_default_store",
    "create_challenge_service",
    "create_secret_provider",
]
