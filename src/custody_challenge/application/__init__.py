"""Application layer: issuance, validation and the service facade."""

from custody_challenge.application.ocra import (
    compute_response,
    normalize_response,
    matches_any,
)
from custody_challenge.application.results import (
    RejectionReason,
    IssuedChallenge,
    ValidationOutcome,
    ChallengeStatus,
    GENERIC_FAILURE_MESSAGE,
)
from custody_challenge.application.generator import ChallengeGenerator
from custody_challenge.application.validator import ResponseValidator
from custody_challenge.application.service import ChallengeResponseService

__all__ = [
    # OCRA
    "compute_response",
    "normalize_response",
    "matches_any",
    # Results
    "RejectionReason",
    "IssuedChallenge",
    "ValidationOutcome",
    "ChallengeStatus",
    "GENERIC_FAILURE_MESSAGE",
    # Components
    "ChallengeGenerator",
    "ResponseValidator",
    "ChallengeResponseService",
]
