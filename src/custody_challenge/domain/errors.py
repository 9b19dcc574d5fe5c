"""
Domain errors for the challenge-response core.

Authentication rejections are NOT errors: they are returned as
ValidationOutcome values. The classes below cover infrastructure
failures (retryable), collaborator lookups and contract violations.
"""

from typing import Optional, Any


class ChallengeDomainError(Exception):
    """Base class for all challenge domain errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str = "CHALLENGE_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


# ═══════════════════════════════════════════════════════════════
# INFRASTRUCTURE (retryable)
# ═══════════════════════════════════════════════════════════════


class InfrastructureError(ChallengeDomainError):
    """Raised when a backing service fails. Callers may retry."""

    retryable = True


class StorageUnavailableError(InfrastructureError):
    """Raised when the challenge store cannot be reached."""

    def __init__(
        self,
        message: str = "Challenge store unavailable",
        code: str = "STORAGE_UNAVAILABLE",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class SecretProviderUnavailableError(InfrastructureError):
    """Raised when the seed/secret provider cannot be reached."""

    def __init__(
        self,
        message: str = "Secret provider unavailable",
        code: str = "SECRET_PROVIDER_UNAVAILABLE",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class ValidationTimeoutError(InfrastructureError):
    """Raised when a validation call exceeds the caller-supplied timeout."""

    def __init__(
        self,
        message: str = "Validation timed out",
        code: str = "VALIDATION_TIMEOUT",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


# ═══════════════════════════════════════════════════════════════
# COLLABORATOR LOOKUPS
# ═══════════════════════════════════════════════════════════════


class SecretNotFoundError(ChallengeDomainError):
    """Raised when the guardian seed or transaction secret is unknown."""

    def __init__(
        self,
        message: str = "Secret not found",
        code: str = "SECRET_NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


# ═══════════════════════════════════════════════════════════════
# CONTRACT / CALLER-FACING
# ═══════════════════════════════════════════════════════════════


class ContractViolationError(ChallengeDomainError, ValueError):
    """Raised on programmer errors (missing identifiers, bad TTL). Never retried."""

    def __init__(
        self,
        message: str,
        code: str = "CONTRACT_VIOLATION",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)


class VerificationFailedError(ChallengeDomainError):
    """
    Generic caller-facing rejection.

    The message never names the rejection subtype; the internal reason
    is kept on ``reason`` for audit only.
    """

    def __init__(
        self,
        reason: Optional[str] = None,
        message: str = "Verification failed",
        code: str = "VERIFICATION_FAILED",
    ):
        super().__init__(message, code, None)
        self.reason = reason
