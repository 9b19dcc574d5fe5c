"""
Secret/Seed Provider Port.

Supplies the guardian's current TOTP code and the per-transaction
contextual secret. Passed in as a collaborator; never process-wide state.
"""

from datetime import datetime
from typing import Protocol, Optional, runtime_checkable

from custody_challenge.domain.value_objects import GuardianSeed, ContextualSecret


@runtime_checkable
class SecretProvider(Protocol):
    """
    Port consumed by the response validator.

    Implementations raise SecretNotFoundError for an unknown guardian
    or transaction and SecretProviderUnavailableError when the backing
    service cannot be reached.
    """

    async def get_totp_code(
        self,
        guardian_id: str,
        time_window_offset: int = 0,
        for_time: Optional[datetime] = None,
    ) -> str:
        """
        Get the guardian's TOTP code.

        Args:
            guardian_id: The approver the challenge was issued to
            time_window_offset: Steps relative to the current window
            for_time: Reference instant (defaults to now)
        """
        ...

    async def get_contextual_secret(self, transaction_id: str) -> bytes:
        """Get the contextual secret bound to a transaction."""
        ...


class GuardianSeedRepository(Protocol):
    """Repository of guardian TOTP seeds."""

    async def get_by_guardian_id(self, guardian_id: str) -> Optional[GuardianSeed]:
        """Get the seed for a guardian, or None."""
        ...


class ContextualSecretRepository(Protocol):
    """Repository of per-transaction contextual secrets."""

    async def get_by_transaction_id(
        self, transaction_id: str
    ) -> Optional[ContextualSecret]:
        """Get the contextual secret for a transaction, or None."""
        ...
