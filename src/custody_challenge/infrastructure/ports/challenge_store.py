"""
Challenge Store Port.

Key-value storage with per-key TTL for challenge records.
"""

from datetime import datetime
from typing import Protocol, Optional, runtime_checkable

from custody_challenge.domain.aggregates import Challenge


@runtime_checkable
class ChallengeStore(Protocol):
    """
    Port for challenge persistence.

    A record past its TTL must read exactly like a record that never
    existed, even if the backend has not evicted it yet.

    Implementations raise StorageUnavailableError when the backend
    cannot be reached.
    """

    async def put(self, challenge: Challenge, ttl_seconds: int) -> None:
        """
        Store a challenge with a TTL.

        Raises:
            ContractViolationError: if ttl_seconds is not positive
            StorageUnavailableError: if the backend is unreachable
        """
        ...

    async def get(self, challenge_id: str) -> Optional[Challenge]:
        """Return the challenge, or None if unknown or past its TTL."""
        ...

    async def delete(self, challenge_id: str) -> None:
        """Remove a challenge. No error if already absent."""
        ...

    async def increment_attempt(self, challenge_id: str) -> Optional[int]:
        """
        Atomically increment the attempt counter.

        Must be a single atomic operation, never a read-modify-write
        pair: two concurrent callers must observe different values.

        Returns:
            The post-increment count, or None if the record is gone
        """
        ...

    async def mark_consumed(
        self,
        challenge_id: str,
        consumed_at: datetime,
        retain_seconds: int,
    ) -> bool:
        """
        Atomically set consumed=True only if it is currently False.

        The record's remaining TTL is shortened to ``retain_seconds``
        (never extended) so the key is freed promptly.

        Returns:
            True only for the caller that performed the flip
        """
        ...

    async def delete_expired(self) -> int:
        """Delete records past their TTL. Returns count deleted."""
        ...
