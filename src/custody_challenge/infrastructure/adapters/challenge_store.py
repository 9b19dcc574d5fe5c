"""
Challenge Store Adapter Implementations.

Provides TTL-backed backends for challenge records:
- InMemoryChallengeStore: For development/testing
- RedisChallengeStore: For production (fast, distributed, native TTL)

See sqlalchemy_storage for the relational backend.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone, timedelta
from typing import Optional, Dict, Any, Callable

from redis.exceptions import RedisError

from custody_challenge.domain.aggregates import Challenge
from custody_challenge.domain.errors import (
    ContractViolationError,
    StorageUnavailableError,
)
from custody_challenge.infrastructure.ports.challenge_store import ChallengeStore


logger = logging.getLogger("custody_challenge.infrastructure.adapters.challenge_store")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_ttl(ttl_seconds: int) -> None:
    if not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
        raise ContractViolationError(
            f"ttl_seconds must be a positive integer, got {ttl_seconds!r}",
            details={"ttl_seconds": ttl_seconds},
        )


# ═══════════════════════════════════════════════════════════════
# IN-MEMORY CHALLENGE STORE (Development/Testing)
# ═══════════════════════════════════════════════════════════════


class InMemoryChallengeStore(ChallengeStore):
    """
    In-memory implementation of ChallengeStore.

    Suitable for development and testing. No operation awaits between
    its read and its write, so each one is atomic under asyncio.

    Usage:
        store = InMemoryChallengeStore()
        await store.put(challenge, ttl_seconds=300)
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        # Key: challenge_id -> (record, ttl deadline)
        self._records: Dict[str, tuple[Challenge, datetime]] = {}

    def _live(self, challenge_id: str) -> Optional[Challenge]:
        entry = self._records.get(challenge_id)
        if entry is None:
            return None
        challenge, deadline = entry
        if self._clock() >= deadline:
            # Lazy eviction
            del self._records[challenge_id]
            return None
        return challenge

    async def put(self, challenge: Challenge, ttl_seconds: int) -> None:
        validate_ttl(ttl_seconds)
        deadline = self._clock() + timedelta(seconds=ttl_seconds)
        self._records[challenge.challenge_id] = (
            Challenge.from_dict(challenge.to_dict()),
            deadline,
        )
        logger.debug(f"Stored challenge: {challenge.challenge_id} (TTL: {ttl_seconds}s)")

    async def get(self, challenge_id: str) -> Optional[Challenge]:
        challenge = self._live(challenge_id)
        if challenge is None:
            return None
        # Hand out a copy so callers cannot mutate the stored record
        return Challenge.from_dict(challenge.to_dict())

    async def delete(self, challenge_id: str) -> None:
        self._records.pop(challenge_id, None)
        logger.debug(f"Deleted challenge: {challenge_id}")

    async def increment_attempt(self, challenge_id: str) -> Optional[int]:
        challenge = self._live(challenge_id)
        if challenge is None:
            return None
        challenge.attempt_count += 1
        logger.debug(
            f"Incremented attempts: {challenge_id} -> {challenge.attempt_count}"
        )
        return challenge.attempt_count

    async def mark_consumed(
        self,
        challenge_id: str,
        consumed_at: datetime,
        retain_seconds: int,
    ) -> bool:
        challenge = self._live(challenge_id)
        if challenge is None or challenge.consumed:
            return False

        challenge.consumed = True
        challenge.consumed_at = consumed_at

        _, deadline = self._records[challenge_id]
        retain_until = self._clock() + timedelta(seconds=retain_seconds)
        self._records[challenge_id] = (challenge, min(deadline, retain_until))
        logger.debug(f"Marked challenge consumed: {challenge_id}")
        return True

    async def delete_expired(self) -> int:
        now = self._clock()
        expired = [cid for cid, (_, deadline) in self._records.items() if now >= deadline]
        for cid in expired:
            del self._records[cid]
        return len(expired)

    def clear(self) -> None:
        """Clear all challenges (for testing)."""
        self._records.clear()


# ═══════════════════════════════════════════════════════════════
# REDIS CHALLENGE STORE (Production)
# ═══════════════════════════════════════════════════════════════


# Returns nil when the record is gone so HINCRBY never resurrects
# an evicted key without a TTL.
INCREMENT_ATTEMPT_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return false
end
return redis.call('HINCRBY', KEYS[1], 'attempt_count', 1)
"""

# ARGV[1] = consumed_at (ISO-8601), ARGV[2] = retain seconds
MARK_CONSUMED_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
  return 0
end
if redis.call('HGET', KEYS[1], 'consumed') == '1' then
  return 0
end
redis.call('HSET', KEYS[1], 'consumed', '1', 'consumed_at', ARGV[1])
local ttl = redis.call('TTL', KEYS[1])
local retain = tonumber(ARGV[2])
if ttl < 0 or ttl > retain then
  redis.call('EXPIRE', KEYS[1], retain)
end
return 1
"""


class RedisChallengeStore(ChallengeStore):
    """
    Redis implementation of ChallengeStore.

    Each challenge is a Redis hash with a native TTL. The attempt
    counter and the consumed flag are changed by server-side Lua
    scripts, so both are atomic per key.

    Requires: redis[hiredis]

    Usage:
        import redis.asyncio as redis

        client = redis.Redis.from_url("redis://localhost:6379")
        store = RedisChallengeStore(client)
    """

    def __init__(
        self,
        redis_client: Any,  # redis.asyncio.Redis
        prefix: str = "custody:challenge:",
    ):
        self._redis = redis_client
        self._prefix = prefix
        self._increment_attempt = redis_client.register_script(
            INCREMENT_ATTEMPT_SCRIPT
        )
        self._mark_consumed = redis_client.register_script(MARK_CONSUMED_SCRIPT)

    def _key(self, challenge_id: str) -> str:
        return f"{self._prefix}{challenge_id}"

    @contextmanager
    def _translate_errors(self, operation: str, challenge_id: str):
        try:
            yield
        except RedisError as e:
            logger.error(f"Redis {operation} failed for challenge {challenge_id}: {e}")
            raise StorageUnavailableError(
                details={"operation": operation, "backend": "redis"}
            ) from e

    @staticmethod
    def _to_hash(challenge: Challenge) -> dict[str, Any]:
        data = challenge.to_dict()
        data["consumed"] = "1" if challenge.consumed else "0"
        data["consumed_at"] = data["consumed_at"] or ""
        return data

    @staticmethod
    def _from_hash(raw: dict) -> Challenge:
        data = {
            (k.decode() if isinstance(k, bytes) else k): (
                v.decode() if isinstance(v, bytes) else v
            )
            for k, v in raw.items()
        }
        return Challenge.from_dict(data)

    async def put(self, challenge: Challenge, ttl_seconds: int) -> None:
        validate_ttl(ttl_seconds)
        key = self._key(challenge.challenge_id)

        with self._translate_errors("put", challenge.challenge_id):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.hset(key, mapping=self._to_hash(challenge))
                pipe.expire(key, ttl_seconds)
                await pipe.execute()

        logger.debug(f"Stored Redis challenge: {challenge.challenge_id}")

    async def get(self, challenge_id: str) -> Optional[Challenge]:
        with self._translate_errors("get", challenge_id):
            raw = await self._redis.hgetall(self._key(challenge_id))

        if not raw:
            return None
        return self._from_hash(raw)

    async def delete(self, challenge_id: str) -> None:
        with self._translate_errors("delete", challenge_id):
            await self._redis.delete(self._key(challenge_id))
        logger.debug(f"Deleted Redis challenge: {challenge_id}")

    async def increment_attempt(self, challenge_id: str) -> Optional[int]:
        with self._translate_errors("increment_attempt", challenge_id):
            result = await self._increment_attempt(keys=[self._key(challenge_id)])

        if result is None:
            return None
        return int(result)

    async def mark_consumed(
        self,
        challenge_id: str,
        consumed_at: datetime,
        retain_seconds: int,
    ) -> bool:
        with self._translate_errors("mark_consumed", challenge_id):
            result = await self._mark_consumed(
                keys=[self._key(challenge_id)],
                args=[consumed_at.isoformat(), retain_seconds],
            )
        return int(result or 0) == 1

    async def delete_expired(self) -> int:
        # Redis handles expiration via TTL
        return 0


__all__ = [
    "InMemoryChallengeStore",
    "RedisChallengeStore",
    "INCREMENT_ATTEMPT_SCRIPT",
    "MARK_CONSUMED_SCRIPT",
]
