"""
Secret Provider Adapters.

- TOTPSeedSecretProvider: derives TOTP codes with pyotp from stored seeds
- InMemoryGuardianSeedRepository / InMemoryContextualSecretRepository:
  development and testing
- HMACContextualSecretRepository: derives per-transaction secrets from a
  master key, so nothing per-transaction has to be stored
"""

import asyncio
import hmac
import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Union

from custody_challenge.domain.errors import (
    SecretNotFoundError,
    SecretProviderUnavailableError,
    ChallengeDomainError,
    ContractViolationError,
)
from custody_challenge.domain.value_objects import GuardianSeed, ContextualSecret
from custody_challenge.infrastructure.ports.secrets import (
    SecretProvider,
    GuardianSeedRepository,
    ContextualSecretRepository,
)


logger = logging.getLogger("custody_challenge.infrastructure.adapters.secrets")


# ═══════════════════════════════════════════════════════════════
# TOTP SEED SECRET PROVIDER
# ═══════════════════════════════════════════════════════════════


class TOTPSeedSecretProvider(SecretProvider):
    """
    SecretProvider backed by seed and contextual-secret repositories.

    TOTP codes are generated with pyotp, the same library guardians'
    authenticator apps are compatible with (RFC 6238).

    Usage:
        provider = TOTPSeedSecretProvider(
            seeds=InMemoryGuardianSeedRepository({"cfo-1": GuardianSeed("JBSW...")}),
            contextual_secrets=HMACContextualSecretRepository(master_key),
        )
    """

    def __init__(
        self,
        seeds: GuardianSeedRepository,
        contextual_secrets: ContextualSecretRepository,
    ):
        self.seeds = seeds
        self.contextual_secrets = contextual_secrets

    async def get_totp_code(
        self,
        guardian_id: str,
        time_window_offset: int = 0,
        for_time: Optional[datetime] = None,
    ) -> str:
        seed = await self._lookup(
            "guardian seed", guardian_id, self.seeds.get_by_guardian_id
        )
        for_time = for_time or datetime.now(timezone.utc)
        return seed.code_at(for_time, time_window_offset)

    async def get_contextual_secret(self, transaction_id: str) -> bytes:
        secret = await self._lookup(
            "contextual secret",
            transaction_id,
            self.contextual_secrets.get_by_transaction_id,
        )
        return secret.value

    async def _lookup(self, kind: str, key: str, fetch):
        try:
            value = await fetch(key)
        except ChallengeDomainError:
            raise
        except (OSError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to fetch {kind} for {key}: {e}")
            raise SecretProviderUnavailableError(details={"kind": kind}) from e

        if value is None:
            logger.warning(f"No {kind} found for {key}")
            raise SecretNotFoundError(f"Unknown {kind}", details={"kind": kind})
        return value


# ═══════════════════════════════════════════════════════════════
# IN-MEMORY REPOSITORIES (Development/Testing)
# ═══════════════════════════════════════════════════════════════


class InMemoryGuardianSeedRepository(GuardianSeedRepository):
    """
    In-memory implementation of GuardianSeedRepository.

    Plain base32 strings are wrapped with the repository's ``digits`` and
    ``interval``; GuardianSeed values keep their own parameters.

    For production, seeds belong in a persistent store with encryption
    at rest.
    """

    def __init__(
        self,
        seeds: Optional[Dict[str, Union[GuardianSeed, str]]] = None,
        digits: int = 6,
        interval: int = 30,
    ):
        self.digits = digits
        self.interval = interval
        self._seeds: Dict[str, GuardianSeed] = {}
        for guardian_id, seed in (seeds or {}).items():
            self.add(guardian_id, seed)

    async def get_by_guardian_id(self, guardian_id: str) -> Optional[GuardianSeed]:
        return self._seeds.get(guardian_id)

    def add(self, guardian_id: str, seed: Union[GuardianSeed, str]) -> None:
        if isinstance(seed, str):
            seed = GuardianSeed(seed, digits=self.digits, interval=self.interval)
        self._seeds[guardian_id] = seed

    def clear(self) -> None:
        """Clear all seeds (for testing)."""
        self._seeds.clear()


class InMemoryContextualSecretRepository(ContextualSecretRepository):
    """In-memory implementation of ContextualSecretRepository."""

    def __init__(self, secrets: Optional[Dict[str, Union[bytes, str]]] = None):
        self._secrets: Dict[str, ContextualSecret] = {}
        for transaction_id, value in (secrets or {}).items():
            self.add(transaction_id, value)

    async def get_by_transaction_id(
        self, transaction_id: str
    ) -> Optional[ContextualSecret]:
        return self._secrets.get(transaction_id)

    def add(self, transaction_id: str, value: Union[bytes, str]) -> None:
        if isinstance(value, str):
            value = value.encode("utf-8")
        self._secrets[transaction_id] = ContextualSecret(
            value=value, transaction_id=transaction_id
        )

    def clear(self) -> None:
        """Clear all secrets (for testing)."""
        self._secrets.clear()


# ═══════════════════════════════════════════════════════════════
# DERIVED CONTEXTUAL SECRETS (Production)
# ═══════════════════════════════════════════════════════════════


class HMACContextualSecretRepository(ContextualSecretRepository):
    """
    Derives contextual secrets as HMAC-SHA-256(master_key,
    "custody-context:" + transaction_id).

    An optional ``known_transactions`` callable restricts derivation to
    transactions the platform knows about; unknown ids yield None.
    """

    CONTEXT_LABEL = b"custody-context:"

    def __init__(self, master_key: Union[bytes, str], known_transactions=None):
        if isinstance(master_key, str):
            master_key = master_key.encode("utf-8")
        if len(master_key) < 16:
            raise ContractViolationError("master_key must be at least 16 bytes")
        self._master_key = master_key
        self._known_transactions = known_transactions

    async def get_by_transaction_id(
        self, transaction_id: str
    ) -> Optional[ContextualSecret]:
        if not transaction_id:
            return None
        if self._known_transactions is not None:
            if not await self._known_transactions(transaction_id):
                return None

        value = hmac.new(
            self._master_key,
            self.CONTEXT_LABEL + transaction_id.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return ContextualSecret(value=value, transaction_id=transaction_id)


__all__ = [
    "TOTPSeedSecretProvider",
    "InMemoryGuardianSeedRepository",
    "InMemoryContextualSecretRepository",
    "HMACContextualSecretRepository",
]
