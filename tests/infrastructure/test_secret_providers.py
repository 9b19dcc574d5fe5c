"""
Tests for secret provider adapters.
"""

import asyncio
import hashlib
import hmac
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pyotp
import pytest

from custody_challenge.domain.errors import (
    ContractViolationError,
    SecretNotFoundError,
    SecretProviderUnavailableError,
)
from custody_challenge.domain.value_objects import GuardianSeed
from custody_challenge.infrastructure.adapters.secrets import (
    TOTPSeedSecretProvider,
    InMemoryGuardianSeedRepository,
    InMemoryContextualSecretRepository,
    HMACContextualSecretRepository,
)
from custody_challenge.infrastructure.ports.secrets import SecretProvider


AT = datetime(2024, 5, 1, 12, 0, 10, tzinfo=timezone.utc)
MASTER_KEY = b"0123456789abcdef0123456789abcdef"


def test_provider_implements_port(secret_provider):
    assert isinstance(secret_provider, SecretProvider)


@pytest.mark.asyncio
async def test_totp_code_for_guardian(secret_provider, cfo_seed):
    code = await secret_provider.get_totp_code("cfo-1", for_time=AT)

    assert code == pyotp.TOTP(cfo_seed).at(AT)


@pytest.mark.asyncio
async def test_totp_code_with_offset(secret_provider, cfo_seed):
    code = await secret_provider.get_totp_code("cfo-1", time_window_offset=1, for_time=AT)

    assert code == pyotp.TOTP(cfo_seed).at(AT, counter_offset=1)


@pytest.mark.asyncio
async def test_totp_code_defaults_to_now(secret_provider, cfo_seed):
    code = await secret_provider.get_totp_code("cfo-1")

    # Allow for a step boundary between the two calls
    totp = pyotp.TOTP(cfo_seed)
    assert code in {totp.now(), totp.at(datetime.now(timezone.utc), counter_offset=-1)}


@pytest.mark.asyncio
async def test_contextual_secret(secret_provider, tx_secret):
    assert await secret_provider.get_contextual_secret("tx-42") == tx_secret


@pytest.mark.asyncio
async def test_unknown_guardian(secret_provider):
    with pytest.raises(SecretNotFoundError) as exc_info:
        await secret_provider.get_totp_code("ghost")

    assert exc_info.value.details == {"kind": "guardian seed"}


@pytest.mark.asyncio
async def test_unknown_transaction(secret_provider):
    with pytest.raises(SecretNotFoundError):
        await secret_provider.get_contextual_secret("tx-unknown")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        ConnectionError("vault unreachable"),
        OSError("socket closed"),
        asyncio.TimeoutError(),
    ],
)
async def test_repository_outage_is_retryable(failure):
    seeds = AsyncMock()
    seeds.get_by_guardian_id.side_effect = failure
    provider = TOTPSeedSecretProvider(seeds, InMemoryContextualSecretRepository())

    with pytest.raises(SecretProviderUnavailableError) as exc_info:
        await provider.get_totp_code("cfo-1")

    assert exc_info.value.retryable is True
    assert exc_info.value.__cause__ is failure


@pytest.mark.asyncio
async def test_repository_domain_errors_pass_through():
    secrets_repo = AsyncMock()
    secrets_repo.get_by_transaction_id.side_effect = SecretNotFoundError("revoked")
    provider = TOTPSeedSecretProvider(InMemoryGuardianSeedRepository(), secrets_repo)

    with pytest.raises(SecretNotFoundError, match="revoked"):
        await provider.get_contextual_secret("tx-42")


# -----------------------------------------------------------------------------
# REPOSITORIES
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_in_memory_seed_repository():
    repo = InMemoryGuardianSeedRepository()
    seed = GuardianSeed("JBSWY3DPEHPK3PXP")

    repo.add("g-1", seed)
    assert await repo.get_by_guardian_id("g-1") == seed

    repo.clear()
    assert await repo.get_by_guardian_id("g-1") is None


@pytest.mark.asyncio
async def test_in_memory_seed_repository_wraps_base32_with_parameters(cfo_seed):
    repo = InMemoryGuardianSeedRepository({"g-1": cfo_seed}, digits=8, interval=60)
    repo.add("g-2", GuardianSeed(cfo_seed))

    wrapped = await repo.get_by_guardian_id("g-1")
    explicit = await repo.get_by_guardian_id("g-2")

    assert wrapped == GuardianSeed(cfo_seed, digits=8, interval=60)
    assert explicit.interval == 30
    provider = TOTPSeedSecretProvider(repo, InMemoryContextualSecretRepository())
    assert await provider.get_totp_code("g-1", for_time=AT) == pyotp.TOTP(
        cfo_seed, digits=8, interval=60
    ).at(AT)


@pytest.mark.asyncio
async def test_in_memory_contextual_secrets_accept_text():
    repo = InMemoryContextualSecretRepository({"tx-1": "text-secret"})

    secret = await repo.get_by_transaction_id("tx-1")

    assert secret.value == b"text-secret"
    assert secret.transaction_id == "tx-1"


@pytest.mark.asyncio
async def test_hmac_repository_derivation():
    repo = HMACContextualSecretRepository(MASTER_KEY)

    secret = await repo.get_by_transaction_id("tx-42")

    expected = hmac.new(MASTER_KEY, b"custody-context:tx-42", hashlib.sha256).digest()
    assert secret.value == expected
    assert (await repo.get_by_transaction_id("tx-43")).value != expected


@pytest.mark.asyncio
async def test_hmac_repository_known_transactions():
    known = AsyncMock(side_effect=lambda tx: tx == "tx-42")
    repo = HMACContextualSecretRepository(MASTER_KEY.decode(), known_transactions=known)

    assert await repo.get_by_transaction_id("tx-42") is not None
    assert await repo.get_by_transaction_id("tx-99") is None
    assert await repo.get_by_transaction_id("") is None


def test_hmac_repository_rejects_short_key():
    with pytest.raises(ContractViolationError):
        HMACContextualSecretRepository(b"short")
