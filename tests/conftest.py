"""
Pytest configuration for py-custody-challenge tests.
"""

from datetime import datetime, timezone, timedelta

import pyotp
import pytest

from custody_challenge.application.generator import ChallengeGenerator
from custody_challenge.application.ocra import compute_response
from custody_challenge.application.service import ChallengeResponseService
from custody_challenge.application.validator import ResponseValidator
from custody_challenge.config import ChallengeSettings
from custody_challenge.domain.value_objects import GuardianSeed
from custody_challenge.infrastructure.adapters.audit import InMemoryAuditSink
from custody_challenge.infrastructure.adapters.challenge_store import (
    InMemoryChallengeStore,
)
from custody_challenge.infrastructure.adapters.secrets import (
    TOTPSeedSecretProvider,
    InMemoryGuardianSeedRepository,
    InMemoryContextualSecretRepository,
)


T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

CFO_SEED = "JBSWY3DPEHPK3PXP"
CTO_SEED = "KRSXG5CTMVRXEZLU"
TX_42_SECRET = b"tx-42-contextual-secret"


class FakeClock:
    """Settable clock for driving freshness in tests."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        self.now = self.now + timedelta(seconds=seconds, **kwargs)
        return self.now


def guardian_response(
    seed: str,
    contextual_secret: bytes,
    nonce_hex: str,
    at: datetime,
    digits: int = 8,
) -> str:
    """What a guardian's tooling computes from the displayed challenge."""
    code = pyotp.TOTP(seed).at(at)
    return compute_response(code, contextual_secret, bytes.fromhex(nonce_hex), digits)


# -----------------------------------------------------------------------------
# FIXTURES
# -----------------------------------------------------------------------------


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return ChallengeSettings()


@pytest.fixture
def store(clock):
    return InMemoryChallengeStore(clock=clock)


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def seed_repository():
    return InMemoryGuardianSeedRepository(
        {
            "cfo-1": GuardianSeed(CFO_SEED),
            "cto-1": GuardianSeed(CTO_SEED),
        }
    )


@pytest.fixture
def contextual_secrets():
    return InMemoryContextualSecretRepository({"tx-42": TX_42_SECRET})


@pytest.fixture
def secret_provider(seed_repository, contextual_secrets):
    return TOTPSeedSecretProvider(seed_repository, contextual_secrets)


@pytest.fixture
def generator(store, settings, audit_sink, clock):
    return ChallengeGenerator(
        store, settings=settings, audit_sink=audit_sink, clock=clock
    )


@pytest.fixture
def validator(store, secret_provider, settings, audit_sink, clock):
    return ResponseValidator(
        store,
        secret_provider,
        settings=settings,
        audit_sink=audit_sink,
        clock=clock,
    )


@pytest.fixture
def service(generator, validator, store, clock):
    return ChallengeResponseService(generator, validator, store, clock=clock)


@pytest.fixture
def respond():
    """Helper computing the correct guardian response."""
    return guardian_response


@pytest.fixture
def make_clock():
    return FakeClock


@pytest.fixture
def cfo_seed():
    return CFO_SEED


@pytest.fixture
def tx_secret():
    return TX_42_SECRET
