"""Concrete infrastructure adapters (challenge stores, secret providers, audit)."""
# ruff: noqa: F401

# Challenge stores
from custody_challenge.infrastructure.adapters.challenge_store import (
    InMemoryChallengeStore,
    RedisChallengeStore,
)
from custody_challenge.infrastructure.adapters.sqlalchemy_storage import (
    # Models
    Base as SQLAlchemyBase,
    GuardianChallengeModel,
    # Adapters
    SQLAlchemyChallengeStore,
)

# Secret providers
from custody_challenge.infrastructure.adapters.secrets import (
    TOTPSeedSecretProvider,
    InMemoryGuardianSeedRepository,
    InMemoryContextualSecretRepository,
    HMACContextualSecretRepository,
)

# Audit sinks
from custody_challenge.infrastructure.adapters.audit import (
    LoggingAuditSink,
    InMemoryAuditSink,
)

__all__ = [
    # Challenge Stores
    "InMemoryChallengeStore",
    "RedisChallengeStore",
    "SQLAlchemyBase",
    "GuardianChallengeModel",
    "SQLAlchemyChallengeStore",
    # Secret Providers
    "TOTPSeedSecretProvider",
    "InMemoryGuardianSeedRepository",
    "InMemoryContextualSecretRepository",
    "HMACContextualSecretRepository",
    # Audit
    "LoggingAuditSink",
    "InMemoryAuditSink",
]
