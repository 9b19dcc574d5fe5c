"""
Factory functions for automatic service creation.

Implements the 'if not provided, create' pattern: anything not passed
in is built from ChallengeSettings (itself read from the environment).
"""

import logging
from collections.abc import Mapping
from typing import Optional, Union

from custody_challenge.application.generator import ChallengeGenerator
from custody_challenge.application.service import ChallengeResponseService
from custody_challenge.application.validator import ResponseValidator
from custody_challenge.config import ChallengeSettings
from custody_challenge.domain.value_objects import GuardianSeed
from custody_challenge.infrastructure.adapters.audit import LoggingAuditSink
from custody_challenge.infrastructure.adapters.challenge_store import (
    Clock,
    InMemoryChallengeStore,
    RedisChallengeStore,
)
from custody_challenge.infrastructure.adapters.secrets import (
    InMemoryContextualSecretRepository,
    InMemoryGuardianSeedRepository,
    TOTPSeedSecretProvider,
)
from custody_challenge.infrastructure.ports.audit import AuditSink
from custody_challenge.infrastructure.ports.challenge_store import ChallengeStore
from custody_challenge.infrastructure.ports.secrets import (
    ContextualSecretRepository,
    GuardianSeedRepository,
    SecretProvider,
)

logger = logging.getLogger(__name__)


def create_default_store(
    settings: Optional[ChallengeSettings] = None,
    clock: Optional[Clock] = None,
) -> ChallengeStore:
    """
    Create a challenge store from settings.

    Uses Redis when ``redis_url`` is configured, otherwise falls back to
    the in-memory store (single process only).
    """
    settings = settings or ChallengeSettings.from_env()

    if settings.redis_url:
        import redis.asyncio as redis

        client = redis.Redis.from_url(settings.redis_url)
        return RedisChallengeStore(client, prefix=settings.key_prefix)

    logger.warning(
        "No Redis URL configured; using in-memory challenge store "
        "(not shared between processes)"
    )
    return InMemoryChallengeStore(clock=clock)


def create_secret_provider(
    seeds: Union[GuardianSeedRepository, Mapping[str, Union[GuardianSeed, str]]],
    contextual_secrets: Union[
        ContextualSecretRepository, Mapping[str, Union[bytes, str]]
    ],
    settings: Optional[ChallengeSettings] = None,
) -> TOTPSeedSecretProvider:
    """
    Create a TOTPSeedSecretProvider.

    Mappings are loaded into in-memory repositories; plain base32 seeds
    take ``totp_digits`` and ``totp_interval`` from settings.
    """
    settings = settings or ChallengeSettings.from_env()

    if isinstance(seeds, Mapping):
        seeds = InMemoryGuardianSeedRepository(
            dict(seeds),
            digits=settings.totp_digits,
            interval=settings.totp_interval,
        )
    if isinstance(contextual_secrets, Mapping):
        contextual_secrets = InMemoryContextualSecretRepository(
            dict(contextual_secrets)
        )
    return TOTPSeedSecretProvider(seeds, contextual_secrets)


def create_challenge_service(
    secret_provider: SecretProvider,
    settings: Optional[ChallengeSettings] = None,
    store: Optional[ChallengeStore] = None,
    audit_sink: Optional[AuditSink] = None,
    clock: Optional[Clock] = None,
) -> ChallengeResponseService:
    """Wire a ChallengeResponseService from its collaborators."""
    settings = settings or ChallengeSettings.from_env()
    store = store or create_default_store(settings, clock=clock)
    audit_sink = audit_sink or LoggingAuditSink()

    generator = ChallengeGenerator(
        store, settings=settings, audit_sink=audit_sink, clock=clock
    )
    validator = ResponseValidator(
        store,
        secret_provider,
        settings=settings,
        audit_sink=audit_sink,
        clock=clock,
    )
    return ChallengeResponseService(generator, validator, store, clock=clock)
