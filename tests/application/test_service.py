"""
Tests for ChallengeResponseService.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from custody_challenge.application.generator import ChallengeGenerator
from custody_challenge.application.results import (
    ChallengeStatus,
    RejectionReason,
    ValidationOutcome,
)
from custody_challenge.application.service import ChallengeResponseService
from custody_challenge.application.validator import ResponseValidator
from custody_challenge.domain.aggregates import ChallengeState
from custody_challenge.domain.errors import (
    ContractViolationError,
    ValidationTimeoutError,
    VerificationFailedError,
)
from custody_challenge.domain.events import ChallengeValidated
from custody_challenge.infrastructure.adapters.audit import InMemoryAuditSink
from custody_challenge.infrastructure.adapters.secrets import TOTPSeedSecretProvider


@pytest.mark.asyncio
async def test_issue_then_validate(service, respond, cfo_seed, tx_secret, clock):
    issued = await service.issue_challenge("tx-42", "cfo-1")
    response = respond(cfo_seed, tx_secret, issued.nonce, clock.now)

    outcome = await service.validate_response(issued.challenge_id, response)

    assert outcome.accepted is True
    assert outcome.to_public_dict() == {
        "accepted": True,
        "key_release_id": outcome.key_release_id,
    }


@pytest.mark.asyncio
async def test_validate_with_timeout_completes(service, respond, cfo_seed, tx_secret, clock):
    issued = await service.issue_challenge("tx-42", "cfo-1")
    response = respond(cfo_seed, tx_secret, issued.nonce, clock.now)

    outcome = await service.validate_response(
        issued.challenge_id, response, transaction_id="tx-42", timeout=5.0
    )

    assert outcome.accepted is True


class SlowAuditSink(InMemoryAuditSink):
    """Stalls on acceptance events, after the consume has committed."""

    async def record(self, event):
        if isinstance(event, ChallengeValidated):
            await asyncio.sleep(0.2)
        await super().record(event)


class SlowSecretProvider(TOTPSeedSecretProvider):
    async def get_contextual_secret(self, transaction_id):
        await asyncio.sleep(1)
        return await super().get_contextual_secret(transaction_id)


@pytest.mark.asyncio
async def test_validate_timeout_raises_retryable_error(
    store, seed_repository, contextual_secrets, clock, audit_sink
):
    slow_secrets = SlowSecretProvider(seed_repository, contextual_secrets)
    generator = ChallengeGenerator(store, clock=clock)
    validator = ResponseValidator(
        store, slow_secrets, audit_sink=audit_sink, clock=clock
    )
    service = ChallengeResponseService(generator, validator, store, clock=clock)
    issued = await service.issue_challenge("tx-42", "cfo-1")

    with pytest.raises(ValidationTimeoutError) as exc_info:
        await service.validate_response(issued.challenge_id, "12345678", timeout=0.01)

    assert exc_info.value.retryable is True
    assert exc_info.value.details["challenge_id"] == issued.challenge_id
    stored = await store.get(issued.challenge_id)
    assert stored.attempt_count == 1
    assert stored.consumed is False


@pytest.mark.asyncio
async def test_timeout_does_not_lose_committed_acceptance(
    store, secret_provider, clock, respond, cfo_seed, tx_secret
):
    audit_sink = SlowAuditSink()
    generator = ChallengeGenerator(store, clock=clock)
    validator = ResponseValidator(
        store, secret_provider, audit_sink=audit_sink, clock=clock
    )
    service = ChallengeResponseService(generator, validator, store, clock=clock)
    issued = await service.issue_challenge("tx-42", "cfo-1")
    response = respond(cfo_seed, tx_secret, issued.nonce, clock.now)

    outcome = await service.validate_response(
        issued.challenge_id, response, timeout=0.05
    )

    assert outcome.accepted is True
    assert outcome.key_release_id.startswith("release_")
    validated = audit_sink.of_type(ChallengeValidated)
    assert [e.key_release_id for e in validated] == [outcome.key_release_id]

    retry = await service.validate_response(issued.challenge_id, response, timeout=0.05)
    assert retry.reason == RejectionReason.ALREADY_CONSUMED


@pytest.mark.asyncio
async def test_validate_passes_transaction_binding(store, clock):
    validator = MagicMock()
    validator.validate = AsyncMock(
        return_value=ValidationOutcome.reject("c-1", RejectionReason.CHALLENGE_NOT_FOUND)
    )
    service = ChallengeResponseService(MagicMock(), validator, store, clock=clock)

    await service.validate_response("c-1", "12345678", transaction_id="tx-9", timeout=2.0)

    validator.validate.assert_awaited_once_with(
        "c-1", "12345678", transaction_id="tx-9", timeout=2.0
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "challenge_id, timeout",
    [("", None), ("c-1", 0), ("c-1", -1.0)],
)
async def test_validate_contract_violations(service, challenge_id, timeout):
    with pytest.raises(ContractViolationError):
        await service.validate_response(challenge_id, "12345678", timeout=timeout)


@pytest.mark.asyncio
async def test_rejection_raises_generic_error_on_request(service):
    outcome = await service.validate_response("missing", "12345678")

    with pytest.raises(VerificationFailedError) as exc_info:
        outcome.raise_for_status()

    assert str(exc_info.value) == "Verification failed"
    assert exc_info.value.reason == "challenge_not_found"


# -----------------------------------------------------------------------------
# STATUS AND CLEANUP
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_status_of_pending_challenge(service):
    issued = await service.issue_challenge("tx-42", "cfo-1")
    await service.validate_response(issued.challenge_id, "00000000")

    status = await service.get_challenge_status(issued.challenge_id)

    assert status.exists is True
    assert status.state == ChallengeState.PENDING
    assert status.transaction_id == "tx-42"
    assert status.guardian_id == "cfo-1"
    assert status.attempts_remaining == 4
    assert status.expires_at == issued.expires_at


@pytest.mark.asyncio
async def test_status_after_acceptance(service, respond, cfo_seed, tx_secret, clock):
    issued = await service.issue_challenge("tx-42", "cfo-1")
    await service.validate_response(
        issued.challenge_id, respond(cfo_seed, tx_secret, issued.nonce, clock.now)
    )

    status = await service.get_challenge_status(issued.challenge_id)

    assert status.state == ChallengeState.ACCEPTED
    assert status.to_dict()["state"] == "accepted"


@pytest.mark.asyncio
async def test_status_of_unknown_challenge(service):
    status = await service.get_challenge_status("nope")

    assert status == ChallengeStatus.missing("nope")
    assert status.to_dict()["exists"] is False
    assert status.to_dict()["expires_at"] is None


@pytest.mark.asyncio
async def test_cleanup_expired(service, clock):
    await service.issue_challenge("tx-42", "cfo-1")
    await service.issue_challenge("tx-42", "cto-1")
    clock.advance(301)
    await service.issue_challenge("tx-43", "cfo-1")

    removed = await service.cleanup_expired()

    assert removed == 2
    assert await service.cleanup_expired() == 0
