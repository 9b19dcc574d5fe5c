"""
Tests for domain value objects.
"""

import dataclasses
from datetime import datetime, timezone, timedelta

import pyotp
import pytest

from custody_challenge.domain.value_objects import GuardianSeed, ContextualSecret


SEED = "JBSWY3DPEHPK3PXP"
NOW = datetime(2024, 5, 1, 12, 0, 10, tzinfo=timezone.utc)


def test_code_at_matches_authenticator():
    seed = GuardianSeed(SEED)

    assert seed.code_at(NOW) == pyotp.TOTP(SEED).at(NOW)
    assert len(seed.code_at(NOW)) == 6


def test_code_at_offsets_by_whole_steps():
    seed = GuardianSeed(SEED)

    previous = pyotp.TOTP(SEED).at(NOW - timedelta(seconds=30))
    following = pyotp.TOTP(SEED).at(NOW + timedelta(seconds=30))

    assert seed.code_at(NOW, time_window_offset=-1) == previous
    assert seed.code_at(NOW, time_window_offset=1) == following


def test_custom_digits_and_interval():
    seed = GuardianSeed(SEED, digits=8, interval=60)

    assert seed.code_at(NOW) == pyotp.TOTP(SEED, digits=8, interval=60).at(NOW)


def test_guardian_seed_is_frozen_and_hides_secret():
    seed = GuardianSeed(SEED)

    with pytest.raises(dataclasses.FrozenInstanceError):
        seed.secret = "other"
    assert SEED not in repr(seed)


def test_contextual_secret_repr_hides_value():
    secret = ContextualSecret(value=b"super-secret", transaction_id="tx-42")

    assert "super-secret" not in repr(secret)
    assert "tx-42" in repr(secret)
