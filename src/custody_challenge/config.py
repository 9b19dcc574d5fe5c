"""
Settings for the challenge-response core.

Defaults follow the custody approval flow: 5-minute challenges,
5 attempts, ±1 TOTP step of clock-skew tolerance, 8-digit responses.
"""

import os
from dataclasses import dataclass
from typing import Optional, Mapping

from custody_challenge.domain.errors import ContractViolationError


MIN_NONCE_BYTES = 16  # 128 bits


@dataclass
class ChallengeSettings:
    """Configuration for issuing and validating challenges."""

    ttl_seconds: int = 300
    max_attempts: int = 5
    valid_window: int = 1  # TOTP steps accepted either side of now
    response_digits: int = 8
    nonce_bytes: int = MIN_NONCE_BYTES
    consumed_retention_seconds: int = 60

    # Guardian authenticator parameters
    totp_digits: int = 6
    totp_interval: int = 30

    # Storage
    redis_url: Optional[str] = None
    key_prefix: str = "custody:challenge:"

    def __post_init__(self):
        if self.ttl_seconds <= 0:
            raise ContractViolationError("ttl_seconds must be positive")
        if self.max_attempts <= 0:
            raise ContractViolationError("max_attempts must be positive")
        if self.valid_window < 0:
            raise ContractViolationError("valid_window must not be negative")
        if not 6 <= self.response_digits <= 9:
            raise ContractViolationError("response_digits must be between 6 and 9")
        if self.nonce_bytes < MIN_NONCE_BYTES:
            raise ContractViolationError(
                f"nonce_bytes must be at least {MIN_NONCE_BYTES} (128 bits)"
            )
        if self.consumed_retention_seconds <= 0:
            raise ContractViolationError("consumed_retention_seconds must be positive")
        if not 6 <= self.totp_digits <= 8:
            raise ContractViolationError("totp_digits must be between 6 and 8")
        if self.totp_interval <= 0:
            raise ContractViolationError("totp_interval must be positive")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = "CUSTODY_CHALLENGE_",
    ) -> "ChallengeSettings":
        """
        Build settings from environment variables.

        Recognised: CUSTODY_CHALLENGE_TTL_SECONDS, _MAX_ATTEMPTS,
        _VALID_WINDOW, _RESPONSE_DIGITS, _NONCE_BYTES,
        _CONSUMED_RETENTION_SECONDS, _TOTP_DIGITS, _TOTP_INTERVAL,
        _REDIS_URL, _KEY_PREFIX.
        """
        env = os.environ if environ is None else environ

        def _int(name: str, default: int) -> int:
            raw = env.get(f"{prefix}{name}")
            if raw is None or raw == "":
                return default
            try:
                return int(raw)
            except ValueError:
                raise ContractViolationError(
                    f"{prefix}{name} must be an integer, got {raw!r}"
                )

        defaults = cls.__dataclass_fields__
        return cls(
            ttl_seconds=_int("TTL_SECONDS", defaults["ttl_seconds"].default),
            max_attempts=_int("MAX_ATTEMPTS", defaults["max_attempts"].default),
            valid_window=_int("VALID_WINDOW", defaults["valid_window"].default),
            response_digits=_int("RESPONSE_DIGITS", defaults["response_digits"].default),
            nonce_bytes=_int("NONCE_BYTES", defaults["nonce_bytes"].default),
            consumed_retention_seconds=_int(
                "CONSUMED_RETENTION_SECONDS",
                defaults["consumed_retention_seconds"].default,
            ),
            totp_digits=_int("TOTP_DIGITS", defaults["totp_digits"].default),
            totp_interval=_int("TOTP_INTERVAL", defaults["totp_interval"].default),
            redis_url=env.get(f"{prefix}REDIS_URL") or None,
            key_prefix=env.get(f"{prefix}KEY_PREFIX") or defaults["key_prefix"].default,
        )
