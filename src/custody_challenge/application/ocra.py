"""
OCRA-like response computation.

The expected response binds three inputs: the guardian's TOTP code,
the transaction's contextual secret and the challenge nonce.

    message  = b"CUSTODY-OCRA-1" || 0x00 || nonce || 0x00 || ascii(totp_code)
    mac      = HMAC-SHA-256(key=contextual_secret, msg=message)
    offset   = mac[-1] & 0x0F
    binary   = int.from_bytes(mac[offset:offset + 4], "big") & 0x7FFFFFFF
    response = str(binary % 10 ** digits).zfill(digits)

The truncation is RFC 4226 dynamic truncation, as used by HOTP/TOTP.
Guardian-side tooling must reproduce this byte for byte.
"""

import hmac
import hashlib
from typing import Iterable

SUITE_LABEL = b"CUSTODY-OCRA-1"
DEFAULT_DIGITS = 8


def compute_response(
    totp_code: str,
    contextual_secret: bytes,
    nonce: bytes,
    digits: int = DEFAULT_DIGITS,
) -> str:
    """Compute the response a guardian must submit for a challenge."""
    message = SUITE_LABEL + b"\x00" + nonce + b"\x00" + totp_code.encode("ascii")
    mac = hmac.new(contextual_secret, message, hashlib.sha256).digest()

    offset = mac[-1] & 0x0F
    binary = int.from_bytes(mac[offset : offset + 4], "big") & 0x7FFFFFFF
    return str(binary % 10**digits).zfill(digits)


def normalize_response(submitted: object, digits: int = DEFAULT_DIGITS) -> str:
    """
    Strip surrounding whitespace. Returns "" for anything that is not
    exactly ``digits`` ASCII digits, which never matches.
    """
    if not isinstance(submitted, str):
        return ""
    value = submitted.strip()
    if len(value) != digits or not (value.isascii() and value.isdigit()):
        return ""
    return value


def matches_any(submitted: str, candidates: Iterable[str]) -> bool:
    """
    Constant-time comparison against every candidate.

    All candidates are compared even after a hit so timing does not
    reveal which window matched.
    """
    matched = False
    for candidate in candidates:
        # Non-short-circuit OR
        matched |= hmac.compare_digest(submitted.encode(), candidate.encode())
    return matched and bool(submitted)
