"""
Domain value objects.

Value objects are immutable and have no identity; they are defined
only by their attributes.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import pyotp


@dataclass(frozen=True)
class GuardianSeed:
    """
    TOTP seed shared between a guardian's authenticator app and the platform.

    Enrollment is handled elsewhere; this object only derives codes.
    """

    secret: str  # Base32 encoded seed
    digits: int = 6
    interval: int = 30

    def totp(self) -> pyotp.TOTP:
        return pyotp.TOTP(self.secret, digits=self.digits, interval=self.interval)

    def code_at(
        self,
        for_time: Union[datetime, int],
        time_window_offset: int = 0,
    ) -> str:
        """
        TOTP code for the window containing ``for_time``, shifted by
        ``time_window_offset`` steps (-1 = previous window).
        """
        return self.totp().at(for_time, counter_offset=time_window_offset)

    def __repr__(self) -> str:
        return f"GuardianSeed(digits={self.digits}, interval={self.interval})"


@dataclass(frozen=True)
class ContextualSecret:
    """Per-transaction secret mixed into every expected response."""

    value: bytes
    transaction_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"ContextualSecret(transaction_id={self.transaction_id!r})"
