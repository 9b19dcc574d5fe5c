"""
FastAPI integration for py-custody-challenge.

Requires the ``fastapi`` extra.
"""

from .router import (
    create_challenge_router,
    IssueChallengeRequest,
    ChallengeResponseRequest,
)
from .exception_handlers import register_exception_handlers

__all__ = [
    "create_challenge_router",
    "IssueChallengeRequest",
    "ChallengeResponseRequest",
    "register_exception_handlers",
]
