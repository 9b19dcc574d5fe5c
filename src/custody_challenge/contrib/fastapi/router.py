from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from custody_challenge.application.service import ChallengeResponseService


class IssueChallengeRequest(BaseModel):
    transaction_id: str = Field(min_length=1, max_length=128)
    guardian_id: str = Field(min_length=1, max_length=128)


class ChallengeResponseRequest(BaseModel):
    response: str = Field(min_length=1, max_length=32)
    transaction_id: Optional[str] = None


def create_challenge_router(
    service: ChallengeResponseService,
    prefix: str = "/challenges",
    tags: Optional[list[str]] = None,
    validation_timeout: Optional[float] = None,
) -> APIRouter:
    """
    Create a router exposing challenge issuance and response validation.

    Guardian authentication is expected to be enforced by the including
    application (e.g. via router dependencies).
    """
    router = APIRouter(prefix=prefix, tags=tags or ["challenges"])

    @router.post("", status_code=201)
    async def issue_challenge(data: IssueChallengeRequest):
        issued = await service.issue_challenge(data.transaction_id, data.guardian_id)
        return issued.to_dict()

    @router.post("/{challenge_id}/responses")
    async def submit_response(challenge_id: str, data: ChallengeResponseRequest):
        outcome = await service.validate_response(
            challenge_id,
            data.response,
            transaction_id=data.transaction_id,
            timeout=validation_timeout,
        )
        # Raises VerificationFailedError -> generic 401
        outcome.raise_for_status()
        return outcome.to_public_dict()

    return router
